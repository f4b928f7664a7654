"""
Target deduplication for the crawl stage.

A target is already done when the fetch ledger lists it or when the raw
document its URL maps to already exists on disk. Both sets only grow, so
their union is a safe "done" signal even after a crashed run.
"""

import logging
import math
import os
from urllib.parse import unquote, urlsplit

from story_pipeline.constants import RAW_DOCUMENT_SUFFIX

logger = logging.getLogger(__name__)


def derive_filename(url: str) -> str:
    """
    Map a target URL to its raw document filename.

    Takes the last non-empty path segment, percent-decodes and lower-cases
    it, and makes sure it ends in exactly one ".html".

    Args:
        url: Absolute target URL

    Returns:
        Filename such as "my-story.html"

    Example:
        derive_filename("https://example.com/comedy/My%20Story/?page=2")
        # "my story.html"
    """
    parts = urlsplit(url)
    segments = [segment for segment in parts.path.split("/") if segment]
    raw_segment = segments[-1] if segments else parts.netloc

    name = unquote(raw_segment).lower()
    # Decoded separators must not escape the raw document directory
    name = name.replace("/", "-").replace("\\", "-")

    while name.endswith(RAW_DOCUMENT_SUFFIX):
        name = name[: -len(RAW_DOCUMENT_SUFFIX)]

    return name + RAW_DOCUMENT_SUFFIX


def is_already_done(url: str, ledger: set[str], existing_files: set[str]) -> bool:
    """Return True if the ledger or the raw document store already has the target."""
    if url in ledger:
        return True
    return derive_filename(url) in existing_files


def compute_pending(
    targets: list[str],
    ledger: set[str],
    existing_files: set[str],
    force: bool = False,
) -> list[str]:
    """
    Select the targets that still need fetching.

    Args:
        targets: Ordered target URLs
        ledger: URLs previously fetched successfully
        existing_files: Filenames present in the raw document store
        force: Fetch everything regardless of ledger and store

    Returns:
        Pending targets in their original order
    """
    if force:
        return list(targets)
    return [url for url in targets if not is_already_done(url, ledger, existing_files)]


def split_filename_collisions(
    pending: list[str],
) -> tuple[list[str], list[tuple[str, str]]]:
    """
    Keep the first target for each derived filename.

    Two targets that map to the same raw document would overwrite each
    other within one run, so only the first one is fetched.

    Args:
        pending: Targets in fetch order

    Returns:
        (kept targets, [(dropped target, target that claimed its filename)])
    """
    claimed: dict[str, str] = {}
    kept: list[str] = []
    collisions: list[tuple[str, str]] = []

    for url in pending:
        filename = derive_filename(url)
        if filename in claimed:
            collisions.append((url, claimed[filename]))
            continue
        claimed[filename] = url
        kept.append(url)

    return kept, collisions


def list_raw_filenames(raw_dir: str) -> set[str]:
    """Return the raw document filenames present in raw_dir (empty if missing)."""
    try:
        return {
            name
            for name in os.listdir(raw_dir)
            if name.endswith(RAW_DOCUMENT_SUFFIX)
        }
    except FileNotFoundError:
        return set()


def partition(pending: list[str], worker_count: int) -> list[list[str]]:
    """
    Split pending targets into contiguous, near-equal chunks.

    Chunk i holds pending[i*size:(i+1)*size] with size = ceil(len/worker_count).
    Trailing chunks may be empty when there are fewer targets than workers.

    Args:
        pending: Targets to distribute
        worker_count: Number of workers (at least 1)

    Returns:
        List of exactly worker_count chunks
    """
    if worker_count < 1:
        raise ValueError(f"worker_count must be at least 1, got {worker_count}")

    size = math.ceil(len(pending) / worker_count) if pending else 0
    return [pending[i * size : (i + 1) * size] for i in range(worker_count)]
