"""
Story ingestion.

Loads raw documents that have no stored story yet, extracts each one and
inserts it exactly once. The whole pending set goes through one
transaction; a bad document or a conflicting row is logged and skipped
without rolling back its siblings.

Usage:
    from story_pipeline.ingestion import ingest_raw_documents

    summary = ingest_raw_documents(store, config)
    print(summary.processed)
"""

import logging
import sqlite3
import time
from dataclasses import dataclass, field
from typing import Any

from story_pipeline import constants
from story_pipeline.config import PipelineConfig
from story_pipeline.exceptions import ExtractionFailure, PersistenceConflict
from story_pipeline.logging_utils import log_summary
from story_pipeline.scraper.extractor import extract_record
from story_pipeline.scraper.models import ExtractedRecord
from story_pipeline.storage import StoryStore, list_raw_documents, read_raw_document

logger = logging.getLogger(__name__)


@dataclass
class IngestSummary:
    """Counters for one ingestion run."""

    total: int = 0
    already_done: int = 0
    processed: int = 0
    failed: int = 0
    inserted_slugs: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "already_done": self.already_done,
            "processed": self.processed,
            "failed": self.failed,
        }


def truncate_slug(slug: str, max_length: int = constants.MAX_SLUG_LENGTH) -> str:
    """Cut a slug to max_length and drop trailing hyphens."""
    return slug[:max_length].rstrip("-")


def unique_slug(
    candidate: str,
    slug_exists,
    max_length: int = constants.MAX_SLUG_LENGTH,
) -> str:
    """
    Resolve a candidate slug to one not yet in use.

    The candidate is truncated first. If taken, "-1", "-2", ... are
    appended, re-truncating the base so the result stays within
    max_length.

    Args:
        candidate: Slug proposed by extraction
        slug_exists: Callable returning True if a slug is taken
        max_length: Maximum slug length

    Returns:
        Unused slug

    Example:
        unique_slug("foo", {"foo"}.__contains__)  # "foo-1"
    """
    base = truncate_slug(candidate, max_length)
    if base.strip() in ("", ".", ".."):
        base = constants.EMPTY_SLUG_FALLBACK
    slug = base
    counter = 1

    while slug_exists(slug):
        suffix = f"-{counter}"
        slug = truncate_slug(base, max_length - len(suffix)) + suffix
        counter += 1

    return slug


def record_to_row(record: ExtractedRecord, slug: str) -> dict[str, Any]:
    """Map an extracted record to story table columns."""
    return {
        "slug": slug,
        "title": record.title,
        "author": record.author,
        "excerpt": record.excerpt,
        "genre": record.candidate_genre_slug,
        "reading_time": record.reading_time,
        "created_at": record.created_at,
        "word_count": record.word_count,
        "content": record.body,
        "source_identifier": record.source_identifier,
    }


def _insert_one(
    store: StoryStore,
    conn: sqlite3.Connection,
    config: PipelineConfig,
    filename: str,
) -> str | None:
    """Extract and insert one raw document; returns the stored slug or None."""
    html = read_raw_document(config.raw_dir, filename)
    record = extract_record(
        html,
        filename,
        site_url=config.site_url,
        content_selector=config.content_selector,
    )
    if record is None:
        return None

    slug = unique_slug(
        record.candidate_slug,
        lambda s: store.slug_exists(s, conn),
        config.max_slug_length,
    )

    try:
        store.insert_story(conn, record_to_row(record, slug))
    except sqlite3.IntegrityError as e:
        raise PersistenceConflict(filename, slug, str(e)) from e

    return slug


def ingest_raw_documents(store: StoryStore, config: PipelineConfig) -> IngestSummary:
    """
    Insert every raw document that has no stored story.

    Args:
        store: Story table
        config: Pipeline settings (raw_dir, site_url, selector, slug cap)

    Returns:
        IngestSummary for this run
    """
    started = time.monotonic()

    filenames = list_raw_documents(config.raw_dir)
    stored = store.stored_sources()
    pending = [name for name in filenames if name not in stored]

    summary = IngestSummary(total=len(filenames), already_done=len(filenames) - len(pending))
    logger.info(f"Found {summary.total} raw documents in {config.raw_dir}")
    logger.info(f"{summary.already_done} already in DB. {len(pending)} new files pending to parse")

    if not pending:
        logger.info("Database is up to date, nothing to ingest")
        logger.info(log_summary("ingest", item_count=0, **summary.to_dict()))
        return summary

    with store.transaction() as conn:
        for filename in pending:
            try:
                slug = _insert_one(store, conn, config, filename)
            except PersistenceConflict as e:
                logger.error(f"DB error: {e}")
                summary.failed += 1
                summary.errors.append(str(e))
                continue
            except (ExtractionFailure, OSError) as e:
                logger.error(f"Skipping {filename}: {e}")
                summary.failed += 1
                summary.errors.append(str(e))
                continue
            except Exception as e:
                logger.error(f"Unexpected error on {filename}: {e}", exc_info=True)
                summary.failed += 1
                summary.errors.append(f"{filename}: {e}")
                continue

            if slug is None:
                summary.failed += 1
                summary.errors.append(f"{filename}: no content found")
                continue

            summary.processed += 1
            summary.inserted_slugs.append(slug)
            logger.info(f"Inserted: {slug}")

    duration_ms = (time.monotonic() - started) * 1000
    logger.info(
        log_summary(
            "ingest",
            duration_ms=duration_ms,
            item_count=summary.processed,
            **summary.to_dict(),
        )
    )
    return summary
