"""
Feed export.

Rebuilds the JSON feed from the story table on every run:

- out/latest/pages/<n>.json         every story, newest first
- out/genres/<genre>/pages/<n>.json same ordering, one genre at a time
- out/stories/<slug>.json           one full document per story

Stories are ordered by creation time descending, then id descending.
A creation time that cannot be parsed counts as the run's "now" for
ordering and display; the stored value is left untouched.
"""

import json
import logging
import math
import os
import shutil
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from story_pipeline import constants
from story_pipeline.logging_utils import log_summary
from story_pipeline.storage import StoredStory, StoryStore
from story_pipeline.timestamps import format_date_string, format_iso, parse_timestamp

logger = logging.getLogger(__name__)


@dataclass
class ExportSummary:
    """Counters for one export run."""

    stories: int = 0
    latest_pages: int = 0
    genres: int = 0
    genre_pages: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "stories": self.stories,
            "latest_pages": self.latest_pages,
            "genres": self.genres,
            "genre_pages": self.genre_pages,
            "skipped": self.skipped,
        }


def is_safe_component(name: str | None) -> bool:
    """True if name can be used as a single path component."""
    if not name or name in (".", ".."):
        return False
    return "/" not in name and "\\" not in name and "\x00" not in name


def effective_timestamp(story: StoredStory, now: datetime) -> datetime:
    return parse_timestamp(story.created_at) or now


def order_stories(stories: list[StoredStory], now: datetime) -> list[StoredStory]:
    """Sort newest first, breaking ties by id descending."""
    return sorted(
        stories,
        key=lambda story: (effective_timestamp(story, now), story.id),
        reverse=True,
    )


def paginate(items: list, page_size: int) -> list[list]:
    """Split items into consecutive pages of page_size (last page may be short)."""
    total_pages = math.ceil(len(items) / page_size)
    return [items[i * page_size : (i + 1) * page_size] for i in range(total_pages)]


def index_entry(story: StoredStory, now: datetime) -> dict[str, Any]:
    """Build the lightweight index entry for a story."""
    posted = effective_timestamp(story, now)
    return {
        "id": story.slug,
        "title": story.title,
        "link": f"/story/{story.slug}",
        "author": story.author or constants.EXPORT_AUTHOR_FALLBACK,
        "authorLink": None,
        "description": story.excerpt or "",
        "rating": constants.EXPORT_RATING_PLACEHOLDER,
        "reads": constants.EXPORT_READS_PLACEHOLDER,
        "posted": format_date_string(posted),
        "posted_iso": format_iso(posted),
        "tags": [story.genre],
    }


def write_json(path: str, data: Any) -> None:
    """Write JSON with two-space indentation and a trailing newline."""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2, ensure_ascii=False)
        fh.write("\n")


class FeedExporter:
    """Writes the paginated feed and story documents."""

    def __init__(self, store: StoryStore, output_dir: str, page_size: int = constants.EXPORT_PAGE_SIZE):
        self.store = store
        self.output_dir = output_dir
        self.page_size = page_size

    def _reset_namespaces(self) -> None:
        for namespace in (
            constants.LATEST_NAMESPACE,
            constants.GENRES_NAMESPACE,
            constants.STORIES_NAMESPACE,
        ):
            shutil.rmtree(os.path.join(self.output_dir, namespace), ignore_errors=True)

    def _write_pages(self, pages_dir: str, stories: list[StoredStory], now: datetime) -> int:
        pages = paginate(stories, self.page_size)
        for number, page in enumerate(pages, start=1):
            write_json(
                os.path.join(pages_dir, f"{number}.json"),
                [index_entry(story, now) for story in page],
            )
        return len(pages)

    def export(self, now: datetime | None = None) -> ExportSummary:
        """
        Regenerate every export artifact.

        Args:
            now: Fallback instant for unparsable timestamps (defaults to the
                current time, taken once per run)

        Returns:
            ExportSummary for this run
        """
        started = time.monotonic()
        now = now or datetime.now(UTC)
        summary = ExportSummary()

        self._reset_namespaces()

        stories = []
        for story in self.store.all_stories():
            if not is_safe_component(story.slug):
                logger.warning(f"Skipping story {story.id}: unsafe slug {story.slug!r}")
                summary.skipped += 1
                continue
            stories.append(story)

        ordered = order_stories(stories, now)

        logger.info("Generating global 'latest' index")
        latest_dir = os.path.join(self.output_dir, constants.LATEST_NAMESPACE, "pages")
        summary.latest_pages = self._write_pages(latest_dir, ordered, now)

        stories_dir = os.path.join(self.output_dir, constants.STORIES_NAMESPACE)
        for story in ordered:
            document = index_entry(story, now)
            document["content"] = story.content
            write_json(os.path.join(stories_dir, f"{story.slug}.json"), document)
            summary.stories += 1

        logger.info(f"Saved {summary.latest_pages} pages to {latest_dir}")

        by_genre: dict[str, list[StoredStory]] = {}
        for story in ordered:
            if not story.genre:
                continue
            by_genre.setdefault(story.genre, []).append(story)

        logger.info(f"Generating category indexes for {len(by_genre)} unique genres")
        for genre in sorted(by_genre):
            if not is_safe_component(genre):
                logger.warning(f"Skipping genre with unsafe name {genre!r}")
                continue
            pages_dir = os.path.join(self.output_dir, constants.GENRES_NAMESPACE, genre, "pages")
            # Sub-lists of an ordered list keep the same order
            page_count = self._write_pages(pages_dir, by_genre[genre], now)
            summary.genres += 1
            summary.genre_pages += page_count
            logger.info(f"Saved genres/{genre}/pages/ ({page_count} pages)")

        duration_ms = (time.monotonic() - started) * 1000
        logger.info(
            log_summary(
                "export",
                duration_ms=duration_ms,
                item_count=summary.stories,
                **summary.to_dict(),
            )
        )
        return summary


def export_feed(
    store: StoryStore,
    output_dir: str,
    page_size: int = constants.EXPORT_PAGE_SIZE,
    now: datetime | None = None,
) -> ExportSummary:
    """Regenerate the feed for the given store."""
    return FeedExporter(store, output_dir, page_size=page_size).export(now=now)
