"""
Data models for the crawl and extraction stages.

These models represent targets and records as they flow through the pipeline:
target list -> crawl -> raw document -> extraction -> ingestion
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TargetStatus(str, Enum):
    """Outcome for an individual target in one crawl run."""

    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class CrawlOptions:
    """
    Per-invocation crawl settings supplied by the command line.

    Attributes:
        force: Ignore the ledger and existing raw documents
        target_list_path: Path of the target list to crawl
        worker_count: Number of concurrent workers
    """

    force: bool = False
    target_list_path: str = "urls.txt"
    worker_count: int = 4

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "force": self.force,
            "target_list_path": self.target_list_path,
            "worker_count": self.worker_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CrawlOptions":
        """Create CrawlOptions from dictionary."""
        return cls(
            force=bool(data.get("force", False)),
            target_list_path=data.get("target_list_path", "urls.txt"),
            worker_count=int(data.get("worker_count", 4)),
        )


@dataclass
class FetchResult:
    """Markup loaded by a browser session."""

    url: str
    content: str
    title: str = ""


@dataclass
class CrawlFailure:
    """A target that could not be fetched in this run."""

    url: str
    error: str
    worker: int = 0


@dataclass
class CrawlSummary:
    """
    Counters for one crawl run.

    Attributes:
        total: Unique targets in the target list
        already_done: Targets skipped by the ledger or an existing raw document
        succeeded: Targets fetched and persisted in this run
        failures: Targets that failed in this run
        force: Whether skip checks were disabled
    """

    total: int = 0
    already_done: int = 0
    succeeded: int = 0
    failures: list[CrawlFailure] = field(default_factory=list)
    force: bool = False

    @property
    def pending(self) -> int:
        return self.total - self.already_done

    @property
    def failed(self) -> int:
        return len(self.failures)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "total": self.total,
            "already_done": self.already_done,
            "pending": self.pending,
            "processed": self.succeeded,
            "failed": self.failed,
            "force": self.force,
        }


@dataclass
class ExtractedRecord:
    """
    Structured record pulled out of one raw document.

    Produced fresh on every ingestion pass and never stored directly.

    Attributes:
        source_identifier: Raw document filename the record came from
        candidate_slug: Slug before uniqueness resolution
        candidate_genre_slug: Genre slug from the identity URL
        title: Story title
        author: Author display name
        excerpt: Short description
        genre_name: Human-readable genre derived from the genre slug
        reading_time: "N min" label
        created_at: Publication timestamp as found (ISO 8601 when defaulted)
        word_count: Whitespace-delimited tokens in the content region
        body: Markdown body
    """

    source_identifier: str
    candidate_slug: str
    candidate_genre_slug: str
    title: str
    author: str
    excerpt: str
    genre_name: str
    reading_time: str
    created_at: str
    word_count: int
    body: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "source_identifier": self.source_identifier,
            "candidate_slug": self.candidate_slug,
            "candidate_genre_slug": self.candidate_genre_slug,
            "title": self.title,
            "author": self.author,
            "excerpt": self.excerpt,
            "genre_name": self.genre_name,
            "reading_time": self.reading_time,
            "created_at": self.created_at,
            "word_count": self.word_count,
            "body": self.body,
        }
