"""
Crawl and extraction for the story pipeline.

Architecture:
- Dedup: derived filenames, pending-set computation and worker partitioning
- Ledger: append-only success and failure logs shared by workers
- Fetcher: Playwright browser session with bot-challenge handling
- Crawler: worker pool that fetches, persists and records targets
- Extractor: HTML cleanup, Markdown conversion and field resolution
"""

from story_pipeline.scraper.models import (
    CrawlFailure,
    CrawlOptions,
    CrawlSummary,
    ExtractedRecord,
    FetchResult,
    TargetStatus,
)

__all__ = [
    "CrawlFailure",
    "CrawlOptions",
    "CrawlSummary",
    "ExtractedRecord",
    "FetchResult",
    "TargetStatus",
]
