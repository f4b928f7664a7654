"""Story pipeline

Three-stage content pipeline: crawl story pages, ingest them into SQLite
exactly once, and export a paginated JSON feed.
"""

from story_pipeline import constants
from story_pipeline.config import PipelineConfig
from story_pipeline.logging_utils import configure_logging, log_summary

__all__ = [
    "PipelineConfig",
    "configure_logging",
    "constants",
    "log_summary",
]
