"""Configuration for the story pipeline.

Settings live in a single ``PipelineConfig`` dataclass. Values come from
defaults in ``constants``, optionally overridden by ``STORY_PIPELINE_*``
environment variables, and finally by command line flags.

Invalid settings fail fast with ``ConfigurationError`` before any stage
starts work.
"""

import logging
import os
from dataclasses import asdict, dataclass
from typing import Any
from urllib.parse import urlsplit

from story_pipeline import constants
from story_pipeline.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "STORY_PIPELINE_"


@dataclass
class PipelineConfig:
    """
    Settings shared by the crawl, ingest and export stages.

    Attributes:
        target_list_path: Newline-delimited list of URLs to crawl
        ledger_path: Append-only log of successfully fetched URLs
        error_log_path: Append-only log of failed fetches
        raw_dir: Directory holding fetched markup, one file per target
        database_path: SQLite database holding stored stories
        output_dir: Root directory for exported JSON
        worker_count: Number of concurrent crawl workers
        request_delay_ms: Pause after each target inside a worker
        navigation_timeout_ms: Upper bound for a single page load
        challenge_wait_ms: Grace period before re-checking a bot challenge
        page_size: Stories per exported index page
        max_slug_length: Maximum length of a stored slug
        site_url: Canonical origin of the crawled site ("" to derive it)
        content_selector: CSS selector of the story content region
        headless: Run the browser without a window
    """

    target_list_path: str = "urls.txt"
    ledger_path: str = "urls_history.log"
    error_log_path: str = "crawl_errors.log"
    raw_dir: str = "raw_html"
    database_path: str = "scraped_data.db"
    output_dir: str = "out"
    worker_count: int = constants.DEFAULT_WORKER_COUNT
    request_delay_ms: int = constants.DEFAULT_REQUEST_DELAY_MS
    navigation_timeout_ms: int = constants.DEFAULT_NAVIGATION_TIMEOUT_MS
    challenge_wait_ms: int = constants.DEFAULT_CHALLENGE_WAIT_MS
    page_size: int = constants.EXPORT_PAGE_SIZE
    max_slug_length: int = constants.MAX_SLUG_LENGTH
    site_url: str = ""
    content_selector: str = constants.DEFAULT_CONTENT_SELECTOR
    headless: bool = True

    def __post_init__(self):
        self.site_url = self.site_url.rstrip("/")
        self.validate()

    def validate(self) -> None:
        """
        Check numeric bounds and the site URL.

        Raises:
            ConfigurationError: If any setting is out of range
        """
        if self.worker_count < 1:
            raise ConfigurationError(f"worker_count must be at least 1, got {self.worker_count}")
        if self.page_size < 1:
            raise ConfigurationError(f"page_size must be at least 1, got {self.page_size}")
        if self.max_slug_length < 8:
            raise ConfigurationError(
                f"max_slug_length must be at least 8, got {self.max_slug_length}"
            )
        for name in ("request_delay_ms", "navigation_timeout_ms", "challenge_wait_ms"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must not be negative")
        if self.site_url and not is_absolute_url(self.site_url):
            raise ConfigurationError(f"site_url must be an absolute URL, got {self.site_url!r}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PipelineConfig":
        """Create PipelineConfig from a dictionary, ignoring unknown keys."""
        known = {name: data[name] for name in cls.__dataclass_fields__ if name in data}
        return cls(**known)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "PipelineConfig":
        """
        Create PipelineConfig from STORY_PIPELINE_* environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            PipelineConfig with environment overrides applied

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        for name, field_def in cls.__dataclass_fields__.items():
            raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None:
                continue
            if field_def.type in (int, "int"):
                try:
                    values[name] = int(raw)
                except ValueError as e:
                    raise ConfigurationError(
                        f"{ENV_PREFIX}{name.upper()} must be an integer, got {raw!r}"
                    ) from e
            elif field_def.type in (bool, "bool"):
                values[name] = raw.strip().lower() in ("1", "true", "yes")
            else:
                values[name] = raw.strip()

        if values:
            logger.debug(f"Environment overrides: {sorted(values)}")
        return cls(**values)


def is_absolute_url(value: str) -> bool:
    """Return True for http(s) URLs with a host."""
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def load_target_list(path: str) -> list[str]:
    """
    Read the newline-delimited target list.

    Blank lines are ignored and duplicate URLs are collapsed, keeping the
    first occurrence.

    Args:
        path: Path to the target list file

    Returns:
        Ordered list of unique absolute URLs

    Raises:
        ConfigurationError: If the file cannot be read or holds a non-URL line
    """
    try:
        with open(path, encoding="utf-8") as fh:
            lines = fh.read().splitlines()
    except OSError as e:
        raise ConfigurationError(f"Cannot read target list {path}: {e}") from e

    targets: dict[str, None] = {}
    for line_no, line in enumerate(lines, start=1):
        url = line.strip()
        if not url:
            continue
        if not is_absolute_url(url):
            raise ConfigurationError(f"{path}:{line_no}: not an absolute URL: {url!r}")
        targets.setdefault(url, None)

    return list(targets)
