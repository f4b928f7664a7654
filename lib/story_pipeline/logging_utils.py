"""
Logging utilities for the pipeline stages.

Provides one-time logging setup for the command line entry point and a
structured summary record that every stage logs when it finishes.
"""

import logging
from typing import Any

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """
    Configure root logging for command line runs.

    Args:
        verbose: Log at DEBUG instead of INFO
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def log_summary(
    operation: str,
    *,
    success: bool = True,
    duration_ms: float | None = None,
    item_count: int | None = None,
    error: str | None = None,
    **kwargs: Any,
) -> dict[str, Any]:
    """
    Create a structured log summary for a pipeline stage.

    Args:
        operation: Name of the stage (e.g., "crawl", "ingest", "export")
        success: Whether the stage finished without a fatal error
        duration_ms: Optional duration in milliseconds
        item_count: Optional count of items processed
        error: Optional error message (will be truncated)
        **kwargs: Additional fields; lists and tuples are logged as counts

    Returns:
        Dictionary suitable for structured logging

    Example:
        ```python
        logger.info(log_summary("ingest", item_count=12, already_done=40, failed=1))
        ```
    """
    summary: dict[str, Any] = {
        "operation": operation,
        "success": success,
    }

    if duration_ms is not None:
        summary["duration_ms"] = round(duration_ms, 2)

    if item_count is not None:
        summary["item_count"] = item_count

    if error:
        summary["error"] = error[:500] if len(error) > 500 else error

    for key, value in kwargs.items():
        if isinstance(value, (str, int, float, bool)):
            summary[key] = value
        elif isinstance(value, (list, tuple)):
            summary[key] = len(value)

    return summary
