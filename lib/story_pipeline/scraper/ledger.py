"""
Append-only logs written by the crawl stage.

FetchLedger records every target whose raw document has been persisted.
FailureLog records targets that failed, one "url | message" line each.
Both are shared by all crawl workers; each append is a single write of a
single line so concurrent appends never interleave.
"""

import logging
import os
import threading

logger = logging.getLogger(__name__)


def _append_line(path: str, line: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "a", encoding="utf-8") as fh:
        fh.write(line + "\n")
        fh.flush()
        os.fsync(fh.fileno())


class FetchLedger:
    """Durable set of successfully fetched target URLs."""

    def __init__(self, path: str):
        """
        Initialize the ledger.

        Args:
            path: Ledger file path (created on first append)
        """
        self.path = path
        self._lock = threading.Lock()

    def load(self) -> set[str]:
        """
        Read every URL recorded so far.

        Returns:
            Set of URLs; empty if the ledger does not exist yet
        """
        try:
            with open(self.path, encoding="utf-8") as fh:
                return {line.strip() for line in fh if line.strip()}
        except FileNotFoundError:
            return set()

    def append(self, url: str) -> None:
        """
        Record a fetched URL.

        Call only after the raw document for the URL is on disk.

        Args:
            url: Target URL

        Raises:
            OSError: If the ledger cannot be written
        """
        with self._lock:
            _append_line(self.path, url.strip())


class FailureLog:
    """Best-effort log of failed targets."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def append(self, url: str, message: str) -> bool:
        """
        Record a failed target.

        Write errors are logged and otherwise ignored.

        Returns:
            True if the line was written
        """
        # One record per line
        message = " ".join(str(message).split())
        try:
            with self._lock:
                _append_line(self.path, f"{url} | {message}")
            return True
        except OSError as e:
            logger.warning(f"Could not write failure log {self.path}: {e}")
            return False
