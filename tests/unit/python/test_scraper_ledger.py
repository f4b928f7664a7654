"""Unit tests for the fetch ledger and failure log."""

import threading
from unittest.mock import patch

from story_pipeline.scraper.ledger import FailureLog, FetchLedger


class TestFetchLedger:
    """Tests for FetchLedger class."""

    def test_load_missing_ledger(self, tmp_path):
        ledger = FetchLedger(str(tmp_path / "history.log"))
        assert ledger.load() == set()

    def test_append_then_load(self, tmp_path):
        ledger = FetchLedger(str(tmp_path / "history.log"))

        ledger.append("https://example.com/a/one/")
        ledger.append("https://example.com/a/two/")

        assert ledger.load() == {"https://example.com/a/one/", "https://example.com/a/two/"}

    def test_append_only(self, tmp_path):
        path = tmp_path / "history.log"
        path.write_text("https://example.com/a/old/\n")

        FetchLedger(str(path)).append("https://example.com/a/new/")

        assert path.read_text() == "https://example.com/a/old/\nhttps://example.com/a/new/\n"

    def test_ignores_blank_lines(self, tmp_path):
        path = tmp_path / "history.log"
        path.write_text("\nhttps://example.com/a/one/\n\n  \n")

        assert FetchLedger(str(path)).load() == {"https://example.com/a/one/"}

    def test_concurrent_appends_do_not_interleave(self, tmp_path):
        path = tmp_path / "history.log"
        ledger = FetchLedger(str(path))
        urls = [f"https://example.com/a/story-{i}/" for i in range(200)]

        threads = [
            threading.Thread(target=lambda chunk=urls[i::4]: [ledger.append(u) for u in chunk])
            for i in range(4)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        lines = path.read_text().splitlines()
        assert sorted(lines) == sorted(urls)

    def test_creates_parent_directory(self, tmp_path):
        ledger = FetchLedger(str(tmp_path / "state" / "history.log"))
        ledger.append("https://example.com/a/one/")
        assert ledger.load() == {"https://example.com/a/one/"}


class TestFailureLog:
    """Tests for FailureLog class."""

    def test_writes_url_and_message(self, tmp_path):
        path = tmp_path / "errors.log"

        assert FailureLog(str(path)).append("https://example.com/a/x/", "Timed out") is True

        assert path.read_text() == "https://example.com/a/x/ | Timed out\n"

    def test_multiline_message_kept_on_one_line(self, tmp_path):
        path = tmp_path / "errors.log"

        FailureLog(str(path)).append("https://example.com/a/x/", "first\nsecond")

        assert path.read_text().count("\n") == 1

    def test_write_error_is_not_fatal(self, tmp_path):
        log = FailureLog(str(tmp_path / "errors.log"))

        with patch("story_pipeline.scraper.ledger._append_line", side_effect=OSError("disk full")):
            assert log.append("https://example.com/a/x/", "boom") is False
