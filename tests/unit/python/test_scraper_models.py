"""Unit tests for crawl and extraction data models."""

from story_pipeline.scraper.models import (
    CrawlFailure,
    CrawlOptions,
    CrawlSummary,
    TargetStatus,
)


class TestTargetStatus:
    """Tests for TargetStatus enum."""

    def test_values(self):
        assert TargetStatus.COMPLETED.value == "completed"
        assert TargetStatus.FAILED.value == "failed"

    def test_string_comparison(self):
        assert TargetStatus.COMPLETED == "completed"


class TestCrawlOptions:
    """Tests for CrawlOptions dataclass."""

    def test_defaults(self):
        options = CrawlOptions()

        assert options.force is False
        assert options.target_list_path == "urls.txt"
        assert options.worker_count == 4

    def test_round_trip(self):
        options = CrawlOptions(force=True, target_list_path="patch.txt", worker_count=2)
        assert CrawlOptions.from_dict(options.to_dict()) == options

    def test_from_dict_defaults(self):
        assert CrawlOptions.from_dict({}) == CrawlOptions()

    def test_from_dict_coerces(self):
        options = CrawlOptions.from_dict({"force": 1, "worker_count": "3"})

        assert options.force is True
        assert options.worker_count == 3


class TestCrawlSummary:
    """Tests for CrawlSummary dataclass."""

    def test_derived_counts(self):
        summary = CrawlSummary(
            total=10,
            already_done=4,
            succeeded=5,
            failures=[CrawlFailure(url="https://x.com/a/b/", error="timeout", worker=1)],
        )

        assert summary.pending == 6
        assert summary.failed == 1

    def test_to_dict(self):
        summary = CrawlSummary(total=3, already_done=1, succeeded=2, force=True)

        assert summary.to_dict() == {
            "total": 3,
            "already_done": 1,
            "pending": 2,
            "processed": 2,
            "failed": 0,
            "force": True,
        }
