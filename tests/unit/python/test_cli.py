"""Unit tests for the command line entry point."""

from unittest.mock import MagicMock, patch

import pytest

from story_pipeline import cli
from story_pipeline.config import PipelineConfig
from story_pipeline.exceptions import ConfigurationError
from story_pipeline.export import ExportSummary
from story_pipeline.ingestion import IngestSummary
from story_pipeline.scraper.models import CrawlSummary


@pytest.fixture
def stages():
    """Patch every stage so main() only routes commands."""
    with (
        patch("story_pipeline.cli.crawl", return_value=CrawlSummary(total=2, succeeded=2)) as crawl,
        patch("story_pipeline.cli.ingest_raw_documents", return_value=IngestSummary()) as ingest,
        patch("story_pipeline.cli.export_feed", return_value=ExportSummary()) as export,
        patch("story_pipeline.cli.StoryStore", return_value=MagicMock()) as store,
        patch("story_pipeline.cli.configure_logging"),
    ):
        yield {"crawl": crawl, "ingest": ingest, "export": export, "store": store}


class TestBuildParser:
    """Tests for build_parser function."""

    def test_crawl_flags(self):
        args = cli.build_parser().parse_args(
            ["crawl", "--force", "--urls", "patch.txt", "--workers", "2"]
        )

        assert args.command == "crawl"
        assert args.force is True
        assert args.target_list_path == "patch.txt"
        assert args.worker_count == 2

    def test_crawl_defaults(self):
        args = cli.build_parser().parse_args(["crawl"])

        assert args.force is False
        assert args.target_list_path is None
        assert args.worker_count is None

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_export_has_no_crawl_flags(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["export", "--force"])


class TestCrawlOptionsFromArgs:
    """Tests for crawl_options_from_args function."""

    def test_falls_back_to_config(self):
        args = cli.build_parser().parse_args(["crawl"])
        config = PipelineConfig(target_list_path="list.txt", worker_count=3)

        options = cli.crawl_options_from_args(args, config)

        assert options.target_list_path == "list.txt"
        assert options.worker_count == 3
        assert options.force is False

    def test_flags_override_config(self):
        args = cli.build_parser().parse_args(["crawl", "--urls", "patch.txt", "--workers", "1"])

        options = cli.crawl_options_from_args(args, PipelineConfig(worker_count=3))

        assert options.target_list_path == "patch.txt"
        assert options.worker_count == 1


class TestMain:
    """Tests for main function."""

    def test_crawl_only(self, stages, capsys):
        assert cli.main(["crawl"]) == 0

        stages["crawl"].assert_called_once()
        stages["ingest"].assert_not_called()
        stages["export"].assert_not_called()
        assert "CRAWL SUMMARY" in capsys.readouterr().out

    def test_ingest_only(self, stages):
        assert cli.main(["ingest"]) == 0

        stages["crawl"].assert_not_called()
        stages["ingest"].assert_called_once()

    def test_export_uses_page_size(self, stages, monkeypatch):
        monkeypatch.setenv("STORY_PIPELINE_PAGE_SIZE", "5")

        assert cli.main(["export"]) == 0

        assert stages["export"].call_args[1]["page_size"] == 5

    def test_run_executes_all_stages(self, stages):
        assert cli.main(["run", "--workers", "2"]) == 0

        options = stages["crawl"].call_args[0][0]
        assert options.worker_count == 2
        stages["ingest"].assert_called_once()
        stages["export"].assert_called_once()

    def test_configuration_error_halts(self, stages, capsys):
        stages["crawl"].side_effect = ConfigurationError("Cannot read target list urls.txt")

        assert cli.main(["run"]) == 1

        stages["ingest"].assert_not_called()
        stages["export"].assert_not_called()
        assert "Pipeline halted: Cannot read target list" in capsys.readouterr().err

    def test_bad_environment_halts(self, stages, monkeypatch):
        monkeypatch.setenv("STORY_PIPELINE_WORKER_COUNT", "zero")

        assert cli.main(["crawl"]) == 1
        stages["crawl"].assert_not_called()

    @pytest.mark.parametrize("command", ["crawl", "ingest", "export"])
    def test_every_banner_has_stage_counters(self, stages, capsys, command):
        assert cli.main([command]) == 0

        out = capsys.readouterr().out
        for label in ("Total:", "Already done:", "Failed:"):
            assert label in out
