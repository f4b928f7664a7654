"""
Command line entry point for the story pipeline.

Usage:
    story-pipeline crawl [--force] [--urls PATH] [--workers N]
    story-pipeline ingest
    story-pipeline export
    story-pipeline run [--force] [--urls PATH] [--workers N]

`run` executes crawl, ingest and export in order and stops at the first
configuration error.
"""

import argparse
import logging
import sys

from story_pipeline.config import PipelineConfig
from story_pipeline.exceptions import ConfigurationError
from story_pipeline.export import export_feed
from story_pipeline.ingestion import ingest_raw_documents
from story_pipeline.logging_utils import configure_logging
from story_pipeline.scraper.crawler import crawl
from story_pipeline.scraper.models import CrawlOptions
from story_pipeline.storage import StoryStore

logger = logging.getLogger(__name__)

RULE = "=" * 60


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="story-pipeline",
        description="Fetch story pages, load them into SQLite and export a JSON feed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Crawl only new URLs from urls.txt with 4 workers
    story-pipeline crawl

    # Re-fetch everything from a patch list
    story-pipeline crawl --force --urls patch.txt

    # Full pipeline
    story-pipeline run --workers 2
""",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    crawl_flags = argparse.ArgumentParser(add_help=False)
    crawl_flags.add_argument(
        "--force",
        action="store_true",
        help="Ignore the fetch ledger and existing raw documents",
    )
    crawl_flags.add_argument(
        "--urls",
        dest="target_list_path",
        default=None,
        help="Alternate target list (default: urls.txt)",
    )
    crawl_flags.add_argument(
        "--workers",
        dest="worker_count",
        type=int,
        default=None,
        help="Number of concurrent crawl workers",
    )

    subparsers.add_parser("crawl", parents=[crawl_flags], help="Fetch pending URLs")
    subparsers.add_parser("ingest", help="Load new raw documents into the database")
    subparsers.add_parser("export", help="Regenerate the JSON feed")
    subparsers.add_parser("run", parents=[crawl_flags], help="Crawl, ingest and export")

    return parser


def crawl_options_from_args(args: argparse.Namespace, config: PipelineConfig) -> CrawlOptions:
    return CrawlOptions(
        force=args.force,
        target_list_path=args.target_list_path or config.target_list_path,
        worker_count=args.worker_count if args.worker_count is not None else config.worker_count,
    )


def _print_summary(title: str, rows: dict) -> None:
    print("\n" + RULE)
    print(title)
    print(RULE)
    for label, value in rows.items():
        print(f"{label + ':':<16} {value}")
    print(RULE)


def run_crawl(args: argparse.Namespace, config: PipelineConfig) -> None:
    summary = crawl(crawl_options_from_args(args, config), config)
    _print_summary(
        "CRAWL SUMMARY",
        {
            "Total": summary.total,
            "Already done": summary.already_done,
            "Fetched": summary.succeeded,
            "Failed": summary.failed,
        },
    )


def run_ingest(config: PipelineConfig) -> None:
    store = StoryStore(config.database_path)
    summary = ingest_raw_documents(store, config)
    _print_summary(
        "INGEST SUMMARY",
        {
            "Total": summary.total,
            "Already done": summary.already_done,
            "Inserted": summary.processed,
            "Failed": summary.failed,
        },
    )


def run_export(config: PipelineConfig) -> None:
    store = StoryStore(config.database_path)
    summary = export_feed(store, config.output_dir, page_size=config.page_size)
    _print_summary(
        "EXPORT SUMMARY",
        {
            "Total": summary.stories + summary.skipped,
            # Every export regenerates the full feed
            "Already done": 0,
            "Exported": summary.stories,
            "Pages": summary.latest_pages,
            "Genres": summary.genres,
            "Failed": summary.skipped,
        },
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = PipelineConfig.from_env()

        if args.command in ("crawl", "run"):
            logger.info("Phase 0: fetching pages")
            run_crawl(args, config)
        if args.command in ("ingest", "run"):
            logger.info("Phase 1: parsing raw documents and loading the database")
            run_ingest(config)
        if args.command in ("export", "run"):
            logger.info("Phase 2: exporting the database to JSON")
            run_export(config)

    except ConfigurationError as e:
        logger.error(f"Pipeline halted due to configuration error: {e}")
        print(f"\nPipeline halted: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
