# src/optimizer/cli.py
"""
Command-line interface for the article optimizer

    python -m src.optimizer.cli discover --limit 5
    python -m src.optimizer.cli optimize --limit 5 --exclude-optimized
    python -m src.optimizer.cli check
    python -m src.optimizer.cli show <article_id>
"""
import argparse
import logging
import sys
from typing import List, Optional

from .config import load_config
from .database.db import ArticleDatabase
from .database.db_connection import close_connection, get_db
from .exceptions import OptimizerError
from .logging_config import setup_logging
from .orchestrator import ArticleOptimizer
from .synthesizer import ContentSynthesizer

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Optimize stored articles using top-ranking references")
    parser.add_argument("--log-level", default=None, help="Overrides LOG_LEVEL")
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    sub = parser.add_subparsers(dest="command", required=True)

    discover = sub.add_parser("discover", help="Scrape original articles from the blog and store them")
    discover.add_argument("--limit", type=int, default=5)

    optimize = sub.add_parser("optimize", help="Optimize a batch of stored originals")
    optimize.add_argument("--limit", type=int, default=None, help="Defaults to OPTIMIZER_BATCH_SIZE")
    optimize.add_argument("--exclude-optimized", action="store_true",
                          help="Skip originals that already have an optimized version")
    optimize.add_argument("--skip-check", action="store_true",
                          help="Do not test the inference API before starting")

    sub.add_parser("check", help="Test the inference API connection")

    show = sub.add_parser("show", help="Print the optimized versions of an article")
    show.add_argument("article_id")
    return parser


def display_derivatives(database: ArticleDatabase, article_id: str) -> int:
    """Print an original article and its optimized versions"""
    article = database.get_article(article_id)
    if not article:
        print(f"No article found with ID: {article_id}")
        return 1

    print(f"\nTitle: {article.get('title', 'N/A')}")
    print(f"URL: {article.get('url', 'N/A')}")
    derivatives = database.list_derivatives(article_id)
    print(f"Optimized versions: {len(derivatives)}")

    for idx, derivative in enumerate(derivatives, start=1):
        metadata = derivative.get('metadata') or {}
        print("\n" + "=" * 80)
        print(f"Version {idx}: {derivative.get('title', 'N/A')}")
        print("-" * 80)
        print(f"URL: {derivative.get('url', 'N/A')}")
        print(f"Model: {derivative.get('model', 'N/A')}")
        print(f"Words: {metadata.get('word_count', 'N/A')}, "
              f"reading time: {metadata.get('reading_time', 'N/A')} min")
        for ref in derivative.get('references') or []:
            print(f"  - {ref.get('title')} ({ref.get('url')})")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI function"""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_config(args.env_file)

        if args.command == "check":
            ok = ContentSynthesizer(config).test_connection()
            print("Inference API connection successful" if ok else "Inference API connection failed")
            return 0 if ok else 1

        database = ArticleDatabase(get_db(config))

        if args.command == "show":
            return display_derivatives(database, args.article_id)

        optimizer = ArticleOptimizer(config, database)

        if args.command == "discover":
            report = optimizer.ingest(args.limit)
            print(f"\nStored {len(report.saved)} articles")
            for error in report.errors:
                print(f"  skipped {error['url']}: {error['message']}")
            return 0

        report = optimizer.run(
            limit=args.limit,
            exclude_optimized=args.exclude_optimized,
            check_connection=not args.skip_check,
        )
        print(f"\n{report.summary()}")
        for outcome in report.outcomes:
            line = f"  [{outcome.state.value}] {outcome.title}"
            if outcome.reason:
                line += f" - {outcome.reason}"
            print(line)
        return 0

    except OptimizerError as e:
        logger.error(f"Fatal error: {e.message}")
        return 1
    finally:
        close_connection()


if __name__ == "__main__":
    sys.exit(main())
