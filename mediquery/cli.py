# MediQuery - Command Line
# =========================
"""
Command-line entry points.

Usage:
    mediquery-ask "how many doctors are there"
    mediquery-ask "list all hospitals" --json

    mediquery-seed data/hospital.duckdb
"""

import sys
import json
import argparse
import logging

from .engine.config import EngineConfig
from .engine.pipeline import create_pipeline
from .data.loader import seed_demo_database

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def ask_main(argv=None):
    """Answer one question and print the response."""
    parser = argparse.ArgumentParser(
        description='MediQuery - ask the hospital database a question',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  mediquery-ask "list all hospitals"
  mediquery-ask "doctors with at least one patient" --json
  MEDIQUERY_DB_PATH=data/hospital.duckdb mediquery-ask "how many patients"
        """
    )
    parser.add_argument('question', help='Natural-language question')
    parser.add_argument('--env-file', help='Path to a .env file (default: ./.env)')
    parser.add_argument('--json', action='store_true', help='Print the raw JSON response')
    parser.add_argument('--no-sql', action='store_true', help='Hide the generated SQL')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose output')

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    pipeline = create_pipeline(EngineConfig.from_env(args.env_file))
    response = pipeline.process(args.question)

    if args.json:
        print(json.dumps(response.to_dict(), indent=2, default=str))
    else:
        print(response.format_response(include_sql=not args.no_sql))

    return 0 if response.success else 1


def seed_main(argv=None):
    """Create the demo hospital database."""
    parser = argparse.ArgumentParser(
        description='MediQuery - create the demo hospital DuckDB database'
    )
    parser.add_argument('output', help='Output DuckDB database path')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose output')

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    results = seed_demo_database(args.output)
    for result in results:
        status = "ok" if result.success else f"FAILED: {result.error}"
        print(f"{result.table_name}: {result.rows_loaded} rows ({status})")

    return 0 if all(r.success for r in results) else 1


if __name__ == '__main__':
    sys.exit(ask_main())
