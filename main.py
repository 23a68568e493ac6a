"""CLI entry point for the applicant ranker."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError

from applicant_ranker.core.config import Settings
from applicant_ranker.core.db import init_db, load_dataset
from applicant_ranker.core.exceptions import NotFoundError
from applicant_ranker.core.schemas import Tier
from applicant_ranker.pipeline.ranking import ApplicantRanker, export_ranking_json
from applicant_ranker.sources.sqlite import SQLiteSource


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML file (default: built-in settings)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Applicant ranker - score and rank job applicants against job requirements",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- init-db ---
    init_parser = subparsers.add_parser("init-db", help="Create the database tables")
    _add_common(init_parser)

    # --- load ---
    load_parser = subparsers.add_parser(
        "load",
        help="Load jobs, candidates and applications from a YAML file",
    )
    load_parser.add_argument("--data", required=True, help="Path to dataset YAML file")
    _add_common(load_parser)

    # --- rank ---
    rank_parser = subparsers.add_parser("rank", help="Rank the applicants for a job")
    rank_parser.add_argument("job_id")
    rank_parser.add_argument(
        "--min-score", type=int, default=0,
        help="Drop applicants scoring below this (default: 0)",
    )
    rank_parser.add_argument(
        "--tier", choices=[t.value for t in Tier],
        help="Only keep applicants in this tier",
    )
    rank_parser.add_argument(
        "--include-withdrawn", action="store_true",
        help="Also score withdrawn applications",
    )
    rank_parser.add_argument(
        "--limit", type=non_negative_int, default=None,
        help="Maximum number of applicants to return (default: from settings)",
    )
    _add_common(rank_parser)

    # --- stats ---
    stats_parser = subparsers.add_parser("stats", help="Applicant statistics for a job")
    stats_parser.add_argument("job_id")
    _add_common(stats_parser)

    # --- compare ---
    compare_parser = subparsers.add_parser("compare", help="Compare two applicants side by side")
    compare_parser.add_argument("job_id")
    compare_parser.add_argument("candidate1", help="User id of the first candidate")
    compare_parser.add_argument("candidate2", help="User id of the second candidate")
    _add_common(compare_parser)

    # --- score ---
    score_parser = subparsers.add_parser("score", help="Score a single application")
    score_parser.add_argument("job_id")
    score_parser.add_argument("application_id")
    _add_common(score_parser)

    return parser.parse_args(argv)


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        msg = f"must be >= 0, got {number}"
        raise argparse.ArgumentTypeError(msg)
    return number


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings(path: str | None) -> Settings:
    if path is None:
        return Settings()
    return Settings.from_yaml(path)


def cmd_load(settings: Settings, data_path: str) -> None:
    """Handle load subcommand."""
    path = Path(data_path)
    if not path.exists():
        msg = f"Data file not found: {path}"
        raise FileNotFoundError(msg)
    raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}

    conn = init_db(settings.database.path)
    try:
        counts = load_dataset(conn, raw)
    finally:
        conn.close()
    print(f"Loaded {counts['jobs']} jobs, {counts['candidates']} candidates, "
          f"{counts['applications']} applications into {settings.database.path}")


async def run_query(settings: Settings, args: argparse.Namespace) -> str:
    """Run a ranking query and return its JSON output."""
    conn = init_db(settings.database.path)
    try:
        source = SQLiteSource(conn)
        ranker = ApplicantRanker(source, source, settings)

        result: BaseModel
        if args.command == "rank":
            ranked = await ranker.rank_applicants_for_job(
                args.job_id,
                min_score=args.min_score,
                tier=args.tier,
                include_withdrawn=args.include_withdrawn,
                limit=args.limit,
            )
            return export_ranking_json(ranked)
        if args.command == "stats":
            result = await ranker.get_applicant_stats(args.job_id)
        elif args.command == "compare":
            result = await ranker.compare_candidates(args.job_id, args.candidate1, args.candidate2)
        else:
            result = await ranker.score_application(args.job_id, args.application_id)
        return json.dumps(result.model_dump(mode="json"), indent=2)
    finally:
        conn.close()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValidationError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "init-db":
        init_db(settings.database.path).close()
        print(f"Database ready at {settings.database.path}")
        return

    if args.command == "load":
        try:
            cmd_load(settings, args.data)
        except (FileNotFoundError, ValidationError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        return

    try:
        output = asyncio.run(run_query(settings, args))
    except NotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(output)


if __name__ == "__main__":
    main()
