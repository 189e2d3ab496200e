"""
Administrator command line for the construction financial core.

Usage:
    python -m scripts.cli init-db
    python -m scripts.cli rate 2025-01-15
    python -m scripts.cli payroll WEEK_ID
    python -m scripts.cli project PROJECT_ID [--year 2025]
    python -m scripts.cli portfolio [--year 2025]
    python -m scripts.cli backfill [--dry-run]

Global options --database-url and --config select the database and the
YAML configuration file.  Results are printed to stdout as JSON; errors are
printed to stderr as JSON with the exception code, and exit status 1.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable, TextIO

from construction_config import CoreConfiguration, get_active_config
from construction_kernel.db import create_tables, init_engine_from_url, session_scope
from construction_kernel.domain.clock import Clock, SystemClock
from construction_kernel.exceptions import BackfillAbortedError, ConstructionKernelError
from construction_kernel.logging_config import configure_logging, get_logger
from construction_modules.payroll import PayrollAggregator
from construction_modules.project import ProjectFinancialsAggregator
from construction_modules.rates import HttpRateFeed, RateFeed, RateResolver
from construction_batch import RateBackfillJob
from scripts.cli import config as cli_config
from scripts.cli.util import emit_json, iso_date

logger = get_logger("cli")

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m scripts.cli",
        description="Construction finance core: payroll, project financials, rate backfill.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--database-url",
        default=cli_config.DB_URL,
        help="SQLAlchemy database URL (default: CONSTRUCTION_DB_URL or ./construction.db).",
    )
    parser.add_argument(
        "--config",
        default=cli_config.CONFIG_PATH,
        help="YAML configuration file (default: packaged default.yaml).",
    )
    parser.add_argument(
        "--log-level",
        choices=_LOG_LEVELS,
        default="WARNING",
        help="Structured log level written to stderr (default: WARNING).",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create all tables.")

    rate = sub.add_parser("rate", help="Resolve the exchange rate for a date.")
    rate.add_argument("date", type=iso_date, help="YYYY-MM-DD")

    payroll = sub.add_parser("payroll", help="Aggregate one payroll week.")
    payroll.add_argument("week_id")

    project = sub.add_parser("project", help="Profit and loss of one project.")
    project.add_argument("project_id")
    project.add_argument("--year", type=int, default=None)

    portfolio = sub.add_parser("portfolio", help="Profit and loss of all projects.")
    portfolio.add_argument("--year", type=int, default=None)

    backfill = sub.add_parser("backfill", help="Backfill missing expense exchange rates.")
    backfill.add_argument(
        "--dry-run",
        action="store_true",
        help="Count corrections without writing them.",
    )
    return parser


def _resolver(config: CoreConfiguration, feed: RateFeed | None) -> RateResolver:
    if feed is None:
        feed = HttpRateFeed(
            config.rates.feed_url, timeout=float(config.rates.timeout_seconds),
        )
    return RateResolver(feed, lookback_days=config.rates.lookback_days)


def _cmd_init_db(args, config, session, feed, clock, out) -> int:
    create_tables()
    emit_json({"status": "ok", "databaseUrl": args.database_url}, out)
    return 0


def _cmd_rate(args, config, session, feed, clock, out) -> int:
    resolver = _resolver(config, feed)
    rate = resolver.resolve(args.date)
    emit_json({"date": args.date, "rate": rate, "resolved": rate > 0}, out)
    return 0


def _cmd_payroll(args, config, session, feed, clock, out) -> int:
    aggregator = PayrollAggregator(
        session,
        currency=config.currency,
        hours_per_day=config.payroll.hours_per_day,
        money_quantum=config.precision.money_quantum,
    )
    emit_json(aggregator.aggregate_by_id(args.week_id).to_dict(), out)
    return 0


def _project_aggregator(config, session, feed, clock) -> ProjectFinancialsAggregator:
    return ProjectFinancialsAggregator(
        session,
        rate_resolver=_resolver(config, feed),
        clock=clock,
        currency=config.currency,
        default_exchange_rate=config.rates.default_exchange_rate,
        hours_per_day=config.payroll.hours_per_day,
        money_quantum=config.precision.money_quantum,
        percent_quantum=config.precision.percent_quantum,
    )


def _cmd_project(args, config, session, feed, clock, out) -> int:
    aggregator = _project_aggregator(config, session, feed, clock)
    emit_json(aggregator.aggregate(args.project_id, args.year).to_dict(), out)
    return 0


def _cmd_portfolio(args, config, session, feed, clock, out) -> int:
    aggregator = _project_aggregator(config, session, feed, clock)
    emit_json(aggregator.summarize_portfolio(args.year).to_dict(), out)
    return 0


def _cmd_backfill(args, config, session, feed, clock, out) -> int:
    job = RateBackfillJob(
        session,
        _resolver(config, feed),
        currency=config.currency,
        plausibility_threshold=config.backfill.plausibility_threshold,
        batch_size=config.backfill.batch_size,
        dry_run=args.dry_run,
    )
    try:
        result = job.run()
    except BackfillAbortedError as exc:
        emit_json({"error": exc.code, "message": str(exc), **exc.partial.to_dict()}, sys.stderr)
        return 1
    emit_json(result.to_dict(), out)
    return 0


_COMMANDS: dict[str, Callable[..., int]] = {
    "init-db": _cmd_init_db,
    "rate": _cmd_rate,
    "payroll": _cmd_payroll,
    "project": _cmd_project,
    "portfolio": _cmd_portfolio,
    "backfill": _cmd_backfill,
}


def main(
    argv: list[str] | None = None,
    *,
    feed: RateFeed | None = None,
    clock: Clock | None = None,
    out: TextIO | None = None,
) -> int:
    """Run one command.  ``feed``, ``clock`` and ``out`` are injectable for tests."""
    args = build_parser().parse_args(argv)
    configure_logging(level=getattr(logging, args.log_level))

    try:
        config = get_active_config(args.config)
    except FileNotFoundError as exc:
        emit_json({"error": "CONFIG_NOT_FOUND", "message": str(exc)}, sys.stderr)
        return 1
    except ConstructionKernelError as exc:
        emit_json({"error": exc.code, "message": str(exc)}, sys.stderr)
        return 1

    init_engine_from_url(args.database_url)
    handler = _COMMANDS[args.command]
    logger.info("cli_command_started", extra={"command": args.command})
    try:
        with session_scope() as session:
            return handler(args, config, session, feed, clock or SystemClock(), out)
    except ConstructionKernelError as exc:
        logger.error("cli_command_failed", extra={"command": args.command, "code": exc.code})
        emit_json({"error": exc.code, "message": str(exc)}, sys.stderr)
        return 1
