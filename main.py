import argparse
import logging
import os
import sys
from typing import List, Optional

import structlog

from config import Settings, get_settings_for_environment
from csv_io import CsvTransactionReader, write_accounts
from errors import LedgerError
from repositories import InMemoryAccountRepository, InMemoryTransactionRepository
from services import get_ledger_engine

logger = structlog.get_logger()


def configure_logging(settings: Settings) -> None:
    """Send structured logs to stderr; stdout is reserved for the snapshot."""
    logging.basicConfig(
        stream=sys.stderr,
        level=settings.log_level.upper(),
        format="%(message)s",
        force=True,
    )

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-replay",
        description="Replay a CSV stream of transactions and print the resulting accounts as CSV.",
    )
    parser.add_argument("input", metavar="INPUT", help="Path to the transactions CSV file")
    parser.add_argument(
        "--unsorted",
        action="store_true",
        help="Emit accounts in store order instead of ascending client id",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Override the configured log level",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {settings.app_version}",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings_for_environment(os.environ.get("LEDGER_ENVIRONMENT", "production"))
    args = build_parser(settings).parse_args(argv)

    if args.log_level:
        settings.log_level = args.log_level
    if args.unsorted:
        settings.sort_output = False

    configure_logging(settings)

    engine = get_ledger_engine(
        InMemoryAccountRepository(),
        InMemoryTransactionRepository(),
        settings,
    )

    logger.info("Starting ledger replay", input=args.input, environment=settings.environment)
    try:
        with CsvTransactionReader(args.input) as transactions:
            engine.process(transactions)
    except (LedgerError, OSError) as e:
        logger.error("Ledger replay failed", input=args.input, error=str(e))
        return 1

    rows = write_accounts(engine.accounts(), sys.stdout, sort=settings.sort_output)
    logger.info("Account snapshot written", accounts=rows)
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
