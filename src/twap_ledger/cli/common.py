"""Shared CLI plumbing: configuration, logging, argument types, exit codes."""

import argparse
import asyncio
import logging
import sys
import time
from collections.abc import Awaitable, Callable

from pydantic import ValidationError

from twap_ledger.common.exceptions import TwapLedgerError
from twap_ledger.common.utils.date_utils import is_day_key, parse_day_key
from twap_ledger.config.state import ConfigState, get_config
from twap_ledger.infrastructure.observability import setup_logging
from twap_ledger.shared.models.enums import SourceFormat

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def day_key_arg(value: str) -> str:
    """argparse type for YYYYMMDD dates."""
    if not is_day_key(value):
        raise argparse.ArgumentTypeError(f"expected YYYYMMDD, got {value!r}")
    try:
        parse_day_key(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}: {e}") from e
    return value


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from e
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {number}")
    return number


def add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config-dir",
        default=None,
        help="Directory with database.yaml, ingestion.yaml, ... "
        "(default: $TWAP_CONFIG_DIR or ./config)",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")


def add_source_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--source",
        choices=[s.value for s in SourceFormat],
        default=None,
        help="Only process this source (default: every configured source)",
    )


def selected_sources(config: ConfigState, source: str | None) -> list[SourceFormat]:
    if source:
        return [SourceFormat(source)]
    return list(config.ingestion.sources)


def load_settings(args: argparse.Namespace) -> ConfigState:
    """Load configuration and configure logging from it."""
    config = get_config(args.config_dir)
    setup_logging(
        level=args.log_level or config.logging.level,
        json_logs=config.logging.json_logs,
    )
    return config


def confirm_delay(seconds: float, action: str) -> None:
    """Give the operator a chance to cancel with Ctrl+C."""
    if seconds <= 0:
        return
    print(f"\n{action}\nPress Ctrl+C to cancel, or wait {seconds:g} seconds to continue...\n")
    time.sleep(seconds)


def report_failure(error: TwapLedgerError) -> None:
    print(f"\n❌ {error}", file=sys.stderr)
    if error.remediation:
        print(f"   Fix: {error.remediation}", file=sys.stderr)


def run_command(command: Callable[[], Awaitable[int] | int]) -> int:
    """
    Run a command body and map failures to exit codes.

    Pipeline errors print their remediation hint; Ctrl+C exits non-zero
    without a traceback.
    """
    try:
        outcome = command()
        if asyncio.iscoroutine(outcome):
            outcome = asyncio.run(outcome)
        return outcome
    except TwapLedgerError as e:
        logger.error(f"❌ {type(e).__name__}: {e}")
        report_failure(e)
        return EXIT_FAILURE
    except ValidationError as e:
        print(f"\n❌ Invalid configuration:\n{e}", file=sys.stderr)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print("\n⚠️ Cancelled", file=sys.stderr)
        return EXIT_FAILURE
