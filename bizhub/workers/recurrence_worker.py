"""
Recurrence worker.

Generates the next task of every due recurring series, then sleeps.

Usage:
    python -m bizhub.workers.recurrence_worker [--once] [--interval SECONDS]

Configuration:
    - RECURRENCE_INTERVAL_SECONDS: pause between runs (default: 300)
"""
from __future__ import annotations

import argparse
import logging
import sys
import time
from contextlib import suppress

from dotenv import load_dotenv

from bizhub.db import database
from bizhub.services import rate_limiter
from bizhub.services.recurrence_service import process_recurrences
from bizhub.utils.runtime import env_int

logger = logging.getLogger("bizhub.workers.recurrence_worker")

SessionLocal = lambda: database.open_session()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Process due task recurrences")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single pass and exit",
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=env_int("RECURRENCE_INTERVAL_SECONDS", 300),
        help="Seconds between passes (default: RECURRENCE_INTERVAL_SECONDS or 300)",
    )
    return parser.parse_args(argv)


def run_once() -> dict:
    session = SessionLocal()
    try:
        result = process_recurrences(session)
        # Piggyback housekeeping of expired rate-limit windows
        expired = rate_limiter.cleanup_expired(session)
        logger.info(
            "recurrence_pass processed=%s created=%s deactivated=%s errors=%s expired_rate_limits=%s",
            result["processed"], result["created"], result["deactivated"], result["errors"], expired,
        )
        return result
    finally:
        with suppress(Exception):
            session.close()


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)
    if args.once:
        result = run_once()
        return 1 if result["errors"] else 0
    logger.info("Recurrence worker started, interval=%ss", args.interval)
    while True:
        try:
            run_once()
        except Exception:
            logger.exception("Recurrence pass failed")
        time.sleep(max(1, args.interval))


if __name__ == "__main__":  # pragma: no cover - manual execution path
    sys.exit(main())
