"""
Email sync worker.

Pulls recent messages for every active mailbox account over IMAP.

Usage:
    python -m bizhub.workers.email_sync_worker [--once] [--interval SECONDS] [--folder INBOX] [--limit 50]

Configuration:
    - EMAIL_SYNC_INTERVAL_SECONDS: pause between runs (default: 300)
    - EMAIL_ENCRYPTION_KEY: Fernet key used to decrypt stored mailbox passwords
"""
from __future__ import annotations

import argparse
import logging
import sys
import time
from contextlib import suppress

from dotenv import load_dotenv

from bizhub.db import database
from bizhub.services.email_sync_service import sync_all_accounts
from bizhub.utils.runtime import env_int

logger = logging.getLogger("bizhub.workers.email_sync_worker")

SessionLocal = lambda: database.open_session()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Synchronize mailbox accounts over IMAP")
    parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    parser.add_argument(
        "--interval",
        type=int,
        default=env_int("EMAIL_SYNC_INTERVAL_SECONDS", 300),
        help="Seconds between passes (default: EMAIL_SYNC_INTERVAL_SECONDS or 300)",
    )
    parser.add_argument("--folder", default="INBOX", help="Folder to pull messages from (default: INBOX)")
    parser.add_argument("--limit", type=int, default=50, help="Most recent messages per pass (default: 50)")
    return parser.parse_args(argv)


def run_once(folder: str = "INBOX", limit: int = 50) -> dict:
    session = SessionLocal()
    try:
        summary = sync_all_accounts(session, folder=folder, limit=limit)
        logger.info("email_sync_pass %s", summary)
        return summary
    finally:
        with suppress(Exception):
            session.close()


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)
    if args.once:
        summary = run_once(args.folder, args.limit)
        return 1 if summary.get("failed") else 0
    logger.info("Email sync worker started, interval=%ss", args.interval)
    while True:
        try:
            run_once(args.folder, args.limit)
        except Exception:
            logger.exception("Email sync pass failed")
        time.sleep(max(1, args.interval))


if __name__ == "__main__":  # pragma: no cover - manual execution path
    sys.exit(main())
