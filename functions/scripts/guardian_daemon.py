"""
Daemon that runs the guardian alert engine against the backend database.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend import worker
from backend.config import get_settings
from backend.dependencies import get_db_client, get_storage_client

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Guardian alert daemon")
    parser.add_argument(
        "--interval-seconds",
        type=int,
        default=None,
        help="Seconds between clock checks (defaults to ALERT_POLL_SECONDS)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Evaluate the current minute once and exit",
    )
    parser.add_argument(
        "--speak",
        action="store_true",
        help="Store synthesized speech for each new alert",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    settings = get_settings()
    db = get_db_client()

    if args.once:
        storage = get_storage_client() if args.speak or settings.speak_alerts else None
        raised = worker.run_once(db, settings.now(), storage, settings.gemini_api_key)
        logger.info("Alert cycle raised %d alerts", raised)
        return 0

    if args.speak:
        settings.speak_alerts = True
    logger.info("Guardian engine running in %s", settings.timezone)
    worker.run_forever(db=db, poll_seconds=args.interval_seconds)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
