#!/usr/bin/env python
"""
Watch Activity
Terminal caretaker monitor: polls a patient's logs on an interval and prints
a notification for every dose marked taken after the monitor started.

Run: python scripts/watch_activity.py --caretaker-key <X-API-Key> --patient-id <id>
"""

import sys
import os
import argparse
import asyncio
import logging
import signal

# Ensure project root on sys.path
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from config import settings
from database import init_db, get_db_context
from exceptions import MedTrackError
from services.activity_service import (
    ActivityFeedRegistry,
    CaretakerMonitor,
    patient_snapshot_fetcher,
)
from services.user_service import user_service


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


def print_notifications(notifications):
    for n in notifications:
        print(f"[{n.timestamp:%Y-%m-%d %H:%M}] {n.message}")


async def watch(caretaker_key: str, patient_id: str, interval: float, limit: int):
    with get_db_context() as db:
        caretaker = user_service.authenticate(caretaker_key, db)
        patient = await user_service.get_monitored_patient(caretaker, patient_id, db=db)
        caretaker_id, patient_name = caretaker.id, patient.display_name

    registry = ActivityFeedRegistry(limit=limit, tz_name=settings.TIMEZONE)
    context = registry.get_or_create(caretaker_id, patient_id)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            pass

    print(f"Watching {patient_name} every {interval:.0f}s (Ctrl+C to stop)")
    monitor = CaretakerMonitor(
        context,
        patient_snapshot_fetcher(patient_id),
        on_notifications=print_notifications,
        interval_seconds=interval,
        max_backoff_seconds=settings.POLL_MAX_BACKOFF_SECONDS,
    )
    try:
        async with monitor:
            await stop.wait()
    finally:
        registry.dispose()
    print("Stopped")


def main():
    parser = argparse.ArgumentParser(
        description="Print new medication activity for a monitored patient"
    )
    parser.add_argument(
        "--caretaker-key",
        required=True,
        help="Caretaker API key"
    )
    parser.add_argument(
        "--patient-id",
        required=True,
        help="Patient to watch"
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=settings.POLL_INTERVAL_SECONDS,
        help=f"Poll interval in seconds (default: {settings.POLL_INTERVAL_SECONDS:.0f})"
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=settings.NOTIFICATION_FEED_LIMIT,
        help="Notifications kept in the feed"
    )

    args = parser.parse_args()

    init_db()
    try:
        asyncio.run(watch(args.caretaker_key, args.patient_id, args.interval, args.limit))
    except MedTrackError as e:
        logger.error(e.message)
        sys.exit(1)


if __name__ == "__main__":
    main()
