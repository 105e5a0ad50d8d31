"""
Activity Service
Caretaker activity feeds: per-viewer feed contexts, the registry that owns
them, and a polling monitor built on the refresh scheduler
"""

import logging
from functools import partial
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple
from datetime import datetime
from sqlalchemy.orm import Session

from config import settings
from database import get_db_context
from exceptions import BackendUnavailableError
from services.medication_service import medication_service, to_medication_record
from tools.activity_feed import ActivityFeedReducer, ActivityFeedState, NotificationEvent
from tools.calendar_dates import format_time_of_day, utcnow
from tools.records import MedicationRecord
from tools.refresh_scheduler import RefreshScheduler


logger = logging.getLogger(__name__)


SnapshotFetcher = Callable[[], Awaitable[Sequence[MedicationRecord]]]


class ActivityFeedContext:
    """
    Feed state for one (viewer, patient) pair.

    The state only changes inside ``poll`` (one fetch-then-reduce cycle) or an
    explicit acknowledgment; a poll started while another is running is dropped.
    """

    def __init__(
        self,
        viewer_id: str,
        patient_id: str,
        reducer: ActivityFeedReducer,
        now: Optional[datetime] = None
    ):
        self.viewer_id = viewer_id
        self.patient_id = patient_id
        self.reducer = reducer
        self.state: ActivityFeedState = reducer.initial_state(now or utcnow())
        self.last_refreshed_at: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self._polling = False

    @property
    def notifications(self) -> Tuple[NotificationEvent, ...]:
        return self.state.notifications

    @property
    def unread_count(self) -> int:
        return self.state.unread_count

    async def poll(self, fetch: SnapshotFetcher) -> Optional[List[NotificationEvent]]:
        """
        Fetch a snapshot and fold it into the feed.

        Returns:
            New notifications, or None if another poll was already running

        Raises:
            BackendUnavailableError: the fetch failed; the state is untouched
        """
        if self._polling:
            logger.debug(f"Feed {self.viewer_id}/{self.patient_id}: poll already running")
            return None

        self._polling = True
        try:
            snapshot = await fetch()
            new, self.state = self.reducer.reduce(snapshot, self.state)
        except BackendUnavailableError as e:
            self.last_error = e.message
            logger.warning(f"Feed {self.viewer_id}/{self.patient_id}: poll failed: {e.message}")
            raise
        finally:
            self._polling = False

        self.last_refreshed_at = utcnow()
        self.last_error = None
        return new

    def mark_all_read(self, now: Optional[datetime] = None) -> None:
        self.state = self.reducer.mark_all_read(self.state, now or utcnow())

    def clear_all(self, now: Optional[datetime] = None) -> None:
        self.state = self.reducer.clear_all(self.state, now or utcnow())


class ActivityFeedRegistry:
    """
    Owns the feed contexts of a running application. Constructed at startup
    and disposed at shutdown; nothing here outlives the process.
    """

    def __init__(
        self,
        limit: int = settings.NOTIFICATION_FEED_LIMIT,
        tz_name: str = settings.TIMEZONE
    ):
        self.reducer = ActivityFeedReducer(
            limit=limit,
            time_formatter=partial(format_time_of_day, tz_name=tz_name),
        )
        self._contexts: Dict[Tuple[str, str], ActivityFeedContext] = {}

    def get_or_create(self, viewer_id: str, patient_id: str) -> ActivityFeedContext:
        key = (viewer_id, patient_id)
        context = self._contexts.get(key)
        if context is None:
            context = ActivityFeedContext(viewer_id, patient_id, self.reducer)
            self._contexts[key] = context
            logger.info(f"Opened activity feed {viewer_id}/{patient_id}")
        return context

    def discard(self, viewer_id: str, patient_id: str) -> None:
        self._contexts.pop((viewer_id, patient_id), None)

    def dispose(self) -> None:
        count = len(self._contexts)
        self._contexts.clear()
        logger.info(f"Disposed {count} activity feed(s)")

    def __len__(self) -> int:
        return len(self._contexts)


def patient_snapshot_fetcher(
    patient_id: str,
    db: Optional[Session] = None,
    tz_name: str = settings.TIMEZONE
) -> SnapshotFetcher:
    """
    Build a fetcher returning the patient's medications with logs.
    Without a session each fetch opens its own.
    """
    async def fetch() -> List[MedicationRecord]:
        if db is not None:
            medications = await medication_service.list_medications_for(patient_id, db=db)
            return [to_medication_record(m, tz_name) for m in medications]

        with get_db_context() as session:
            medications = await medication_service.list_medications_for(patient_id, db=session)
            return [to_medication_record(m, tz_name) for m in medications]

    return fetch


class CaretakerMonitor:
    """
    Polls a patient's logs on a timer and hands new notifications to a callback.

    Usage:
        async with CaretakerMonitor(context, fetch, on_notifications=print):
            await stop_event.wait()
    """

    def __init__(
        self,
        context: ActivityFeedContext,
        fetch: SnapshotFetcher,
        on_notifications: Callable[[List[NotificationEvent]], None],
        interval_seconds: float = settings.POLL_INTERVAL_SECONDS,
        max_backoff_seconds: float = settings.POLL_MAX_BACKOFF_SECONDS
    ):
        self.context = context
        self.fetch = fetch
        self.on_notifications = on_notifications
        self.scheduler = RefreshScheduler(
            self._refresh,
            interval_seconds=interval_seconds,
            max_backoff_seconds=max_backoff_seconds,
            name=f"activity:{context.patient_id}",
        )

    async def _refresh(self) -> None:
        new = await self.context.poll(self.fetch)
        if new:
            self.on_notifications(new)

    def start(self) -> None:
        self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()

    async def __aenter__(self) -> "CaretakerMonitor":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
