"""
Activity Feed Reducer
Turns polled log snapshots into a bounded, newest-first notification feed
without duplicates and without re-alerting on logs already seen
"""

import logging
from typing import Callable, FrozenSet, List, Sequence, Tuple
from dataclasses import dataclass, field, replace
from datetime import datetime

from tools.calendar_dates import format_time_of_day
from tools.records import MedicationRecord


logger = logging.getLogger(__name__)


DEFAULT_FEED_LIMIT = 5


@dataclass(frozen=True)
class NotificationEvent:
    """A "medication taken" notification derived from a log"""
    id: str  # the log id
    message: str
    timestamp: datetime
    read: bool = False


@dataclass(frozen=True)
class ActivityFeedState:
    """Feed state between poll cycles"""
    last_seen_watermark: datetime
    seen_log_ids: FrozenSet[str] = field(default_factory=frozenset)
    notifications: Tuple[NotificationEvent, ...] = ()

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.read)


class ActivityFeedReducer:
    """
    Pure reducer over ActivityFeedState.

    A log is notified once: when first observed with ``created_at`` after the
    watermark. Its id then stays suppressed until the feed is cleared.
    """

    def __init__(
        self,
        limit: int = DEFAULT_FEED_LIMIT,
        time_formatter: Callable[[datetime], str] = format_time_of_day
    ):
        if limit < 1:
            raise ValueError("Feed limit must be at least 1")
        self.limit = limit
        self.time_formatter = time_formatter

    def initial_state(self, now: datetime) -> ActivityFeedState:
        return ActivityFeedState(last_seen_watermark=now)

    def reduce(
        self,
        snapshot: Sequence[MedicationRecord],
        state: ActivityFeedState
    ) -> Tuple[List[NotificationEvent], ActivityFeedState]:
        """
        Fold one poll snapshot into the feed.

        Returns:
            (new notifications newest-first, updated state)
        """
        fresh: List[NotificationEvent] = []
        seen = set(state.seen_log_ids)

        for med in snapshot:
            for log in med.logs:
                if log.id in seen or log.created_at <= state.last_seen_watermark:
                    continue
                seen.add(log.id)
                fresh.append(NotificationEvent(
                    id=log.id,
                    message=f"{med.name} taken at {self.time_formatter(log.created_at)}",
                    timestamp=log.created_at,
                ))

        if not fresh:
            return [], state

        fresh.sort(key=lambda n: n.timestamp, reverse=True)
        feed = (tuple(fresh) + state.notifications)[:self.limit]
        logger.debug(f"Activity feed: {len(fresh)} new notification(s)")

        return fresh, replace(
            state,
            seen_log_ids=frozenset(seen),
            notifications=feed,
        )

    def mark_all_read(self, state: ActivityFeedState, now: datetime) -> ActivityFeedState:
        return replace(
            state,
            last_seen_watermark=max(now, state.last_seen_watermark),
            notifications=tuple(replace(n, read=True) for n in state.notifications),
        )

    def clear_all(self, state: ActivityFeedState, now: datetime) -> ActivityFeedState:
        return ActivityFeedState(last_seen_watermark=max(now, state.last_seen_watermark))
