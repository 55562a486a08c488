"""
Statistics engine.

compute() turns a task list into a StatisticsSnapshot. Percentages and
averages use round-half-up so displayed numbers do not flip between
banker's rounding and the arithmetic a user expects.
"""

import logging
import time
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable, Optional

from crudzaso.models.statistics import GroupStats, StatisticsSnapshot
from crudzaso.models.task import Task, TaskPriority, TaskStatus
from crudzaso.timeutil import ensure_aware, utcnow

logger = logging.getLogger(__name__)

WEEKS_PER_MONTH = Decimal("4.3")


def round_half_up(value, ndigits: int = 0):
    """
    Round with halves going up (toward positive infinity).

    Returns an int when ndigits is 0, otherwise a float.
    """
    scale = Decimal(10) ** ndigits
    rounded = (Decimal(str(value)) * scale + Decimal("0.5")).__floor__()
    if ndigits == 0:
        return int(rounded)
    return float(Decimal(rounded) / scale)


def percent(part: int, total: int) -> int:
    """Integer percentage, 0 for an empty total."""
    if not total:
        return 0
    return round_half_up(Decimal(part) / Decimal(total) * 100)


def _in_window(value: Optional[datetime], start: datetime, end: datetime) -> bool:
    return value is not None and start <= ensure_aware(value) < end


def _group(tasks: list[Task]) -> GroupStats:
    completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
    return GroupStats(
        total=len(tasks),
        completed=completed,
        pending=sum(1 for t in tasks if t.status == TaskStatus.PENDING),
        in_progress=sum(1 for t in tasks if t.status == TaskStatus.IN_PROGRESS),
        estimated_hours=round_half_up(sum(t.estimated_hours or 0 for t in tasks), 1),
        completion_rate=percent(completed, len(tasks)),
    )


def productivity_streak(tasks: Iterable[Task], now: datetime) -> int:
    """
    Consecutive days with at least one completion.

    Counts back from today, or from yesterday when nothing has been
    completed yet today. Completion day is the task's updated_at date.
    """
    days = {
        ensure_aware(t.updated_at).date()
        for t in tasks
        if t.status == TaskStatus.COMPLETED and t.updated_at is not None
    }
    day = now.date()
    if day not in days:
        day -= timedelta(days=1)

    streak = 0
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def compute(tasks: Iterable[Task], now: Optional[datetime] = None) -> StatisticsSnapshot:
    """
    Build a statistics snapshot.

    Time windows are [now - N days, now). Overdue compares calendar dates
    only, so a task due today is not overdue.
    """
    tasks = list(tasks)
    now = ensure_aware(now or utcnow())
    today = now.date()
    week_ago = now - timedelta(days=7)
    two_weeks_ago = now - timedelta(days=14)
    month_ago = now - timedelta(days=30)

    total = len(tasks)
    completed = [t for t in tasks if t.status == TaskStatus.COMPLETED]

    created_7 = [t for t in tasks if _in_window(t.created_at, week_ago, now)]
    created_30 = [t for t in tasks if _in_window(t.created_at, month_ago, now)]
    created_prior_week = sum(1 for t in tasks if _in_window(t.created_at, two_weeks_ago, week_ago))

    completed_this_week = sum(1 for t in completed if _in_window(t.updated_at, week_ago, now))
    completed_today = sum(
        1 for t in completed if t.updated_at is not None and ensure_aware(t.updated_at).date() == today
    )

    if created_prior_week:
        weekly_trend = round_half_up(
            Decimal(completed_this_week - created_prior_week) / Decimal(created_prior_week) * 100
        )
    else:
        weekly_trend = 0

    estimated = sum(t.estimated_hours or 0 for t in tasks)
    actual = sum(t.actual_hours or 0 for t in tasks)

    by_category: dict[str, list[Task]] = {}
    for task in tasks:
        by_category.setdefault(task.category.value, []).append(task)

    snapshot = StatisticsSnapshot(
        total=total,
        completed=len(completed),
        pending=sum(1 for t in tasks if t.status == TaskStatus.PENDING),
        in_progress=sum(1 for t in tasks if t.status == TaskStatus.IN_PROGRESS),
        overdue=sum(1 for t in tasks if t.is_overdue(today)),
        high_priority=sum(1 for t in tasks if t.is_open and t.priority == TaskPriority.HIGH),
        completion_rate=percent(len(completed), total),
        tasks_last_7_days=len(created_7),
        tasks_last_30_days=len(created_30),
        completed_last_7_days=sum(1 for t in created_7 if t.is_complete),
        completed_last_30_days=sum(1 for t in created_30 if t.is_complete),
        completed_this_week=completed_this_week,
        completed_today=completed_today,
        weekly_trend=weekly_trend,
        total_estimated_hours=round_half_up(estimated, 1),
        total_actual_hours=round_half_up(actual, 1),
        average_task_hours=round_half_up(Decimal(str(estimated)) / total, 1) if total else 0,
        average_tasks_per_week=round_half_up(Decimal(len(created_30)) / WEEKS_PER_MONTH, 1),
        average_completion_per_week=round_half_up(
            Decimal(sum(1 for t in created_30 if t.is_complete)) / WEEKS_PER_MONTH, 1
        ),
        productivity_streak=productivity_streak(completed, now),
        category_stats={name: _group(group) for name, group in sorted(by_category.items())},
        priority_stats={
            level.value: _group([t for t in tasks if t.priority == level])
            for level in TaskPriority
        },
        computed_at=now,
    )
    return snapshot


class StatisticsCache:
    """
    Short-lived cache of snapshots per scope (usually a user id).

    An entry is reused only while both the TTL has not elapsed and the
    repository version it was computed from is still current.
    """

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict = {}
        self.hits = 0
        self.misses = 0

    def get(
        self,
        tasks: Iterable[Task],
        version: int,
        scope: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> StatisticsSnapshot:
        entry = self._entries.get(scope)
        stamp = self._clock()
        if entry is not None:
            cached_version, stored_at, snapshot = entry
            if cached_version == version and stamp - stored_at < self.ttl_seconds:
                self.hits += 1
                return snapshot

        self.misses += 1
        snapshot = compute(tasks, now)
        self._entries[scope] = (version, stamp, snapshot)
        return snapshot

    def invalidate(self, scope: Optional[str] = None) -> None:
        """Drop one scope's entry, or every entry when scope is None."""
        if scope is None:
            self._entries.clear()
        else:
            self._entries.pop(scope, None)
        logger.debug(f"Statistics cache invalidated ({scope or 'all'})")
