"""
Dashboard overview: greeting, statistics and the most relevant tasks.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from crudzaso.config import TasksConfig
from crudzaso.models.statistics import StatisticsSnapshot
from crudzaso.models.task import Task
from crudzaso.models.user import Identity
from crudzaso.services import query
from crudzaso.services.statistics import StatisticsCache
from crudzaso.services.tasks import TaskRepository
from crudzaso.services.timers import PeriodicJob
from crudzaso.timeutil import utcnow

logger = logging.getLogger(__name__)


def greeting_for(moment: datetime) -> str:
    hour = moment.hour
    if hour < 12:
        return "Good morning"
    if hour < 18:
        return "Good afternoon"
    return "Good evening"


@dataclass
class DashboardOverview:
    greeting: str
    name: str
    statistics: StatisticsSnapshot
    tasks: List[Task] = field(default_factory=list)
    filter: str = query.ALL
    matching: int = 0

    @property
    def completed_today(self) -> int:
        return self.statistics.completed_today

    @property
    def welcome_message(self) -> str:
        count = self.completed_today
        noun = "task" if count == 1 else "tasks"
        return f"{self.greeting}, {self.name}. You have completed {count} {noun} today."


class DashboardService:
    """Assembles the dashboard for the acting user."""

    def __init__(
        self,
        repository: TaskRepository,
        cache: StatisticsCache | None = None,
        config: TasksConfig | None = None,
    ):
        self.repository = repository
        self.cache = cache or StatisticsCache()
        self.config = config or TasksConfig()

    async def statistics(self, identity: Identity, now: datetime | None = None) -> StatisticsSnapshot:
        tasks = await self.repository.list_by_owner(identity.user_id)
        return self.cache.get(tasks, self.repository.version, scope=identity.user_id, now=now)

    async def overview(
        self,
        identity: Identity,
        quick_filter: str = query.ALL,
        limit: Optional[int] = None,
        now: datetime | None = None,
        local_time: datetime | None = None,
    ) -> DashboardOverview:
        """
        Args:
            identity: Acting user
            quick_filter: all, pending, in-progress or completed
            limit: Number of tasks shown (defaults to tasks.dashboard_limit)
            now: Instant used for statistics
            local_time: Wall-clock time used for the greeting (defaults to now)
        """
        now = now or utcnow()
        tasks = await self.repository.list_by_owner(identity.user_id)
        snapshot = self.cache.get(tasks, self.repository.version, scope=identity.user_id, now=now)

        matching = query.sort_by_relevance(query.quick_filter(tasks, quick_filter))
        limit = self.config.dashboard_limit if limit is None else limit

        return DashboardOverview(
            greeting=greeting_for(local_time or now),
            name=identity.name,
            statistics=snapshot,
            tasks=matching[:max(0, limit)],
            filter=quick_filter,
            matching=len(matching),
        )

    async def refresh(self) -> None:
        """Reload tasks written by another context and drop cached statistics."""
        await self.repository.reload()
        self.cache.invalidate()
        logger.info("Dashboard data refreshed from store")

    def auto_refresh(self, interval_seconds: float) -> PeriodicJob:
        """Periodic reload that only runs when the stored collection changed."""
        return PeriodicJob(
            "dashboard-refresh",
            self.refresh,
            interval_seconds,
            should_run=self.repository.has_external_changes,
        ).start()
