"""
Application context.

One AppContext holds the configuration, the store and every service built
on it. Entry points receive the context instead of reaching for globals.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from crudzaso.config import CrudzasoConfig, load_config
from crudzaso.models.statistics import StatisticsSnapshot
from crudzaso.models.user import Identity, Session
from crudzaso.seed import seed_demo_data
from crudzaso.services.auth import AuthService
from crudzaso.services.dashboard import DashboardService
from crudzaso.services.drafts import AutoSaver, DraftService
from crudzaso.services.profiles import ProfileService
from crudzaso.services.statistics import StatisticsCache
from crudzaso.services.tasks import TaskRepository
from crudzaso.services.timers import PeriodicJob
from crudzaso.store import create_store
from crudzaso.store.interface import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Explicit application state shared by every entry point."""

    config: CrudzasoConfig
    store: KeyValueStore
    auth: AuthService
    tasks: TaskRepository
    profiles: ProfileService
    drafts: DraftService
    statistics: StatisticsCache
    dashboard: DashboardService
    jobs: List[PeriodicJob] = field(default_factory=list)

    @classmethod
    def build(cls, config: CrudzasoConfig, store: KeyValueStore) -> "AppContext":
        auth = AuthService(store, config.session)
        tasks = TaskRepository(store)
        cache = StatisticsCache(config.statistics.cache_ttl_seconds)
        return cls(
            config=config,
            store=store,
            auth=auth,
            tasks=tasks,
            profiles=ProfileService(store, auth),
            drafts=DraftService(store),
            statistics=cache,
            dashboard=DashboardService(tasks, cache, config.tasks),
        )

    async def require_session(self, now: Optional[datetime] = None) -> Session:
        return await self.auth.require_session(now)

    async def require_identity(self, now: Optional[datetime] = None) -> Identity:
        session = await self.auth.require_session(now)
        return session.identity

    async def statistics_for(self, identity: Identity, now: Optional[datetime] = None) -> StatisticsSnapshot:
        return await self.dashboard.statistics(identity, now)

    def start_auto_refresh(self) -> PeriodicJob:
        job = self.dashboard.auto_refresh(self.config.timers.refresh_interval_seconds)
        self.jobs.append(job)
        return job

    def start_autosave(self, task_id: Optional[str] = None) -> AutoSaver:
        saver = AutoSaver(self.drafts, task_id)
        self.jobs.append(saver.start(self.config.timers.autosave_interval_seconds))
        return saver

    async def seed(self) -> dict:
        return await seed_demo_data(self.auth, self.tasks)

    async def close(self) -> None:
        """Stop periodic jobs and close the store."""
        for job in self.jobs:
            await job.stop()
        self.jobs.clear()
        await self.store.close()
        logger.debug("Application context closed")


async def create_context(
    config: Optional[CrudzasoConfig] = None,
    store: Optional[KeyValueStore] = None,
) -> AppContext:
    """
    Build and connect an application context.

    Seeds demo data when tasks.seed_demo_data is enabled.
    """
    config = config or load_config()
    store = store or create_store(config)
    await store.connect()

    context = AppContext.build(config, store)
    if config.tasks.seed_demo_data:
        await context.seed()

    logger.info(f"Crudzaso ready ({store.backend} store)")
    return context
