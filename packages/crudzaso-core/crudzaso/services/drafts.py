"""
Task form drafts.

The create-task form auto-saves under one key for a new task, or under a
per-task key while editing. A draft is cleared once the task is saved.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from crudzaso.models.task import TaskDraft
from crudzaso.services.timers import PeriodicJob
from crudzaso.store import get_store
from crudzaso.store.keys import draft_key
from crudzaso.timeutil import parse_datetime, to_iso, utcnow

logger = logging.getLogger(__name__)


@dataclass
class SavedDraft:
    """A stored draft plus when and how it was saved."""

    draft: TaskDraft
    saved_at: Optional[datetime]
    is_auto_save: bool = False
    task_id: Optional[str] = None

    def to_dict(self) -> dict:
        result = self.draft.to_dict()
        result["savedAt"] = to_iso(self.saved_at)
        result["isAutoSave"] = self.is_auto_save
        result["taskId"] = self.task_id
        return result


class DraftService:
    """Save, load and clear task drafts."""

    def __init__(self, store=None):
        self._store = store

    @property
    def store(self):
        """Get the key-value store."""
        if self._store is None:
            self._store = get_store()
        return self._store

    async def save(
        self,
        draft: TaskDraft,
        task_id: str | None = None,
        auto: bool = False,
        now: datetime | None = None,
    ) -> SavedDraft:
        saved = SavedDraft(draft=draft, saved_at=now or utcnow(), is_auto_save=auto, task_id=task_id)
        await self.store.write_json(draft_key(task_id), saved.to_dict())
        logger.debug(f"Saved draft {draft_key(task_id)}")
        return saved

    async def load(self, task_id: str | None = None) -> SavedDraft | None:
        record = await self.store.read_json(draft_key(task_id))
        if not isinstance(record, dict):
            return None
        try:
            saved_at = parse_datetime(record.get("savedAt"))
        except ValueError:
            saved_at = None
        return SavedDraft(
            draft=TaskDraft.from_dict(record),
            saved_at=saved_at,
            is_auto_save=bool(record.get("isAutoSave")),
            task_id=task_id,
        )

    async def clear(self, task_id: str | None = None) -> bool:
        return await self.store.delete(draft_key(task_id))


class AutoSaver:
    """
    Keeps the latest form values and writes them only when they changed.

    Call update() on every edit; flush() (directly or from the periodic
    job) persists the pending values.
    """

    def __init__(self, drafts: DraftService, task_id: str | None = None):
        self.drafts = drafts
        self.task_id = task_id
        self.dirty = False
        self._draft: TaskDraft | None = None
        self._job: PeriodicJob | None = None

    def update(self, draft: TaskDraft) -> None:
        self._draft = draft
        self.dirty = True

    async def flush(self) -> bool:
        if not self.dirty or self._draft is None:
            return False
        await self.drafts.save(self._draft, self.task_id, auto=True)
        self.dirty = False
        return True

    def start(self, interval_seconds: float) -> PeriodicJob:
        self._job = PeriodicJob(
            f"autosave:{self.task_id or 'new'}",
            self.flush,
            interval_seconds,
            should_run=lambda: self.dirty,
        ).start()
        return self._job

    async def stop(self) -> None:
        if self._job is not None:
            await self._job.stop()
            self._job = None

    async def discard(self) -> None:
        """Stop saving and remove the stored draft (after a successful submit)."""
        await self.stop()
        self.dirty = False
        self._draft = None
        await self.drafts.clear(self.task_id)
