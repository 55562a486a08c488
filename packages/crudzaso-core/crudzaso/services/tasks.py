"""
Task repository for Crudzaso.

The whole task collection is one JSON array under the tasks key, read and
rewritten in full. A revision counter stored next to it detects writes
made by another context since this one loaded.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime

from crudzaso.errors import ConflictError, NotFoundError
from crudzaso.models.task import Task, TaskDraft, TaskStatus, generate_task_id
from crudzaso.models.user import Identity
from crudzaso.store import get_store
from crudzaso.store.keys import TASKS_KEY, TASKS_REVISION_KEY
from crudzaso.timeutil import utcnow
from crudzaso.validation import clean_task_fields

logger = logging.getLogger(__name__)


class TaskRepository:
    """
    CRUD over the stored task collection.

    Mutations build the new collection, write it, and only then replace the
    in-memory copy, so a failed write leaves the repository unchanged.
    Mutations on one repository run one at a time; writes from other
    contexts are caught by the stored revision check.
    """

    def __init__(self, store=None):
        """
        Initialize task repository.

        Args:
            store: Optional KeyValueStore. If not provided, uses global store.
        """
        self._store = store
        self._tasks: list[Task] = []
        self._revision = 0
        self._loaded = False
        self._version = 0
        self._lock = asyncio.Lock()

    @property
    def store(self):
        """Get the key-value store."""
        if self._store is None:
            self._store = get_store()
        return self._store

    @property
    def version(self) -> int:
        """Bumped on every load or mutation; used to invalidate derived caches."""
        return self._version

    @property
    def revision(self) -> int:
        """Stored revision this repository's copy corresponds to."""
        return self._revision

    async def load_all(self, force: bool = False) -> list[Task]:
        """
        Load the collection from the store.

        Records that cannot be parsed are skipped with a warning rather than
        failing the whole load.
        """
        if self._loaded and not force:
            return list(self._tasks)
        async with self._lock:
            return await self._load(force)

    async def _load(self, force: bool = False) -> list[Task]:
        # Callers hold self._lock
        if self._loaded and not force:
            return list(self._tasks)

        records = await self.store.read_json(TASKS_KEY, default=[])
        if not isinstance(records, list):
            logger.warning(f"Ignoring '{TASKS_KEY}': expected a list, got {type(records).__name__}")
            records = []

        tasks = []
        for record in records:
            try:
                tasks.append(Task.from_dict(record))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping unreadable task record: {e}")

        self._tasks = tasks
        self._revision = await self.stored_revision()
        self._loaded = True
        self._version += 1
        logger.debug(f"Loaded {len(tasks)} tasks at revision {self._revision}")
        return list(tasks)

    async def reload(self) -> list[Task]:
        """Discard the in-memory copy and read the store again."""
        return await self.load_all(force=True)

    async def stored_revision(self) -> int:
        value = await self.store.read_json(TASKS_REVISION_KEY, default=0)
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0

    async def has_external_changes(self) -> bool:
        """True when another context persisted since this one loaded."""
        if not self._loaded:
            return True
        return await self.stored_revision() != self._revision

    async def sync(self) -> bool:
        """
        Reload if another context persisted since the last load.

        Returns:
            True if the collection was re-read
        """
        if not await self.has_external_changes():
            return False
        await self.reload()
        return True

    async def persist(self, tasks: list[Task] | None = None) -> None:
        """
        Write the full collection and bump the stored revision.

        Raises:
            ConflictError: if the stored revision moved since the last load.
                The repository has reloaded by then, so a retry works on
                the current collection.
        """
        async with self._lock:
            await self._persist(tasks)

    async def _persist(self, tasks: list[Task] | None = None) -> None:
        # Callers hold self._lock
        await self._load()
        tasks = list(self._tasks if tasks is None else tasks)

        try:
            revision = await self.store.write_json_if_revision(
                TASKS_KEY,
                [task.to_dict() for task in tasks],
                TASKS_REVISION_KEY,
                self._revision,
            )
        except ConflictError as e:
            logger.warning(f"{e.message} Reloading tasks.")
            await self._load(force=True)
            raise

        self._tasks = tasks
        self._revision = revision
        self._version += 1

    async def replace_all(self, tasks: list[Task]) -> None:
        """Replace the whole collection (used for seeding and imports)."""
        await self.persist(tasks)
        logger.info(f"Stored {len(tasks)} tasks")

    def _new_id(self) -> str:
        existing = {task.id for task in self._tasks}
        task_id = generate_task_id()
        while task_id in existing:
            task_id = generate_task_id()
        return task_id

    def _locate(self, task_id: str, owner: Identity | None = None) -> int:
        for index, task in enumerate(self._tasks):
            if task.id == task_id:
                if owner is not None and not _visible_to(task, owner.user_id):
                    break
                return index
        raise NotFoundError("Task", task_id)

    async def create(
        self,
        draft: TaskDraft,
        owner: Identity | None = None,
        now: datetime | None = None,
    ) -> Task:
        """
        Create a new task from submitted form values.

        Args:
            draft: Form values; title and category are required
            owner: Acting user; becomes the owner and default assignee
            now: Creation instant (defaults to the current time)

        Returns:
            Created Task

        Raises:
            ValidationError: if required fields are missing or values invalid
            ConflictError: if another context wrote first
        """
        values = clean_task_fields(draft)
        if not values.get("assignee") and owner is not None:
            values["assignee"] = owner.name

        async with self._lock:
            await self._load()

            now = now or utcnow()
            task = Task(
                id=self._new_id(),
                created_at=now,
                updated_at=now,
                user_id=owner.user_id if owner else None,
                **values,
            )
            await self._persist(self._tasks + [task])

        logger.info(f"Created task: {task.id} - {task.title}")
        return task

    async def get(self, task_id: str, owner: Identity | None = None) -> Task:
        """
        Get a task by ID.

        Raises:
            NotFoundError: if no such task is visible
        """
        tasks = await self.load_all()
        for task in tasks:
            if task.id == task_id and (owner is None or _visible_to(task, owner.user_id)):
                return task
        raise NotFoundError("Task", task_id)

    async def update(
        self,
        task_id: str,
        patch: TaskDraft,
        owner: Identity | None = None,
        now: datetime | None = None,
    ) -> Task:
        """
        Apply a partial update.

        The id, creation time and owner never change; updated_at is refreshed.

        Raises:
            NotFoundError: if the task does not exist
            ValidationError: if a patched value is invalid
        """
        async with self._lock:
            await self._load()
            index = self._locate(task_id, owner)
            values = clean_task_fields(patch, partial=True)

            updated = replace(self._tasks[index], **values, updated_at=now or utcnow())
            tasks = list(self._tasks)
            tasks[index] = updated
            await self._persist(tasks)

        logger.info(f"Updated task: {task_id}")
        return updated

    async def delete(self, task_id: str, owner: Identity | None = None) -> None:
        """
        Delete a task permanently.

        Raises:
            NotFoundError: if the task does not exist (including a repeated delete)
        """
        async with self._lock:
            await self._load()
            index = self._locate(task_id, owner)

            tasks = list(self._tasks)
            removed = tasks.pop(index)
            await self._persist(tasks)

        logger.info(f"Deleted task: {removed.id} - {removed.title}")

    async def list_all(self) -> list[Task]:
        return await self.load_all()

    async def list_by_owner(self, user_id: str) -> list[Task]:
        """Tasks owned by the user plus tasks that have no owner."""
        tasks = await self.load_all()
        return [task for task in tasks if _visible_to(task, user_id)]

    async def toggle_status(
        self,
        task_id: str,
        owner: Identity | None = None,
        now: datetime | None = None,
    ) -> Task:
        """Completed tasks go back to Pending; anything else becomes Completed."""
        async with self._lock:
            await self._load()
            index = self._locate(task_id, owner)
            current = self._tasks[index]

            status = TaskStatus.PENDING if current.is_complete else TaskStatus.COMPLETED
            updated = replace(current, status=status, updated_at=now or utcnow())

            tasks = list(self._tasks)
            tasks[index] = updated
            await self._persist(tasks)

        logger.info(f"Task {task_id} marked {status.value}")
        return updated

    async def duplicate(
        self,
        task_id: str,
        owner: Identity | None = None,
        now: datetime | None = None,
    ) -> Task:
        """Copy a task under a new id as a fresh Pending task."""
        async with self._lock:
            await self._load()
            source = self._tasks[self._locate(task_id, owner)]

            now = now or utcnow()
            copy = replace(
                source,
                id=self._new_id(),
                title=f"{source.title} (Copy)",
                status=TaskStatus.PENDING,
                created_at=now,
                updated_at=now,
                tags=list(source.tags),
                user_id=owner.user_id if owner else source.user_id,
            )
            await self._persist(self._tasks + [copy])

        logger.info(f"Duplicated task {task_id} as {copy.id}")
        return copy


def _visible_to(task: Task, user_id: str) -> bool:
    # Owner-less tasks predate per-user scoping and are shown to everyone.
    return task.user_id is None or task.user_id == user_id
