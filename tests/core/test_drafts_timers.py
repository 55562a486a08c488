"""
Tests for drafts, auto-save and periodic jobs.
"""

import asyncio
import pytest


@pytest.fixture
def drafts(memory_store):
    from crudzaso.services.drafts import DraftService

    return DraftService(store=memory_store)


class TestDraftService:
    @pytest.mark.asyncio
    async def test_save_and_load_new_task_draft(self, drafts, memory_store, now):
        from crudzaso.models.task import TaskDraft

        await drafts.save(TaskDraft(title="Half-written essay", priority="High"), now=now)

        saved = await drafts.load()
        assert saved.draft.title == "Half-written essay"
        assert saved.draft.priority == "High"
        assert saved.saved_at == now
        assert await memory_store.get("crudzaso_new_task_draft") is not None

    @pytest.mark.asyncio
    async def test_per_task_drafts_are_separate(self, drafts, memory_store):
        from crudzaso.models.task import TaskDraft

        await drafts.save(TaskDraft(title="Editing"), task_id="task_1", auto=True)

        assert await drafts.load() is None
        saved = await drafts.load("task_1")
        assert saved.is_auto_save is True
        assert await memory_store.keys("crudzaso_task_draft_") == ["crudzaso_task_draft_task_1"]

    @pytest.mark.asyncio
    async def test_clear(self, drafts):
        from crudzaso.models.task import TaskDraft

        await drafts.save(TaskDraft(title="Gone soon"))

        assert await drafts.clear() is True
        assert await drafts.clear() is False
        assert await drafts.load() is None


class TestPeriodicJob:
    @pytest.mark.asyncio
    async def test_run_once_respects_gate(self):
        from crudzaso.services.timers import PeriodicJob

        calls = []
        dirty = {"value": False}

        async def action():
            calls.append(1)

        job = PeriodicJob("test", action, 10, should_run=lambda: dirty["value"])

        assert await job.run_once() is False
        dirty["value"] = True
        assert await job.run_once() is True
        assert (job.runs, job.skipped, len(calls)) == (1, 1, 1)

    @pytest.mark.asyncio
    async def test_async_gate(self):
        from crudzaso.services.timers import PeriodicJob

        async def gate():
            return True

        async def action():
            pass

        assert await PeriodicJob("test", action, 1, should_run=gate).run_once() is True

    @pytest.mark.asyncio
    async def test_failures_are_counted_not_raised(self):
        from crudzaso.errors import StorageError
        from crudzaso.services.timers import PeriodicJob

        async def action():
            raise StorageError("crudzaso_tasks", "disk full")

        job = PeriodicJob("test", action, 1)

        assert await job.run_once() is False
        assert job.failures == 1

    @pytest.mark.asyncio
    async def test_loop_runs_and_stops(self):
        from crudzaso.services.timers import PeriodicJob

        calls = []

        async def action():
            calls.append(1)

        job = PeriodicJob("test", action, 0.01).start()
        assert job.running is True

        await asyncio.sleep(0.1)
        await job.stop()

        assert job.running is False
        count = len(calls)
        assert count >= 1
        await asyncio.sleep(0.05)
        assert len(calls) == count

    def test_interval_must_be_positive(self):
        from crudzaso.services.timers import PeriodicJob

        async def action():
            pass

        with pytest.raises(ValueError):
            PeriodicJob("test", action, 0)


class TestAutoSaver:
    @pytest.mark.asyncio
    async def test_flush_only_when_dirty(self, drafts):
        from crudzaso.models.task import TaskDraft
        from crudzaso.services.drafts import AutoSaver

        saver = AutoSaver(drafts)

        assert await saver.flush() is False

        saver.update(TaskDraft(title="Typing..."))
        assert await saver.flush() is True
        assert await saver.flush() is False

        saved = await drafts.load()
        assert saved.draft.title == "Typing..."
        assert saved.is_auto_save is True

    @pytest.mark.asyncio
    async def test_background_autosave_and_discard(self, drafts):
        from crudzaso.models.task import TaskDraft
        from crudzaso.services.drafts import AutoSaver

        saver = AutoSaver(drafts, task_id="task_9")
        job = saver.start(0.01)
        saver.update(TaskDraft(title="Edited title"))

        await asyncio.sleep(0.1)
        assert (await drafts.load("task_9")).draft.title == "Edited title"
        assert job.skipped >= 1

        await saver.discard()
        assert job.running is False
        assert await drafts.load("task_9") is None
