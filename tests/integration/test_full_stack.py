"""
Integration tests for crudzaso.

These tests verify the full stack works together:
- Application context builds on a real SQLite file and seeds demo data
- Services share one store across contexts
- MCP tools run end-to-end against SQLite
"""

import pytest
import tempfile
from pathlib import Path


def _sqlite_config(db_path):
    from crudzaso.config import CrudzasoConfig

    config = CrudzasoConfig()
    config.storage.type = "sqlite"
    config.storage.sqlite_path = str(db_path)
    return config


class TestContextOnSQLite:
    """Application context over a real database file."""

    @pytest.mark.asyncio
    async def test_context_seeds_once(self):
        from crudzaso.app import create_context

        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = Path(tmpdir) / "crudzaso.db"

            context = await create_context(_sqlite_config(db_path))
            assert db_path.exists(), "Database file should be created"
            assert len(await context.tasks.list_all()) == 5
            assert len(await context.auth.load_users()) == 3
            await context.close()

            # A second start finds the data and does not seed again
            context = await create_context(_sqlite_config(db_path))
            assert await context.seed() == {"users": 0, "tasks": 0}
            await context.close()

    @pytest.mark.asyncio
    async def test_user_workflow(self):
        """Register, create tasks, compute statistics, then see it all after a restart."""
        from crudzaso.app import create_context
        from crudzaso.models.task import TaskDraft
        from crudzaso.services import query

        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = Path(tmpdir) / "crudzaso.db"
            context = await create_context(_sqlite_config(db_path))

            identity = await context.auth.register("Lena Park", "lena@uni.edu", "longpassword", "longpassword")
            me = await context.require_identity()
            assert me == identity

            essay = await context.tasks.create(TaskDraft(title="Essay outline", category="Literature"), owner=me)
            await context.tasks.create(TaskDraft(title="Lab prep", category="Chemistry", priority="High"), owner=me)
            await context.tasks.toggle_status(essay.id, owner=me)

            visible = await context.tasks.list_by_owner(me.user_id)
            assert len(visible) == 7

            mine = query.apply(visible, query.TaskFilters(search="lab prep"))
            assert [t.title for t in mine] == ["Lab prep"]

            stats = await context.statistics_for(me)
            assert stats.total == 7
            assert stats.completed == 2
            assert stats.completed_today == 1
            await context.close()

            context = await create_context(_sqlite_config(db_path))
            session = await context.auth.current_session()
            assert session is not None and session.email == "lena@uni.edu"
            assert len(await context.tasks.list_by_owner(me.user_id)) == 7
            await context.close()

    @pytest.mark.asyncio
    async def test_two_contexts_do_not_lose_updates(self):
        from crudzaso.app import create_context
        from crudzaso.errors import ConflictError
        from crudzaso.models.task import TaskDraft

        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = Path(tmpdir) / "crudzaso.db"
            first = await create_context(_sqlite_config(db_path))
            second = await create_context(_sqlite_config(db_path))
            await first.tasks.load_all()
            await second.tasks.load_all()

            await first.tasks.create(TaskDraft(title="First writer", category="Art"))

            with pytest.raises(ConflictError):
                await second.tasks.create(TaskDraft(title="Stale writer", category="Art"))

            await second.dashboard.refresh()
            await second.tasks.create(TaskDraft(title="Second writer", category="Art"))

            titles = [t.title for t in await first.tasks.reload()]
            assert titles[-2:] == ["First writer", "Second writer"]

            await first.close()
            await second.close()


class TestMCPOnSQLite:
    @pytest.mark.asyncio
    async def test_tools_end_to_end(self):
        from crudzaso.app import create_context
        from crudzaso_mcp import server

        with tempfile.TemporaryDirectory() as tmpdir:
            context = await create_context(_sqlite_config(Path(tmpdir) / "crudzaso.db"))
            server.set_context(context)
            try:
                health = await server.crudzaso_health()
                assert health["storage_type"] == "sqlite"

                await server.auth_login("sarah@crudzaso.edu", "admin123")
                created = await server.task_create(title="Grade midterms", category="Mathematics", priority="High")
                listed = await server.task_list(search="midterms")

                assert [t["id"] for t in listed["tasks"]] == [created["id"]]
                overview = await server.dashboard_overview()
                assert overview["statistics"]["total"] == 6
            finally:
                await server.shutdown()
