"""
Tests for the crudzaso MCP tools.

Tools are called directly against an in-memory application context.
"""

import pytest


@pytest.fixture
async def server(memory_store):
    from crudzaso.app import create_context
    from crudzaso.config import CrudzasoConfig
    from crudzaso_mcp import server as server_module

    config = CrudzasoConfig()
    config.storage.type = "memory"
    context = await create_context(config, store=memory_store)
    server_module.set_context(context)

    yield server_module

    await server_module.shutdown()


@pytest.fixture
async def signed_in(server):
    result = await server.auth_login("student@university.edu", "password123")
    assert "error" not in result
    return server


class TestToolRegistry:
    @pytest.mark.asyncio
    async def test_server_has_tools(self):
        from crudzaso_mcp.server import mcp

        tool_names = {tool.name for tool in await mcp.list_tools()}

        assert {
            "auth_login", "auth_register", "auth_logout", "auth_session",
            "task_list", "task_show", "task_create", "task_update", "task_delete",
            "task_toggle_status", "task_duplicate", "task_stats",
            "dashboard_overview", "profile_show", "profile_update",
            "draft_save", "draft_load", "draft_clear", "crudzaso_health",
        } <= tool_names


class TestAuthTools:
    @pytest.mark.asyncio
    async def test_login_and_session(self, server):
        result = await server.auth_login("student@university.edu", "password123", remember_me=True)

        assert result["session"]["name"] == "Alex Morgan"
        session = await server.auth_session()
        assert session["authenticated"] is True
        assert session["remembered_email"] == "student@university.edu"

    @pytest.mark.asyncio
    async def test_bad_login_is_a_result_not_an_exception(self, server):
        result = await server.auth_login("student@university.edu", "nope-nope")

        assert result["kind"] == "invalid_credentials"
        assert result["error"].startswith("Invalid email or password")

    @pytest.mark.asyncio
    async def test_register_duplicate(self, server):
        result = await server.auth_register("Alex Again", "STUDENT@university.edu", "longpassword", "longpassword")

        assert result["kind"] == "email_already_registered"

    @pytest.mark.asyncio
    async def test_register_signs_in(self, server):
        result = await server.auth_register("Nora Vale", "nora@uni.edu", "longpassword", "longpassword")

        assert result["signed_in"] is True
        assert result["user"]["email"] == "nora@uni.edu"

    @pytest.mark.asyncio
    async def test_tools_require_session(self, server):
        for call in (server.task_list(), server.task_stats(), server.profile_show(), server.draft_load()):
            result = await call
            assert result["kind"] == "not_authenticated"

    @pytest.mark.asyncio
    async def test_logout(self, signed_in):
        await signed_in.auth_logout()

        assert (await signed_in.auth_session())["authenticated"] is False
        assert (await signed_in.task_list())["kind"] == "not_authenticated"


class TestTaskTools:
    @pytest.mark.asyncio
    async def test_seeded_tasks_are_listed(self, signed_in):
        result = await signed_in.task_list()

        assert result["total"] == 5
        # relevance: open work first, nearest due date breaks the tie
        assert result["tasks"][0]["title"] == "Physics Lab Report: Quantum Mechanics"
        assert result["tasks"][-1]["status"] == "Completed"

    @pytest.mark.asyncio
    async def test_search_filter_and_page(self, signed_in):
        result = await signed_in.task_list(search="report", page_size=1, page=2)

        assert result["total"] == 2
        assert result["count"] == 1
        assert result["page"] == 2
        assert result["has_previous"] is True

        physics = await signed_in.task_list(category="physics")
        assert [t["title"] for t in physics["tasks"]] == ["Physics Lab Report: Quantum Mechanics"]

    @pytest.mark.asyncio
    async def test_create_update_toggle_delete(self, signed_in):
        created = await signed_in.task_create(title="Study for finals", category="Biology", tags=["exam"])
        assert created["assignee"] == "Alex Morgan"
        task_id = created["id"]

        updated = await signed_in.task_update(task_id, priority="High", due_date="2024-06-01")
        assert updated["priority"] == "High"
        assert updated["dueDate"] == "2024-06-01"

        toggled = await signed_in.task_toggle_status(task_id)
        assert toggled["status"] == "Completed"

        copy = await signed_in.task_duplicate(task_id)
        assert copy["title"] == "Study for finals (Copy)"
        assert copy["status"] == "Pending"

        assert await signed_in.task_delete(task_id) == {"deleted": task_id}
        missing = await signed_in.task_show(task_id)
        assert missing["kind"] == "not_found"

    @pytest.mark.asyncio
    async def test_writes_from_another_process_are_picked_up(self, signed_in, memory_store):
        from crudzaso.models.task import TaskDraft
        from crudzaso.services.tasks import TaskRepository

        assert (await signed_in.task_list())["total"] == 5
        other_process = TaskRepository(store=memory_store.share())
        await other_process.create(TaskDraft(title="Written elsewhere", category="Art"))

        listed = await signed_in.task_list(search="Written elsewhere")
        assert listed["total"] == 1

        created = await signed_in.task_create(title="Written here", category="Art")
        assert "error" not in created
        assert (await signed_in.task_stats())["total"] == 7

    @pytest.mark.asyncio
    async def test_create_validation_error(self, signed_in):
        result = await signed_in.task_create(title="ab")

        assert result["kind"] == "validation"
        assert set(result["fields"]) == {"title", "category"}

    @pytest.mark.asyncio
    async def test_create_from_template_clears_draft(self, signed_in):
        await signed_in.draft_save(title="Unfinished")

        created = await signed_in.task_create(template="essay", title="Essay on Woolf")

        assert created["category"] == "Literature"
        assert created["estimatedHours"] == 8
        assert (await signed_in.draft_load())["draft"] is None

    @pytest.mark.asyncio
    async def test_invalid_sort(self, signed_in):
        result = await signed_in.task_list(sort="colour")

        assert result["kind"] == "validation"
        assert result["field"] == "sort"


class TestDashboardAndProfileTools:
    @pytest.mark.asyncio
    async def test_task_stats(self, signed_in):
        stats = await signed_in.task_stats()

        assert stats["total"] == 5
        assert stats["completed"] == 1
        assert stats["completion_rate"] == 20
        assert set(stats["priority_stats"]) == {"Low", "Medium", "High"}

    @pytest.mark.asyncio
    async def test_dashboard_overview(self, signed_in):
        overview = await signed_in.dashboard_overview(filter="pending")

        assert overview["matching"] == 2
        assert all(t["status"] == "Pending" for t in overview["tasks"])
        assert overview["greeting"] in ("Good morning", "Good afternoon", "Good evening")

    @pytest.mark.asyncio
    async def test_profile_show_and_update(self, signed_in):
        profile = await signed_in.profile_show()
        assert profile["name"] == "Alex Morgan"

        updated = await signed_in.profile_update(bio="Designer and student", theme="dark")
        assert updated["bio"] == "Designer and student"
        assert updated["theme"] == "dark"

        bad = await signed_in.profile_update(theme="neon")
        assert bad["kind"] == "validation"

    @pytest.mark.asyncio
    async def test_drafts(self, signed_in):
        saved = await signed_in.draft_save(task_id="task_sample_1", title="Edited")
        assert saved["savedAt"] is not None

        loaded = await signed_in.draft_load(task_id="task_sample_1")
        assert loaded["draft"]["title"] == "Edited"

        assert (await signed_in.draft_clear(task_id="task_sample_1"))["cleared"] is True


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, server):
        result = await server.crudzaso_health()

        assert result["status"] == "healthy"
        assert result["storage_type"] == "memory"
        assert result["tasks_revision"] == 1


class TestGuard:
    @pytest.mark.asyncio
    async def test_unexpected_errors_become_generic_message(self):
        from crudzaso_mcp.server import GENERIC_ERROR, guarded

        @guarded
        async def broken():
            raise RuntimeError("boom")

        result = await broken()

        assert result == {"error": GENERIC_ERROR, "kind": "internal"}

    @pytest.mark.asyncio
    async def test_health_reports_startup_failure(self, monkeypatch, tmp_path):
        from crudzaso_mcp import server
        from crudzaso_mcp.server import GENERIC_ERROR

        monkeypatch.setattr("crudzaso.config.CONFIG_FILE", tmp_path / "config.yaml")
        monkeypatch.delenv("CRUDZASO_DATABASE_URL", raising=False)
        monkeypatch.setenv("CRUDZASO_STORAGE", "bogus")
        server.set_context(None)

        result = await server.crudzaso_health()

        assert result == {"error": GENERIC_ERROR, "kind": "internal"}
