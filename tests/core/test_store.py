"""
Tests for the key-value stores.
"""

import pytest
import tempfile
from pathlib import Path


@pytest.fixture
async def sqlite_store():
    """Create a temporary SQLite store for testing."""
    from crudzaso.store.sqlite import SQLiteStore

    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "nested" / "test.db"
        store = SQLiteStore(str(db_path))
        await store.connect()

        yield store

        await store.close()


@pytest.fixture(params=["memory", "sqlite"])
async def store(request, sqlite_store):
    from crudzaso.store.memory import MemoryStore

    if request.param == "memory":
        yield MemoryStore()
    else:
        yield sqlite_store


@pytest.mark.asyncio
async def test_get_missing_key(store):
    assert await store.get("missing") is None


@pytest.mark.asyncio
async def test_set_get_overwrite(store):
    await store.set("crudzaso_tasks", "[]")
    await store.set("crudzaso_tasks", "[1]")

    assert await store.get("crudzaso_tasks") == "[1]"


@pytest.mark.asyncio
async def test_delete(store):
    await store.set("k", "v")

    assert await store.delete("k") is True
    assert await store.delete("k") is False
    assert await store.get("k") is None


@pytest.mark.asyncio
async def test_keys_with_prefix(store):
    """Underscores in prefixes are literal, not wildcards."""
    await store.set("crudzaso_profile_1", "{}")
    await store.set("crudzaso_profile_2", "{}")
    await store.set("crudzaso_profileX3", "{}")
    await store.set("crudzaso_tasks", "[]")

    assert await store.keys("crudzaso_profile_") == ["crudzaso_profile_1", "crudzaso_profile_2"]
    assert len(await store.keys()) == 4


@pytest.mark.asyncio
async def test_json_helpers(store):
    await store.write_json("crudzaso_remember_me", {"email": "a@b.com"})

    assert await store.read_json("crudzaso_remember_me") == {"email": "a@b.com"}
    assert await store.read_json("absent", default=[]) == []


@pytest.mark.asyncio
async def test_corrupt_json_is_cleared(store):
    """A corrupt value reads as absent and is removed."""
    await store.set("crudzaso_tasks", "{not json")

    assert await store.read_json("crudzaso_tasks", default=[]) == []
    assert await store.get("crudzaso_tasks") is None


@pytest.mark.asyncio
async def test_write_unserializable_value(store):
    from crudzaso.errors import StorageError

    with pytest.raises(StorageError):
        await store.write_json("bad", {"value": object()})


@pytest.mark.asyncio
async def test_sqlite_persists_across_connections():
    from crudzaso.store.sqlite import SQLiteStore

    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = str(Path(tmpdir) / "test.db")

        first = SQLiteStore(db_path)
        await first.connect()
        await first.write_json("crudzaso_users", [{"id": "1"}])
        await first.close()

        second = SQLiteStore(db_path)
        await second.connect()
        assert await second.read_json("crudzaso_users") == [{"id": "1"}]
        assert second.backend == "sqlite"
        await second.close()


@pytest.mark.asyncio
async def test_memory_store_share():
    from crudzaso.store.memory import MemoryStore

    tab_one = MemoryStore()
    tab_two = tab_one.share()

    await tab_one.set("k", "v")

    assert await tab_two.get("k") == "v"


def test_factory_creates_configured_store():
    from crudzaso.config import CrudzasoConfig
    from crudzaso.store.factory import create_store
    from crudzaso.store.memory import MemoryStore
    from crudzaso.store.sqlite import SQLiteStore

    config = CrudzasoConfig()
    assert isinstance(create_store(config), SQLiteStore)

    config.storage.type = "memory"
    assert isinstance(create_store(config), MemoryStore)


def test_factory_rejects_bad_config():
    from crudzaso.config import CrudzasoConfig
    from crudzaso.store.factory import create_store

    config = CrudzasoConfig()
    config.storage.type = "redis"
    with pytest.raises(ValueError) as exc:
        create_store(config)
    assert "memory, sqlite, postgres" in str(exc.value)

    config.storage.type = "postgres"
    config.storage.postgres_url = None
    with pytest.raises(ValueError) as exc:
        create_store(config)
    assert "CRUDZASO_DATABASE_URL" in str(exc.value)


def test_global_store_singleton():
    from crudzaso.config import CrudzasoConfig
    from crudzaso.store.factory import get_store, reset_store

    config = CrudzasoConfig()
    config.storage.type = "memory"

    reset_store()
    try:
        assert get_store(config) is get_store()
    finally:
        reset_store()


@pytest.mark.asyncio
async def test_compare_and_set_bumps_revision(store):
    assert await store.write_json_if_revision("crudzaso_tasks", [{"id": "a"}], "crudzaso_tasks_revision", 0) == 1
    assert await store.write_json_if_revision("crudzaso_tasks", [], "crudzaso_tasks_revision", 1) == 2

    assert await store.read_json("crudzaso_tasks") == []
    assert await store.read_json("crudzaso_tasks_revision") == 2


@pytest.mark.asyncio
async def test_compare_and_set_rejects_stale_revision(store):
    from crudzaso.errors import ConflictError

    await store.write_json_if_revision("crudzaso_tasks", [{"id": "a"}], "crudzaso_tasks_revision", 0)

    with pytest.raises(ConflictError) as exc:
        await store.write_json_if_revision("crudzaso_tasks", [], "crudzaso_tasks_revision", 0)

    assert (exc.value.expected, exc.value.found) == (0, 1)
    # Neither key changed
    assert await store.read_json("crudzaso_tasks") == [{"id": "a"}]
    assert await store.read_json("crudzaso_tasks_revision") == 1


@pytest.mark.asyncio
async def test_sqlite_compare_and_set_across_connections():
    """Two handles on one file cannot both write from the same revision."""
    import asyncio

    from crudzaso.store.sqlite import SQLiteStore

    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = str(Path(tmpdir) / "shared.db")
        first, second = SQLiteStore(db_path), SQLiteStore(db_path)
        await first.connect()
        await second.connect()

        results = await asyncio.gather(
            first.write_json_if_revision("crudzaso_tasks", ["first"], "crudzaso_tasks_revision", 0),
            second.write_json_if_revision("crudzaso_tasks", ["second"], "crudzaso_tasks_revision", 0),
            return_exceptions=True,
        )

        assert sorted(type(r).__name__ for r in results) == ["ConflictError", "int"]
        winner = ["first", "second"][0 if results[0] == 1 else 1]
        assert await first.read_json("crudzaso_tasks") == [winner]
        assert await second.read_json("crudzaso_tasks_revision") == 1

        await first.close()
        await second.close()
