"""
Pytest configuration and fixtures for crudzaso tests.
"""

import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add packages to path for testing
packages_dir = Path(__file__).parent.parent / "packages"
sys.path.insert(0, str(packages_dir / "crudzaso-core"))
sys.path.insert(0, str(packages_dir / "crudzaso-mcp"))


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory."""
    config_dir = tmp_path / ".crudzaso"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def now():
    """A fixed instant: Friday 2024-03-15 10:00 UTC."""
    return datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def memory_store():
    from crudzaso.store.memory import MemoryStore

    return MemoryStore()


@pytest.fixture
def identity():
    from crudzaso.models.user import Identity

    return Identity(user_id="user-1", email="alex@university.edu", name="Alex Morgan")


@pytest.fixture
def other_identity():
    from crudzaso.models.user import Identity

    return Identity(user_id="user-2", email="john@university.edu", name="John Doe")


@pytest.fixture
def repository(memory_store):
    from crudzaso.services.tasks import TaskRepository

    return TaskRepository(store=memory_store)


@pytest.fixture
def sample_task_data():
    """Form values for a valid task."""
    return {
        "title": "Write lab report",
        "description": "Pendulum experiment write-up",
        "category": "Physics",
        "priority": "High",
        "due_date": "2024-03-20",
        "estimated_hours": 3,
        "tags": ["lab", "report"],
    }


@pytest.fixture
def make_task():
    """Factory for Task objects with sensible defaults."""
    from crudzaso.models.task import Task, TaskCategory, TaskPriority, TaskStatus

    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        values = {
            "id": f"task_{counter['n']:03d}",
            "title": f"Task {counter['n']}",
            "category": TaskCategory.MATHEMATICS,
            "priority": TaskPriority.MEDIUM,
            "status": TaskStatus.PENDING,
            "created_at": datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc),
        }
        values.update(overrides)
        return Task(**values)

    return _make
