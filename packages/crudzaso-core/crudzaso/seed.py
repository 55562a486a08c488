"""
Demo data written on first use: three accounts and five sample tasks.
"""

import logging
from datetime import date

from crudzaso.models.task import Task, TaskCategory, TaskPriority, TaskStatus
from crudzaso.models.user import User
from crudzaso.services.auth import AuthService, hash_password
from crudzaso.services.tasks import TaskRepository
from crudzaso.timeutil import parse_datetime

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {
        "email": "student@university.edu",
        "password": "password123",
        "name": "Alex Morgan",
        "role": "Product Designer",
        "department": "Computer Science",
        "join_date": "2023-09-15",
    },
    {
        "email": "sarah@crudzaso.edu",
        "password": "admin123",
        "name": "Dr. Sarah Jenkins",
        "role": "System Admin",
        "department": "Computer Science",
        "join_date": "2020-09-14",
    },
    {
        "email": "john@university.edu",
        "password": "student456",
        "name": "John Doe",
        "role": "Student",
        "department": "Mathematics",
        "join_date": "2024-01-10",
    },
]


def sample_tasks() -> list[Task]:
    """Sample tasks have no owner, so every account sees them."""
    return [
        Task(
            id="task_sample_1",
            title="Complete Quarter 3 Report",
            description="Finalize the quarterly analysis with updated figures and charts.",
            category=TaskCategory.MATHEMATICS,
            priority=TaskPriority.HIGH,
            status=TaskStatus.IN_PROGRESS,
            due_date=date(2024, 3, 15),
            created_at=parse_datetime("2024-03-01T10:00:00Z"),
            updated_at=parse_datetime("2024-03-10T14:30:00Z"),
            assignee="Sarah Lin",
            tags=["report", "quarterly"],
            estimated_hours=6,
        ),
        Task(
            id="task_sample_2",
            title="Physics Lab Report: Quantum Mechanics",
            description="Write up the double-slit experiment results and error analysis.",
            category=TaskCategory.PHYSICS,
            priority=TaskPriority.MEDIUM,
            status=TaskStatus.PENDING,
            due_date=date(2024, 3, 20),
            created_at=parse_datetime("2024-03-05T09:15:00Z"),
            updated_at=parse_datetime("2024-03-05T09:15:00Z"),
            assignee="Michelle O.",
            tags=["lab", "physics"],
            estimated_hours=4,
        ),
        Task(
            id="task_sample_3",
            title="History Essay: Industrial Revolution",
            description="Essay on the social impact of industrialization in 19th century Europe.",
            category=TaskCategory.HISTORY,
            priority=TaskPriority.LOW,
            status=TaskStatus.COMPLETED,
            due_date=date(2024, 3, 10),
            created_at=parse_datetime("2024-02-20T11:00:00Z"),
            updated_at=parse_datetime("2024-03-08T16:45:00Z"),
            assignee="Carlos M.",
            tags=["essay", "history"],
            estimated_hours=5,
            actual_hours=6,
        ),
        Task(
            id="task_sample_4",
            title="Database Systems Project: Phase 1",
            description="Design the ER model and normalize the schema for the course project.",
            category=TaskCategory.COMPUTER_SCIENCE,
            priority=TaskPriority.HIGH,
            status=TaskStatus.IN_PROGRESS,
            due_date=date(2024, 3, 25),
            created_at=parse_datetime("2024-03-01T08:30:00Z"),
            updated_at=parse_datetime("2024-03-12T10:20:00Z"),
            assignee="Raj Patel",
            tags=["project", "database"],
            estimated_hours=12,
        ),
        Task(
            id="task_sample_5",
            title="Literature Review: Modernist Poetry",
            description="Survey critical writing on Eliot, Pound and Moore.",
            category=TaskCategory.LITERATURE,
            priority=TaskPriority.MEDIUM,
            status=TaskStatus.PENDING,
            due_date=date(2024, 3, 30),
            created_at=parse_datetime("2024-03-08T13:20:00Z"),
            updated_at=parse_datetime("2024-03-08T13:20:00Z"),
            assignee="Emma Thompson",
            tags=["literature", "review"],
            estimated_hours=3,
        ),
    ]


async def seed_demo_users(auth: AuthService) -> int:
    """Create the demo accounts if no user is registered yet."""
    if await auth.load_users():
        return 0

    users = [
        User(
            name=entry["name"],
            email=entry["email"],
            password_hash=hash_password(entry["password"]),
            role=entry["role"],
            department=entry["department"],
            join_date=date.fromisoformat(entry["join_date"]),
            registration_date=parse_datetime(entry["join_date"]),
        )
        for entry in DEMO_USERS
    ]
    await auth.save_users(users)
    logger.info(f"Seeded {len(users)} demo users")
    return len(users)


async def seed_sample_tasks(repository: TaskRepository) -> int:
    """Store the sample tasks if the collection is empty."""
    if await repository.load_all():
        return 0

    tasks = sample_tasks()
    await repository.replace_all(tasks)
    logger.info(f"Seeded {len(tasks)} sample tasks")
    return len(tasks)


async def seed_demo_data(auth: AuthService, repository: TaskRepository) -> dict:
    return {
        "users": await seed_demo_users(auth),
        "tasks": await seed_sample_tasks(repository),
    }
