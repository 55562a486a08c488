"""
Task model for Crudzaso.

Tasks are academic to-do items with a category, priority, status and
optional due date. Status, priority, category and difficulty are closed
sets with one canonical spelling each.
"""

import re
import secrets
import string
import time
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from enum import Enum
from typing import Optional, List

from crudzaso.errors import ValidationError
from crudzaso.timeutil import parse_date, parse_datetime, to_iso, utcnow

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")
_BASE36 = string.digits + string.ascii_lowercase


def slugify(value: str) -> str:
    """
    Derive the key used for CSS classes, map keys and filter values.

    "In Progress" -> "in-progress", "Computer Science" -> "computer-science".
    """
    return _SLUG_STRIP.sub("-", str(value).strip().lower()).strip("-")


class Choice(str, Enum):
    """A closed set of display strings with lenient parsing."""

    @property
    def slug(self) -> str:
        return slugify(self.value)

    @classmethod
    def parse(cls, value, field_name: str | None = None):
        """
        Accept the canonical value, its slug, snake_case or squashed form.

        Raises:
            ValidationError: if the value matches no member
        """
        if isinstance(value, cls):
            return value
        key = slugify(value or "").replace("-", "")
        for member in cls:
            if member.slug.replace("-", "") == key:
                return member
        allowed = ", ".join(m.value for m in cls)
        name = field_name or cls.__name__
        raise ValidationError(name, f"Invalid {name}: {value!r}. Must be one of: {allowed}")

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(m.value for m in cls)

    def __str__(self) -> str:
        return self.value


class TaskStatus(Choice):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"

    @property
    def rank(self) -> int:
        """Relevance order: open work first."""
        return _STATUS_RANK[self]


class TaskPriority(Choice):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


class TaskCategory(Choice):
    MATHEMATICS = "Mathematics"
    PHYSICS = "Physics"
    HISTORY = "History"
    COMPUTER_SCIENCE = "Computer Science"
    LITERATURE = "Literature"
    CHEMISTRY = "Chemistry"
    BIOLOGY = "Biology"
    ART = "Art"
    MUSIC = "Music"


class TaskDifficulty(Choice):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


_STATUS_RANK = {
    TaskStatus.PENDING: 1,
    TaskStatus.IN_PROGRESS: 2,
    TaskStatus.COMPLETED: 3,
}

_PRIORITY_RANK = {
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.HIGH: 3,
}


def generate_task_id() -> str:
    """Time-based id with a random suffix: task_<epoch-ms>_<9 base36 chars>."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"task_{int(time.time() * 1000)}_{suffix}"


@dataclass
class Task:
    """
    An academic task.

    Attributes:
        id: Unique identifier (task_<ms>_<random>)
        title: Task title
        category: Subject the task belongs to
        description: Detailed description
        priority: Low, Medium or High
        status: Pending, In Progress or Completed
        due_date: Optional calendar date; past dates mean overdue
        created_at: When the task was created
        updated_at: When last modified (never before created_at)
        assignee: Display name of the person doing the work
        tags: Free-form labels
        estimated_hours: Planned effort
        actual_hours: Effort spent so far
        difficulty: Easy, Medium or Hard
        user_id: Owning user; None means visible to everyone
    """

    title: str
    category: TaskCategory
    id: str = field(default_factory=generate_task_id)
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    due_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    assignee: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    estimated_hours: float = 1
    actual_hours: float = 0
    difficulty: TaskDifficulty = TaskDifficulty.MEDIUM
    user_id: Optional[str] = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = utcnow()
        if self.updated_at is None or self.updated_at < self.created_at:
            self.updated_at = self.created_at

    @property
    def is_complete(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def is_open(self) -> bool:
        return not self.is_complete

    def is_overdue(self, today: date) -> bool:
        """Open task whose due date is strictly before today."""
        return self.is_open and self.due_date is not None and self.due_date < today

    def to_dict(self) -> dict:
        """Convert to the JSON shape stored under the tasks key."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category.value,
            "priority": self.priority.value,
            "status": self.status.value,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
            "assignee": self.assignee,
            "tags": list(self.tags),
            "estimatedHours": self.estimated_hours,
            "actualHours": self.actual_hours,
            "difficulty": self.difficulty.value,
            "userId": self.user_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        """
        Create Task from a stored record.

        Raises:
            ValidationError: if an enumerated field holds an unknown value
            ValueError: if a date cannot be parsed
        """
        user_id = data.get("userId")
        return cls(
            id=str(data["id"]) if data.get("id") is not None else generate_task_id(),
            title=data.get("title", ""),
            description=data.get("description") or "",
            category=TaskCategory.parse(data.get("category"), "category"),
            priority=TaskPriority.parse(data.get("priority") or "Medium", "priority"),
            status=TaskStatus.parse(data.get("status") or "Pending", "status"),
            due_date=parse_date(data.get("dueDate")),
            created_at=parse_datetime(data.get("createdAt")),
            updated_at=parse_datetime(data.get("updatedAt")),
            assignee=data.get("assignee"),
            tags=_stored_tags(data.get("tags")),
            estimated_hours=data.get("estimatedHours") or 0,
            actual_hours=data.get("actualHours") or 0,
            difficulty=TaskDifficulty.parse(data.get("difficulty") or "Medium", "difficulty"),
            user_id=str(user_id) if user_id not in (None, "") else None,
        )


@dataclass
class TaskDraft:
    """
    Submitted (or auto-saved) form values for a task.

    Every field is optional; unset fields are None. Used both as the input
    to create() and as the patch for update().
    """

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    due_date: Optional[str] = None
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    assignee: Optional[str] = None
    tags: Optional[List[str]] = None
    difficulty: Optional[str] = None

    def provided(self) -> dict:
        """Fields that were actually set."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "priority": self.priority,
            "status": self.status,
            "dueDate": self.due_date,
            "estimatedHours": self.estimated_hours,
            "actualHours": self.actual_hours,
            "assignee": self.assignee,
            "tags": self.tags,
            "difficulty": self.difficulty,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TaskDraft":
        return cls(
            title=data.get("title"),
            description=data.get("description"),
            category=data.get("category"),
            priority=data.get("priority"),
            status=data.get("status"),
            due_date=data.get("dueDate"),
            estimated_hours=data.get("estimatedHours"),
            actual_hours=data.get("actualHours"),
            assignee=data.get("assignee"),
            tags=data.get("tags"),
            difficulty=data.get("difficulty"),
        )

    @classmethod
    def from_template(cls, name: str, **overrides) -> "TaskDraft":
        """Start a draft from one of TASK_TEMPLATES, overriding any field."""
        try:
            template = TASK_TEMPLATES[name]
        except KeyError:
            allowed = ", ".join(TASK_TEMPLATES)
            raise ValidationError("template", f"Unknown template: {name!r}. Must be one of: {allowed}")
        values = dict(template)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


TASK_TEMPLATES = {
    "essay": {
        "title": "Academic Essay Assignment",
        "description": "Write a comprehensive essay analyzing the topic with proper citations and bibliography.",
        "estimated_hours": 8,
        "category": "Literature",
        "priority": "Medium",
        "tags": ["writing", "research", "analysis"],
    },
    "lab": {
        "title": "Laboratory Experiment Report",
        "description": "Conduct experiment, collect data, analyze results, and prepare detailed lab report.",
        "estimated_hours": 6,
        "category": "Physics",
        "priority": "High",
        "tags": ["lab", "experiment", "report"],
    },
    "presentation": {
        "title": "Academic Presentation",
        "description": "Prepare and deliver a presentation on assigned topic with visual aids.",
        "estimated_hours": 5,
        "category": "History",
        "priority": "Medium",
        "tags": ["presentation", "research", "public-speaking"],
    },
    "project": {
        "title": "Course Final Project",
        "description": "Complete comprehensive final project incorporating all course concepts and requirements.",
        "estimated_hours": 20,
        "category": "Computer Science",
        "priority": "High",
        "tags": ["project", "final", "comprehensive"],
    },
}


def _stored_tags(value) -> list[str]:
    # Older records may hold a comma-separated string or non-string items
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(tag).strip() for tag in value if str(tag).strip()]
