"""
Core data models for Crudzaso.
"""

from crudzaso.models.profile import Profile
from crudzaso.models.statistics import GroupStats, StatisticsSnapshot
from crudzaso.models.task import (
    Task,
    TaskCategory,
    TaskDifficulty,
    TaskDraft,
    TaskPriority,
    TaskStatus,
    slugify,
)
from crudzaso.models.user import Identity, Session, User

__all__ = [
    "Task",
    "TaskDraft",
    "TaskStatus",
    "TaskPriority",
    "TaskCategory",
    "TaskDifficulty",
    "slugify",
    "User",
    "Identity",
    "Session",
    "Profile",
    "StatisticsSnapshot",
    "GroupStats",
]
