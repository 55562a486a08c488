"""
Business logic services for Crudzaso.
"""

from crudzaso.services import query, statistics
from crudzaso.services.auth import AuthService
from crudzaso.services.dashboard import DashboardService
from crudzaso.services.drafts import AutoSaver, DraftService
from crudzaso.services.profiles import ProfileService
from crudzaso.services.statistics import StatisticsCache
from crudzaso.services.tasks import TaskRepository
from crudzaso.services.timers import PeriodicJob

__all__ = [
    "TaskRepository",
    "AuthService",
    "ProfileService",
    "DraftService",
    "AutoSaver",
    "DashboardService",
    "StatisticsCache",
    "PeriodicJob",
    "query",
    "statistics",
]
