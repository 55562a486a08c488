"""
Statistics snapshot models.

Snapshots are derived from a task set at one instant and never stored.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Dict, Optional

from crudzaso.timeutil import to_iso


@dataclass
class GroupStats:
    """Counts for one category or priority level."""

    total: int = 0
    completed: int = 0
    pending: int = 0
    in_progress: int = 0
    estimated_hours: float = 0
    completion_rate: int = 0


@dataclass
class StatisticsSnapshot:
    """
    Aggregate productivity report.

    Rates are integer percents; hour averages carry one decimal.
    """

    total: int = 0
    completed: int = 0
    pending: int = 0
    in_progress: int = 0
    overdue: int = 0
    high_priority: int = 0
    completion_rate: int = 0

    tasks_last_7_days: int = 0
    tasks_last_30_days: int = 0
    completed_last_7_days: int = 0
    completed_last_30_days: int = 0
    completed_this_week: int = 0
    completed_today: int = 0
    weekly_trend: int = 0

    total_estimated_hours: float = 0
    total_actual_hours: float = 0
    average_task_hours: float = 0
    average_tasks_per_week: float = 0
    average_completion_per_week: float = 0

    productivity_streak: int = 0

    category_stats: Dict[str, GroupStats] = field(default_factory=dict)
    priority_stats: Dict[str, GroupStats] = field(default_factory=dict)

    computed_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        result = asdict(self)
        result["computed_at"] = to_iso(self.computed_at)
        return result
