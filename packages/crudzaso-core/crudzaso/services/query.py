"""
Query engine: search, filter, sort and paginate task lists.

Everything here is a pure function over an in-memory list; nothing touches
the store.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional

from crudzaso.errors import ValidationError
from crudzaso.models.task import (
    Task,
    TaskCategory,
    TaskDifficulty,
    TaskPriority,
    TaskStatus,
)

ALL = "all"

SORT_DIRECTIONS = ("asc", "desc")

SORT_FIELDS = (
    "relevance",
    "id",
    "title",
    "description",
    "category",
    "priority",
    "status",
    "difficulty",
    "assignee",
    "due_date",
    "created_at",
    "updated_at",
    "estimated_hours",
    "actual_hours",
)

QUICK_FILTERS = ("all", "pending", "in-progress", "completed")

_DIFFICULTY_RANK = {
    TaskDifficulty.EASY: 1,
    TaskDifficulty.MEDIUM: 2,
    TaskDifficulty.HARD: 3,
}

_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")


def _is_all(value) -> bool:
    return value is None or str(value).strip().lower() in ("", ALL)


@dataclass
class TaskFilters:
    """
    Search term plus structured filters.

    Each structured filter is either "all" or one enumerated value (any
    accepted spelling). Filters combine with AND.
    """

    search: str = ""
    category: str = ALL
    priority: str = ALL
    status: str = ALL

    def parsed(self) -> dict:
        """Structured filters that are active, as enum members."""
        active = {}
        if not _is_all(self.category):
            active["category"] = TaskCategory.parse(self.category, "category")
        if not _is_all(self.priority):
            active["priority"] = TaskPriority.parse(self.priority, "priority")
        if not _is_all(self.status):
            active["status"] = TaskStatus.parse(self.status, "status")
        return active

    @property
    def is_empty(self) -> bool:
        return not (self.search or "").strip() and not self.parsed()


@dataclass
class SortSpec:
    """Sort field and direction; camelCase field names are accepted."""

    field: str = "relevance"
    direction: str = "asc"

    def __post_init__(self):
        name = _CAMEL.sub("_", (self.field or "relevance").strip()).lower()
        if name not in SORT_FIELDS:
            raise ValidationError(
                "sort", f"Invalid sort field: {self.field!r}. Must be one of: {', '.join(SORT_FIELDS)}"
            )
        direction = (self.direction or "asc").strip().lower()
        if direction not in SORT_DIRECTIONS:
            raise ValidationError("direction", f"Invalid sort direction: {self.direction!r}")
        self.field = name
        self.direction = direction

    @property
    def descending(self) -> bool:
        return self.direction == "desc"


@dataclass
class Page:
    """One page of a result list."""

    items: List[Task] = field(default_factory=list)
    page: int = 1
    page_size: int = 10
    total: int = 0
    total_pages: int = 1

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def start_index(self) -> int:
        """1-based index of the first item shown (0 when empty)."""
        return (self.page - 1) * self.page_size + 1 if self.items else 0

    @property
    def end_index(self) -> int:
        return (self.page - 1) * self.page_size + len(self.items)


def _search_fields(task: Task) -> Iterable[str]:
    yield task.title
    yield task.description
    yield task.category.value
    yield task.assignee or ""
    yield from task.tags
    yield task.id
    yield task.status.value
    yield task.priority.value


def matches_search(task: Task, term: str) -> bool:
    needle = (term or "").strip().lower()
    if not needle:
        return True
    return any(needle in (value or "").lower() for value in _search_fields(task))


def search(tasks: Iterable[Task], term: str) -> list[Task]:
    """Tasks where any searchable field contains term, case-insensitively."""
    return [task for task in tasks if matches_search(task, term)]


def filter_tasks(tasks: Iterable[Task], filters: Optional[TaskFilters] = None) -> list[Task]:
    """
    Apply search and structured filters.

    Raises:
        ValidationError: if a structured filter names an unknown value
    """
    filters = filters or TaskFilters()
    active = filters.parsed()
    result = []
    for task in tasks:
        if not matches_search(task, filters.search):
            continue
        if any(getattr(task, name) != value for name, value in active.items()):
            continue
        result.append(task)
    return result


def relevance_key(task: Task) -> tuple:
    """Open work first, then higher priority, then nearest due date (undated last)."""
    return (
        task.status.rank,
        -task.priority.rank,
        task.due_date is None,
        task.due_date or date.max,
    )


def sort_by_relevance(tasks: Iterable[Task]) -> list[Task]:
    return sorted(tasks, key=relevance_key)


def _field_value(task: Task, name: str):
    value = getattr(task, name)
    if value is None:
        return None
    if name in ("priority", "status"):
        return value.rank
    if name == "difficulty":
        return _DIFFICULTY_RANK[value]
    if isinstance(value, str):
        return value.casefold() if value.strip() else None
    return value


def sort_tasks(tasks: Iterable[Task], sort: Optional[SortSpec] = None) -> list[Task]:
    """
    Sort by any task field.

    Strings compare case-insensitively, priority/status/difficulty by rank,
    dates chronologically. Missing values go last in either direction; ties
    break by id ascending.
    """
    sort = sort or SortSpec()
    if sort.field == "relevance":
        ordered = sort_by_relevance(tasks)
        return list(reversed(ordered)) if sort.descending else ordered

    by_id = sorted(tasks, key=lambda t: t.id)
    present = [t for t in by_id if _field_value(t, sort.field) is not None]
    missing = [t for t in by_id if _field_value(t, sort.field) is None]

    present.sort(key=lambda t: _field_value(t, sort.field), reverse=sort.descending)
    return present + missing


def apply(
    tasks: Iterable[Task],
    filters: Optional[TaskFilters] = None,
    sort: Optional[SortSpec] = None,
) -> list[Task]:
    """Filter then sort."""
    return sort_tasks(filter_tasks(tasks, filters), sort)


def paginate(tasks: List[Task], page_size: int, page: int = 1) -> Page:
    """
    Slice one page out of a result list.

    The page number is clamped into range, so asking for page 0 or past the
    end returns the first or last page.
    """
    if page_size < 1:
        raise ValidationError("page_size", "Page size must be at least 1")

    total = len(tasks)
    total_pages = max(1, math.ceil(total / page_size))
    page = min(max(1, int(page)), total_pages)

    start = (page - 1) * page_size
    return Page(
        items=list(tasks[start:start + page_size]),
        page=page,
        page_size=page_size,
        total=total,
        total_pages=total_pages,
    )


def quick_filter(tasks: Iterable[Task], name: str = ALL) -> list[Task]:
    """
    Dashboard quick filter: all, pending, in-progress or completed.

    Raises:
        ValidationError: for any other name
    """
    if _is_all(name):
        return list(tasks)
    key = str(name).strip().lower()
    if key not in QUICK_FILTERS:
        raise ValidationError(
            "filter", f"Invalid filter: {name!r}. Must be one of: {', '.join(QUICK_FILTERS)}"
        )
    status = TaskStatus.parse(key, "filter")
    return [task for task in tasks if task.status == status]
