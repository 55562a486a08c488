"""
Form validation for tasks, registration, login and profile edits.

Validators return cleaned values and raise ValidationError naming the
offending field. Whole-form validators collect every field error into a
single ValidationErrors.
"""

import re
from typing import Any

from crudzaso.errors import ValidationError, ValidationErrors
from crudzaso.models.profile import ACADEMIC_LEVELS, DEPARTMENTS, EDITABLE_FIELDS, THEMES
from crudzaso.models.task import (
    TaskCategory,
    TaskDifficulty,
    TaskDraft,
    TaskPriority,
    TaskStatus,
)
from crudzaso.timeutil import parse_date

MIN_TITLE_LENGTH = 3
MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 1000
MAX_ESTIMATED_HOURS = 100
MAX_TAGS = 20

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 8
LOGIN_PASSWORD_MIN_LENGTH = 6

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NAME_PATTERN = re.compile(r"^[a-zA-ZÀ-ÿñÑ\s'-]{2,50}$")


def validate_title(title: Any) -> str:
    value = (title or "").strip() if isinstance(title, str) or title is None else str(title).strip()
    if not value:
        raise ValidationError("title", "Task title is required")
    if len(value) < MIN_TITLE_LENGTH:
        raise ValidationError("title", f"Title must be at least {MIN_TITLE_LENGTH} characters")
    if len(value) > MAX_TITLE_LENGTH:
        raise ValidationError("title", f"Title cannot exceed {MAX_TITLE_LENGTH} characters")
    return value


def validate_description(description: Any) -> str:
    value = (description or "").strip()
    if len(value) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            "description", f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters"
        )
    return value


def validate_category(category: Any) -> TaskCategory:
    if category is None or (isinstance(category, str) and not category.strip()):
        raise ValidationError("category", "Please select a category")
    return TaskCategory.parse(category, "category")


def validate_estimated_hours(hours: Any) -> float:
    try:
        value = float(hours)
    except (TypeError, ValueError):
        raise ValidationError("estimated_hours", "Estimated hours must be a number")
    if value <= 0 or value > MAX_ESTIMATED_HOURS:
        raise ValidationError(
            "estimated_hours", f"Estimated hours must be greater than 0 and at most {MAX_ESTIMATED_HOURS}"
        )
    return value


def validate_actual_hours(hours: Any) -> float:
    try:
        value = float(hours)
    except (TypeError, ValueError):
        raise ValidationError("actual_hours", "Actual hours must be a number")
    if value < 0:
        raise ValidationError("actual_hours", "Actual hours cannot be negative")
    return value


def validate_due_date(due_date: Any):
    """Past dates are allowed; they mark the task overdue."""
    try:
        return parse_date(due_date)
    except (TypeError, ValueError):
        raise ValidationError("due_date", f"Invalid due date: {due_date!r}. Use YYYY-MM-DD")


def normalize_tags(tags: Any) -> list[str]:
    """Accept a list or a comma-separated string; trim, drop empties, de-duplicate."""
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    seen = []
    for tag in tags:
        tag = str(tag).strip()
        if tag and tag not in seen:
            seen.append(tag)
    if len(seen) > MAX_TAGS:
        raise ValidationError("tags", f"A task can have at most {MAX_TAGS} tags")
    return seen


def clean_task_fields(draft: TaskDraft, partial: bool = False) -> dict:
    """
    Validate a draft and convert it to typed Task attribute values.

    Args:
        draft: Submitted values
        partial: True for an update patch (only provided fields are checked,
                 nothing is required)

    Returns:
        Dict of Task attribute name to cleaned value

    Raises:
        ValidationErrors: listing every invalid field
    """
    values = draft.provided()
    cleaned: dict = {}
    errors: dict[str, str] = {}

    checks = {
        "title": validate_title,
        "description": validate_description,
        "category": validate_category,
        "priority": lambda v: TaskPriority.parse(v, "priority"),
        "status": lambda v: TaskStatus.parse(v, "status"),
        "difficulty": lambda v: TaskDifficulty.parse(v, "difficulty"),
        "due_date": validate_due_date,
        "estimated_hours": validate_estimated_hours,
        "actual_hours": validate_actual_hours,
        "tags": normalize_tags,
        "assignee": lambda v: v.strip() or None,
    }

    if not partial:
        for required in ("title", "category"):
            if required not in values:
                values[required] = None

    for name, check in checks.items():
        if name not in values:
            continue
        try:
            cleaned[name] = check(values[name])
        except ValidationError as e:
            errors[name] = e.message

    if errors:
        raise ValidationErrors(errors)
    return cleaned


def validate_email(email: Any) -> str:
    value = (email or "").strip().lower()
    if not value:
        raise ValidationError("email", "Email address is required")
    if not EMAIL_PATTERN.match(value):
        raise ValidationError("email", "Please enter a valid email address")
    return value


def validate_name(name: Any) -> str:
    value = (name or "").strip()
    if not value:
        raise ValidationError("name", "Full name is required")
    if len(value) < NAME_MIN_LENGTH:
        raise ValidationError("name", f"Name must be at least {NAME_MIN_LENGTH} characters")
    if len(value) > NAME_MAX_LENGTH:
        raise ValidationError("name", f"Name cannot exceed {NAME_MAX_LENGTH} characters")
    if not NAME_PATTERN.match(value):
        raise ValidationError("name", "Name can only contain letters, spaces, hyphens and apostrophes")
    return value


def validate_registration(name: Any, email: Any, password: Any, confirm_password: Any) -> dict:
    """Validate the registration form; returns cleaned name and email."""
    errors: dict[str, str] = {}
    cleaned: dict = {}

    for field_name, check, value in (("name", validate_name, name), ("email", validate_email, email)):
        try:
            cleaned[field_name] = check(value)
        except ValidationError as e:
            errors[field_name] = e.message

    if not password:
        errors["password"] = "Password is required"
    elif len(password) < PASSWORD_MIN_LENGTH:
        errors["password"] = f"Password must be at least {PASSWORD_MIN_LENGTH} characters"

    if not confirm_password:
        errors["confirm_password"] = "Please confirm your password"
    elif confirm_password != password:
        errors["confirm_password"] = "Passwords do not match"

    if errors:
        raise ValidationErrors(errors)
    return cleaned


def validate_login(email: Any, password: Any) -> str:
    """Validate the login form; returns the normalized email."""
    errors: dict[str, str] = {}
    cleaned_email = ""
    try:
        cleaned_email = validate_email(email)
    except ValidationError as e:
        errors["email"] = e.message

    if not password:
        errors["password"] = "Password is required"
    elif len(password) < LOGIN_PASSWORD_MIN_LENGTH:
        errors["password"] = f"Password must be at least {LOGIN_PASSWORD_MIN_LENGTH} characters"

    if errors:
        raise ValidationErrors(errors)
    return cleaned_email


def validate_profile_changes(changes: dict) -> dict:
    """
    Validate a profile edit.

    Only EDITABLE_FIELDS may change; identity and credential fields are
    rejected outright.
    """
    errors: dict[str, str] = {}
    cleaned: dict = {}

    for key, value in changes.items():
        if key not in EDITABLE_FIELDS:
            errors[key] = f"'{key}' cannot be changed from the profile"
            continue
        if value is None:
            continue
        try:
            if key == "name":
                cleaned[key] = validate_name(value)
            elif key == "department":
                if value not in DEPARTMENTS:
                    raise ValidationError(key, f"Unknown department: {value}")
                cleaned[key] = value
            elif key == "academic_level":
                if value not in ACADEMIC_LEVELS:
                    raise ValidationError(key, f"Unknown academic level: {value}")
                cleaned[key] = value
            elif key == "theme":
                if value not in THEMES:
                    raise ValidationError(key, f"Theme must be one of: {', '.join(THEMES)}")
                cleaned[key] = value
            elif key == "daily_goal":
                goal = float(value)
                if goal <= 0 or goal > 24:
                    raise ValidationError(key, "Daily goal must be between 1 and 24 hours")
                cleaned[key] = goal
            elif key in ("working_hours", "notifications", "social_links"):
                if not isinstance(value, dict):
                    raise ValidationError(key, f"'{key}' must be a mapping")
                cleaned[key] = dict(value)
            else:
                cleaned[key] = str(value).strip()
        except ValidationError as e:
            errors[key] = e.message
        except (TypeError, ValueError):
            errors[key] = f"Invalid value for '{key}'"

    if errors:
        raise ValidationErrors(errors)
    return cleaned
