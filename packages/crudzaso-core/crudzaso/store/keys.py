"""
Storage key names.

Kept identical to the keys the browser pages wrote so an exported
localStorage dump can be loaded as-is.
"""

SESSION_KEY = "crudzaso_user_session"
REMEMBER_ME_KEY = "crudzaso_remember_me"
USERS_KEY = "crudzaso_users"
TASKS_KEY = "crudzaso_tasks"
TASKS_REVISION_KEY = "crudzaso_tasks_revision"
NEW_TASK_DRAFT_KEY = "crudzaso_new_task_draft"

PROFILE_PREFIX = "crudzaso_profile_"
TASK_DRAFT_PREFIX = "crudzaso_task_draft_"


def profile_key(user_id: str) -> str:
    return f"{PROFILE_PREFIX}{user_id}"


def draft_key(task_id: str | None = None) -> str:
    """Draft key for editing an existing task, or for a new one."""
    if task_id:
        return f"{TASK_DRAFT_PREFIX}{task_id}"
    return NEW_TASK_DRAFT_KEY
