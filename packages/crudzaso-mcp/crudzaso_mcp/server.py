"""
Crudzaso MCP Server

Academic task manager exposed as MCP tools: sign-in, task CRUD, search,
dashboard statistics, profile and form drafts.
"""

import asyncio
import functools
import logging
import sys
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from crudzaso.errors import CrudzasoError
from crudzaso.models.task import TaskDraft
from crudzaso.services import query

# Initialize FastMCP server
mcp = FastMCP("crudzaso")

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong. Please refresh and try again."

# Global state
_context = None


async def ensure_initialized():
    """Ensure the application context exists and return it."""
    global _context
    if _context is not None:
        return _context

    from crudzaso.app import create_context
    from crudzaso.config import load_config

    _context = await create_context(load_config())
    logger.info("Crudzaso initialized")
    return _context


def set_context(context) -> None:
    """Use an already built AppContext (embedding, tests)."""
    global _context
    _context = context


async def shutdown() -> None:
    global _context
    if _context is not None:
        await _context.close()
        _context = None


def guarded(func):
    """Turn raised errors into tool results instead of protocol failures."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except CrudzasoError as e:
            logger.warning(f"{func.__name__}: {e.message}")
            return e.to_dict()
        except Exception:
            logger.exception(f"Unexpected error in {func.__name__}")
            return {"error": GENERIC_ERROR, "kind": "internal"}

    return wrapper


def _draft(**values) -> TaskDraft:
    return TaskDraft(**values)


async def _task_user(context):
    """Signed-in identity, with tasks re-read if another process wrote them."""
    identity = await context.require_identity()
    await context.tasks.sync()
    return identity


# =============================================================================
# AUTH TOOLS
# =============================================================================

@mcp.tool()
@guarded
async def auth_login(email: str, password: str, remember_me: bool = False) -> dict:
    """
    Sign in and start a session.

    Args:
        email: Account email
        password: Account password
        remember_me: Remember the email for the next sign-in

    Returns:
        Session details
    """
    context = await ensure_initialized()
    session = await context.auth.login(email, password, remember_me=remember_me)
    return {
        "session": session.to_dict(),
        "message": f"Welcome back, {session.name}!",
    }


@mcp.tool()
@guarded
async def auth_register(
    name: str,
    email: str,
    password: str,
    confirm_password: str,
) -> dict:
    """
    Create an account.

    Args:
        name: Full name (letters, spaces, hyphens, apostrophes)
        email: Account email, must not be registered yet
        password: At least 8 characters
        confirm_password: Must match password

    Returns:
        The new user and whether a session was started
    """
    context = await ensure_initialized()
    identity = await context.auth.register(name, email, password, confirm_password)
    session = await context.auth.current_session()
    return {
        "user": {
            "id": identity.user_id,
            "name": identity.name,
            "email": identity.email,
            "role": identity.role,
            "department": identity.department,
        },
        "signed_in": session is not None and session.user_id == identity.user_id,
    }


@mcp.tool()
@guarded
async def auth_logout() -> dict:
    """Sign out and forget the remembered email."""
    context = await ensure_initialized()
    await context.auth.logout()
    return {"status": "signed out"}


@mcp.tool()
@guarded
async def auth_session() -> dict:
    """
    Report the active session, if any.

    Returns:
        authenticated flag, session details and the remembered email
    """
    context = await ensure_initialized()
    session = await context.auth.current_session()
    return {
        "authenticated": session is not None,
        "session": session.to_dict() if session else None,
        "remembered_email": await context.auth.remembered_email(),
    }


# =============================================================================
# TASK TOOLS
# =============================================================================

@mcp.tool()
@guarded
async def task_list(
    search: Optional[str] = None,
    category: str = "all",
    priority: str = "all",
    status: str = "all",
    sort: str = "relevance",
    direction: str = "asc",
    page: int = 1,
    page_size: Optional[int] = None,
) -> dict:
    """
    List the signed-in user's tasks with search, filters, sorting and paging.

    Args:
        search: Text matched against title, description, category, assignee,
                tags, id, status and priority
        category: Category or "all"
        priority: Low, Medium, High or "all"
        status: Pending, In Progress, Completed or "all"
        sort: relevance or a task field (title, due_date, priority, ...)
        direction: asc or desc
        page: Page number (clamped into range)
        page_size: Tasks per page (default from config)

    Returns:
        One page of tasks plus paging info
    """
    context = await ensure_initialized()
    identity = await _task_user(context)

    tasks = await context.tasks.list_by_owner(identity.user_id)
    filters = query.TaskFilters(search=search or "", category=category, priority=priority, status=status)
    results = query.apply(tasks, filters, query.SortSpec(sort, direction))
    result_page = query.paginate(results, page_size or context.config.tasks.page_size, page)

    return {
        "tasks": [t.to_dict() for t in result_page.items],
        "count": len(result_page.items),
        "total": result_page.total,
        "page": result_page.page,
        "total_pages": result_page.total_pages,
        "has_next": result_page.has_next,
        "has_previous": result_page.has_previous,
    }


@mcp.tool()
@guarded
async def task_show(task_id: str) -> dict:
    """
    Get detailed information about a task.

    Args:
        task_id: Task ID

    Returns:
        Full task details
    """
    context = await ensure_initialized()
    identity = await _task_user(context)
    task = await context.tasks.get(task_id, owner=identity)
    return task.to_dict()


@mcp.tool()
@guarded
async def task_create(
    title: Optional[str] = None,
    category: Optional[str] = None,
    description: Optional[str] = None,
    priority: Optional[str] = None,
    status: Optional[str] = None,
    due_date: Optional[str] = None,
    estimated_hours: Optional[float] = None,
    actual_hours: Optional[float] = None,
    assignee: Optional[str] = None,
    tags: Optional[List[str]] = None,
    difficulty: Optional[str] = None,
    template: Optional[str] = None,
) -> dict:
    """
    Create a new task.

    Args:
        title: Task title (3-100 characters)
        category: Subject category
        description: Up to 1000 characters
        priority: Low, Medium (default) or High
        status: Pending (default), In Progress or Completed
        due_date: YYYY-MM-DD; past dates are allowed
        estimated_hours: Planned effort, more than 0 and at most 100
        actual_hours: Effort spent so far
        assignee: Defaults to the signed-in user's name
        tags: Labels
        difficulty: Easy, Medium (default) or Hard
        template: essay, lab, presentation or project to pre-fill the form

    Returns:
        Created task details
    """
    context = await ensure_initialized()
    identity = await _task_user(context)

    values = dict(
        title=title,
        category=category,
        description=description,
        priority=priority,
        status=status,
        due_date=due_date,
        estimated_hours=estimated_hours,
        actual_hours=actual_hours,
        assignee=assignee,
        tags=tags,
        difficulty=difficulty,
    )
    draft = TaskDraft.from_template(template, **values) if template else _draft(**values)

    task = await context.tasks.create(draft, owner=identity)
    await context.drafts.clear()
    return task.to_dict()


@mcp.tool()
@guarded
async def task_update(
    task_id: str,
    title: Optional[str] = None,
    category: Optional[str] = None,
    description: Optional[str] = None,
    priority: Optional[str] = None,
    status: Optional[str] = None,
    due_date: Optional[str] = None,
    estimated_hours: Optional[float] = None,
    actual_hours: Optional[float] = None,
    assignee: Optional[str] = None,
    tags: Optional[List[str]] = None,
    difficulty: Optional[str] = None,
) -> dict:
    """
    Update a task. Only the given fields change.

    Args:
        task_id: Task ID
        due_date: YYYY-MM-DD, or an empty string to clear it

    Returns:
        Updated task details
    """
    context = await ensure_initialized()
    identity = await _task_user(context)

    patch = _draft(
        title=title,
        category=category,
        description=description,
        priority=priority,
        status=status,
        due_date=due_date,
        estimated_hours=estimated_hours,
        actual_hours=actual_hours,
        assignee=assignee,
        tags=tags,
        difficulty=difficulty,
    )
    task = await context.tasks.update(task_id, patch, owner=identity)
    await context.drafts.clear(task_id)
    return task.to_dict()


@mcp.tool()
@guarded
async def task_delete(task_id: str) -> dict:
    """
    Delete a task permanently.

    Args:
        task_id: Task ID
    """
    context = await ensure_initialized()
    identity = await _task_user(context)
    await context.tasks.delete(task_id, owner=identity)
    await context.drafts.clear(task_id)
    return {"deleted": task_id}


@mcp.tool()
@guarded
async def task_toggle_status(task_id: str) -> dict:
    """
    Mark a task Completed, or reopen a completed one as Pending.

    Args:
        task_id: Task ID
    """
    context = await ensure_initialized()
    identity = await _task_user(context)
    task = await context.tasks.toggle_status(task_id, owner=identity)
    return task.to_dict()


@mcp.tool()
@guarded
async def task_duplicate(task_id: str) -> dict:
    """
    Copy a task as a new Pending task owned by the signed-in user.

    Args:
        task_id: Task ID to copy
    """
    context = await ensure_initialized()
    identity = await _task_user(context)
    task = await context.tasks.duplicate(task_id, owner=identity)
    return task.to_dict()


@mcp.tool()
@guarded
async def task_stats() -> dict:
    """
    Productivity statistics for the signed-in user's tasks.

    Returns:
        Counts, completion rate, time windows, hours and breakdowns
    """
    context = await ensure_initialized()
    identity = await _task_user(context)
    snapshot = await context.statistics_for(identity)
    return snapshot.to_dict()


# =============================================================================
# DASHBOARD AND PROFILE TOOLS
# =============================================================================

@mcp.tool()
@guarded
async def dashboard_overview(filter: str = "all", limit: Optional[int] = None) -> dict:
    """
    Greeting, statistics and the most relevant tasks.

    Args:
        filter: all, pending, in-progress or completed
        limit: Number of tasks to show (default from config)
    """
    context = await ensure_initialized()
    identity = await _task_user(context)
    overview = await context.dashboard.overview(identity, quick_filter=filter, limit=limit)
    return {
        "greeting": overview.greeting,
        "welcome": overview.welcome_message,
        "completed_today": overview.completed_today,
        "statistics": overview.statistics.to_dict(),
        "tasks": [t.to_dict() for t in overview.tasks],
        "filter": overview.filter,
        "matching": overview.matching,
    }


@mcp.tool()
@guarded
async def profile_show() -> dict:
    """The signed-in user's full profile."""
    context = await ensure_initialized()
    session = await context.require_session()
    profile = await context.profiles.load(session)
    return profile.to_dict()


@mcp.tool()
@guarded
async def profile_update(
    name: Optional[str] = None,
    department: Optional[str] = None,
    academic_level: Optional[str] = None,
    phone_number: Optional[str] = None,
    website: Optional[str] = None,
    bio: Optional[str] = None,
    timezone: Optional[str] = None,
    language: Optional[str] = None,
    theme: Optional[str] = None,
    daily_goal: Optional[float] = None,
) -> dict:
    """
    Edit profile attributes. Email, role and id cannot be changed.

    Returns:
        Updated profile
    """
    context = await ensure_initialized()
    session = await context.require_session()
    changes = {
        key: value
        for key, value in dict(
            name=name,
            department=department,
            academic_level=academic_level,
            phone_number=phone_number,
            website=website,
            bio=bio,
            timezone=timezone,
            language=language,
            theme=theme,
            daily_goal=daily_goal,
        ).items()
        if value is not None
    }
    profile = await context.profiles.update(session, changes)
    return profile.to_dict()


# =============================================================================
# DRAFT TOOLS
# =============================================================================

@mcp.tool()
@guarded
async def draft_save(
    task_id: Optional[str] = None,
    title: Optional[str] = None,
    category: Optional[str] = None,
    description: Optional[str] = None,
    priority: Optional[str] = None,
    status: Optional[str] = None,
    due_date: Optional[str] = None,
    estimated_hours: Optional[float] = None,
    assignee: Optional[str] = None,
    tags: Optional[List[str]] = None,
    difficulty: Optional[str] = None,
) -> dict:
    """
    Save unfinished form values.

    Args:
        task_id: Task being edited, or omit for the new-task form
    """
    context = await ensure_initialized()
    await context.require_identity()
    draft = _draft(
        title=title,
        category=category,
        description=description,
        priority=priority,
        status=status,
        due_date=due_date,
        estimated_hours=estimated_hours,
        assignee=assignee,
        tags=tags,
        difficulty=difficulty,
    )
    saved = await context.drafts.save(draft, task_id)
    return saved.to_dict()


@mcp.tool()
@guarded
async def draft_load(task_id: Optional[str] = None) -> dict:
    """
    Load saved form values.

    Args:
        task_id: Task being edited, or omit for the new-task form
    """
    context = await ensure_initialized()
    await context.require_identity()
    saved = await context.drafts.load(task_id)
    return {"draft": saved.to_dict() if saved else None}


@mcp.tool()
@guarded
async def draft_clear(task_id: Optional[str] = None) -> dict:
    """Discard saved form values."""
    context = await ensure_initialized()
    await context.require_identity()
    return {"cleared": await context.drafts.clear(task_id)}


# =============================================================================
# UTILITY TOOLS
# =============================================================================

@mcp.tool()
@guarded
async def crudzaso_health() -> dict:
    """
    Check store connectivity.

    Returns:
        Health status including the storage backend
    """
    context = await ensure_initialized()

    try:
        connected = await context.store.ping()
    except Exception as e:
        connected = False
        logger.error(f"Health check failed: {e}")

    return {
        "status": "healthy" if connected else "unhealthy",
        "storage_type": context.store.backend,
        "tasks_revision": context.tasks.revision,
        "config": context.config.to_dict(),
    }


# =============================================================================
# MAIN
# =============================================================================

def main():
    """Main entry point for crudzaso-mcp command."""
    import argparse

    parser = argparse.ArgumentParser(description="Crudzaso MCP Server")
    parser.add_argument("command", nargs="?", default="serve", help="Command to run (serve, seed)")
    parser.add_argument("--log-level", default=None, help="Override logging.level from config")
    args = parser.parse_args()

    from crudzaso.config import get_config

    config = get_config()
    logging.basicConfig(
        stream=sys.stderr,
        level=(args.log_level or config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "seed":
        async def do_seed():
            from crudzaso.app import create_context

            # Seed explicitly so the counts reflect what this command wrote
            config.tasks.seed_demo_data = False
            context = await create_context(config)
            set_context(context)
            counts = await context.seed()
            await shutdown()
            print(f"Seeded {counts['users']} users and {counts['tasks']} tasks")

        asyncio.run(do_seed())
    elif args.command == "serve":
        # Start MCP server
        mcp.run()
    else:
        parser.error(f"Unknown command: {args.command}")


if __name__ == "__main__":
    main()
