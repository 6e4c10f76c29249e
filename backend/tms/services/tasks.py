"""
Task Management Module

Task assignment, status transitions, deletion and the role-scoped queries.
Admins see every task; users see the tasks assigned to them.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tms.core.errors import BadRequest, NotFound
from tms.core.policy import Action, authorize, is_allowed
from tms.core.session import Caller
from tms.models.task import TaskStatus, UserTask
from tms.models.user import Role, User
from tms.services.identity import get_user_by_username, resolve_caller

logger = logging.getLogger(__name__)

ALL_STATUSES = "All"


async def _fresh_caller(db: AsyncSession, caller: Caller) -> Caller:
    # Role is re-read from the store so a stale session cannot widen scope
    user = await resolve_caller(db, caller)
    return Caller(user.id, user.username, user.role)


async def _get_task(db: AsyncSession, task_id: int) -> Optional[UserTask]:
    result = await db.execute(
        select(UserTask)
        .where(UserTask.id == task_id)
        .options(selectinload(UserTask.created_by), selectinload(UserTask.assigned_to))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _scoped(stmt, caller: Caller):
    if caller.is_admin:
        return stmt
    return stmt.where(UserTask.assigned_to_id == caller.user_id)


async def assign_task(
    db: AsyncSession,
    caller: Caller,
    title: str,
    description: str,
    due_date: datetime,
    priority: str,
    assigned_to: str,
    created_by: Optional[str] = None,
) -> UserTask:
    """
    Create a Pending task for ``assigned_to``, created by ``created_by``.

    ``created_by`` defaults to the caller. Both names are resolved against
    the store; the creator must be an Admin.

    Raises:
        Unauthorized: caller is not an admin
        BadRequest: "User not found" / "Admin not found"
    """
    caller = await _fresh_caller(db, caller)
    authorize(caller, Action.assign_task)

    assignee = await get_user_by_username(db, assigned_to)
    if assignee is None:
        raise BadRequest("User not found")

    creator_name = created_by or caller.username
    result = await db.execute(
        select(User).where(User.username == creator_name, User.role == Role.admin)
    )
    creator = result.scalar_one_or_none()
    if creator is None:
        raise BadRequest("Admin not found")

    task = UserTask(
        title=title,
        description=description,
        due_date=due_date,
        priority=priority,
        status=TaskStatus.pending,
        created_by_id=creator.id,
        assigned_to_id=assignee.id,
    )
    db.add(task)
    await db.commit()
    logger.info("Task %s '%s' assigned to '%s' by '%s'", task.id, title, assigned_to, creator_name)
    return await _get_task(db, task.id)


async def reassign_task(db: AsyncSession, caller: Caller, task_id: int, assigned_to: str) -> UserTask:
    caller = await _fresh_caller(db, caller)
    authorize(caller, Action.reassign_task)

    task = await _get_task(db, task_id)
    if task is None:
        raise NotFound("Task not found")
    assignee = await get_user_by_username(db, assigned_to)
    if assignee is None:
        raise BadRequest("User not found")

    task.assigned_to_id = assignee.id
    await db.commit()
    logger.info("Task %s reassigned to '%s' by '%s'", task_id, assigned_to, caller.username)
    return await _get_task(db, task_id)


async def update_task_status(
    db: AsyncSession, caller: Caller, task_id: int, status: TaskStatus
) -> UserTask:
    """Overwrite the status. Only the assignee or an admin may do this."""
    current = await _fresh_caller(db, caller)
    task = await _get_task(db, task_id)
    if task is None:
        raise NotFound("Task not found")
    authorize(current, Action.update_task_status, task)

    try:
        new_status = TaskStatus(status)
    except ValueError:
        raise BadRequest(f"Unknown status '{status}'")
    task.status = new_status
    await db.commit()
    logger.info("Task %s status set to %s by '%s'", task_id, new_status.value, current.username)
    return await _get_task(db, task_id)


async def delete_task(db: AsyncSession, caller: Caller, task_id: int) -> None:
    current = await _fresh_caller(db, caller)
    authorize(current, Action.delete_task)

    task = await db.get(UserTask, task_id)
    if task is None:
        raise NotFound("Task not found")
    await db.delete(task)
    await db.commit()
    logger.info("Task %s deleted by '%s'", task_id, current.username)


async def get_task_counts(db: AsyncSession, caller: Caller) -> List[Dict[str, Any]]:
    current = await _fresh_caller(db, caller)
    stmt = _scoped(
        select(UserTask.status, func.count(UserTask.id)).group_by(UserTask.status),
        current,
    )
    result = await db.execute(stmt)
    return [{"status": status, "count": count} for status, count in result.all()]


async def get_user_tasks(db: AsyncSession, caller: Caller) -> List[UserTask]:
    current = await _fresh_caller(db, caller)
    stmt = _scoped(
        select(UserTask)
        .options(selectinload(UserTask.created_by), selectinload(UserTask.assigned_to))
        .order_by(UserTask.id),
        current,
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_task_detail(db: AsyncSession, caller: Caller, task_id: int) -> UserTask:
    """A user asking for a task not assigned to them gets NotFound, not Unauthorized."""
    current = await _fresh_caller(db, caller)
    task = await _get_task(db, task_id)
    if task is None or not is_allowed(current, Action.view_task, task):
        raise NotFound("Task not found")
    return task


async def search_tasks(
    db: AsyncSession,
    caller: Caller,
    search_term: Optional[str] = None,
    status: Optional[str] = None,
) -> List[UserTask]:
    current = await _fresh_caller(db, caller)
    stmt = _scoped(
        select(UserTask)
        .options(selectinload(UserTask.created_by), selectinload(UserTask.assigned_to))
        .order_by(UserTask.id),
        current,
    )
    if status and status != ALL_STATUSES:
        if status not in {s.value for s in TaskStatus}:
            # Nothing can carry a status outside the enum
            return []
        stmt = stmt.where(UserTask.status == TaskStatus(status))

    result = await db.execute(stmt)
    tasks = list(result.scalars().all())
    if search_term:
        # LIKE is case-insensitive on SQLite, so the title match is done here
        tasks = [t for t in tasks if search_term in t.title]
    return tasks
