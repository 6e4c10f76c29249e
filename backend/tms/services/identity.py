"""
Identity Service Module

Registration, login, admin promotion, profile retrieval and account
deletion. Functions take the request's ``AsyncSession`` and, where the
operation is protected, the verified ``Caller``.
"""

import logging
from typing import List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tms.core.errors import Conflict, InternalError, NotFound, Unauthorized
from tms.core.policy import Action, authorize
from tms.core.security import get_password_hash, verify_password
from tms.core.session import Caller
from tms.models.task import UserTask
from tms.models.user import Role, User

logger = logging.getLogger(__name__)


async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def _admin_exists(db: AsyncSession) -> bool:
    result = await db.execute(select(User.id).where(User.role == Role.admin).limit(1))
    return result.scalar_one_or_none() is not None


async def _create_user(db: AsyncSession, username: str, password: str, role: Role) -> User:
    # Fast path; the unique constraint on users.username is the real guard
    if await get_user_by_username(db, username):
        raise Conflict("User already exists")

    user = User(username=username, password=get_password_hash(password), role=role)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("User already exists")
    await db.refresh(user)
    logger.info("Registered %s '%s' (id=%s)", role.value, username, user.id)
    return user


async def register(db: AsyncSession, username: str, password: str) -> User:
    return await _create_user(db, username, password, Role.user)


async def register_admin(
    db: AsyncSession,
    username: str,
    password: str,
    admin_username: str,
    admin_password: str,
) -> User:
    """
    Create an admin on behalf of an existing admin.

    The existing admin is identified by credentials, not by session: the
    username must belong to an Admin record and the password must verify
    against its hash.

    Raises:
        Unauthorized: admin credentials do not resolve to a verified Admin
        Conflict: ``username`` is taken
    """
    result = await db.execute(
        select(User).where(User.username == admin_username, User.role == Role.admin)
    )
    admin = result.scalar_one_or_none()
    if admin is None or not verify_password(admin_password, admin.password):
        logger.warning("Rejected admin registration vouched for by '%s'", admin_username)
        raise Unauthorized("Invalid admin credentials")

    authorize(Caller(admin.id, admin.username, admin.role), Action.register_admin)
    return await _create_user(db, username, password, Role.admin)


async def register_initial_admin(db: AsyncSession, username: str, password: str) -> User:
    """Bootstrap the first admin. Refused once any admin exists."""
    if await _admin_exists(db):
        raise Conflict("An admin already exists")
    return await _create_user(db, username, password, Role.admin)


async def authenticate(db: AsyncSession, username: str, password: str) -> User:
    user = await get_user_by_username(db, username)
    if user is None or not verify_password(password, user.password):
        logger.warning("Failed login for '%s'", username)
        raise Unauthorized("Invalid username or password")
    logger.info("User '%s' logged in", username)
    return user


async def get_profile(db: AsyncSession, username: str) -> User:
    """Load a user with assigned and created tasks."""
    result = await db.execute(
        select(User)
        .where(User.username == username)
        .options(selectinload(User.assigned_tasks), selectinload(User.created_tasks))
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFound("User not found")
    return user


async def resolve_caller(db: AsyncSession, caller: Caller) -> User:
    """Return the caller's current record; Unauthorized if it no longer exists."""
    user = await db.get(User, caller.user_id)
    if user is None or user.username != caller.username:
        raise Unauthorized("User not found")
    return user


async def delete_user(db: AsyncSession, caller: Caller, user_id: int) -> None:
    """
    Delete a non-admin user together with the tasks that reference it.

    Raises:
        Unauthorized: caller is not an admin, or the target is an admin
        NotFound: no user with ``user_id``
    """
    admin = await resolve_caller(db, caller)
    current = Caller(admin.id, admin.username, admin.role)
    authorize(current, Action.delete_user)

    target = await db.get(User, user_id)
    if target is None:
        raise NotFound("User not found")
    authorize(current, Action.delete_user, target)

    # Both foreign keys restrict deletes, so dependent tasks go first
    await db.execute(
        delete(UserTask).where(
            or_(UserTask.assigned_to_id == target.id, UserTask.created_by_id == target.id)
        )
    )
    await db.execute(delete(User).where(User.id == target.id))
    await db.commit()
    logger.info("Admin '%s' deleted user '%s' (id=%s)", admin.username, target.username, target.id)


async def delete_own_account(db: AsyncSession, caller: Caller, username: str) -> None:
    """
    Delete the caller's own account with every task it created or was assigned,
    in a single commit.

    Raises:
        Unauthorized: ``username`` is not the caller's
        NotFound: no such user
        InternalError: the commit failed; nothing was deleted
    """
    authorize(caller, Action.delete_own_account, username)

    user = await get_user_by_username(db, username)
    if user is None:
        raise NotFound("User not found")

    try:
        await db.execute(
            delete(UserTask).where(
                or_(UserTask.assigned_to_id == user.id, UserTask.created_by_id == user.id)
            )
        )
        await db.execute(delete(User).where(User.id == user.id))
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to delete account '%s'", username)
        raise InternalError("Failed to delete account")
    logger.info("User '%s' deleted their account", username)


async def list_non_admin_users(db: AsyncSession, caller: Caller) -> List[User]:
    authorize(caller, Action.list_users)
    result = await db.execute(select(User).where(User.role != Role.admin).order_by(User.id))
    return list(result.scalars().all())
