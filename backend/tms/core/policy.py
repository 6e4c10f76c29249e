"""
Authorization policy.

Every protected operation calls ``authorize(caller, action, resource)``
before touching the store. The resource is whatever the rule needs to
inspect: a target ``User`` for DELETE_USER, a username string for
DELETE_OWN_ACCOUNT, a ``UserTask`` for the per-task actions.
"""

import enum
from typing import Any, Optional

from tms.core.errors import Unauthorized
from tms.core.session import Caller
from tms.models.task import UserTask
from tms.models.user import Role, User


class Action(str, enum.Enum):
    register_admin = "register_admin"
    delete_user = "delete_user"
    delete_own_account = "delete_own_account"
    list_users = "list_users"
    view_profile = "view_profile"
    assign_task = "assign_task"
    reassign_task = "reassign_task"
    delete_task = "delete_task"
    update_task_status = "update_task_status"
    view_task = "view_task"


ADMIN_ONLY = {
    Action.register_admin,
    Action.assign_task,
    Action.reassign_task,
    Action.delete_task,
}


def _admin_may(caller: Caller, action: Action, resource: Any) -> bool:
    if action is Action.delete_own_account:
        return resource == caller.username
    if action is Action.delete_user:
        # Admins cannot delete admins
        return not (isinstance(resource, User) and resource.role is Role.admin)
    return True


def _user_may(caller: Caller, action: Action, resource: Any) -> bool:
    if action in ADMIN_ONLY or action is Action.delete_user:
        return False
    if action in (Action.list_users, Action.view_profile):
        return True
    if action is Action.delete_own_account:
        return resource == caller.username
    if action in (Action.update_task_status, Action.view_task):
        return isinstance(resource, UserTask) and resource.assigned_to_id == caller.user_id
    return False


def is_allowed(caller: Optional[Caller], action: Action, resource: Any = None) -> bool:
    if caller is None:
        return False
    if caller.is_admin:
        return _admin_may(caller, action, resource)
    if caller.role is Role.user:
        return _user_may(caller, action, resource)
    return False


def authorize(caller: Optional[Caller], action: Action, resource: Any = None) -> None:
    if not is_allowed(caller, action, resource):
        raise Unauthorized("Not authorized to perform this action")
