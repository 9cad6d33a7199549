from typing import List, Dict
from .models import UserRole, User


class Permissions:
    # Tasks
    TASKS_VIEW_ALL = "tasks.view_all"
    TASKS_MANAGE_ANY = "tasks.manage_any"

    # Identity
    IDENTITY_MANAGE_USER = "identity.manage_user"


# Static Role -> Permission Mapping
ROLE_PERMISSIONS: Dict[str, List[str]] = {
    UserRole.ADMIN: [
        Permissions.TASKS_VIEW_ALL,
        Permissions.TASKS_MANAGE_ANY,
        Permissions.IDENTITY_MANAGE_USER,
    ],
    # Regular users only act on tasks assigned to them (see can_act)
    UserRole.USER: [],
}


def get_user_permissions(user: User) -> List[str]:
    """
    Returns a list of permission strings for the given user based on their role.
    """
    if not user or not user.is_active:
        return []
    return ROLE_PERMISSIONS.get(user.role, [])


def has_permission(user: User, permission: str) -> bool:
    return permission in get_user_permissions(user)


def can_act(user: User, task) -> bool:
    """
    A user may read, update or delete a task (and its attachments) when
    they are its assignee or their role grants TASKS_MANAGE_ANY.
    """
    if has_permission(user, Permissions.TASKS_MANAGE_ANY):
        return True
    return task.assigned_to_id == user.id


def can_manage_user(actor: User, target_id) -> bool:
    """Users manage their own profile; admins manage everyone's."""
    return actor.id == target_id or has_permission(actor, Permissions.IDENTITY_MANAGE_USER)
