from enum import Enum
from typing import Optional

from ..models.enums import RoleType
from ..models.user import User, Project
from .errors import UnauthorizedError


class Action(str, Enum):
    CREATE_PROJECT = "create_project"
    MANAGE_SPRINTS = "manage_sprints"
    MANAGE_INVITATIONS = "manage_invitations"
    MANAGE_MEMBERS = "manage_members"
    MANAGE_TASKS = "manage_tasks"
    VIEW_PROJECT = "view_project"
    RESPOND_INVITATION = "respond_invitation"
    USE_AI = "use_ai"


# Actions reserved to the founder role (and to the founder of the project, when one is given)
FOUNDER_ACTIONS = frozenset({
    Action.CREATE_PROJECT,
    Action.MANAGE_SPRINTS,
    Action.MANAGE_INVITATIONS,
    Action.MANAGE_MEMBERS,
})

# Actions open to the project's founder and its members
MEMBER_ACTIONS = frozenset({
    Action.MANAGE_TASKS,
    Action.VIEW_PROJECT,
})


def is_allowed(
    principal: User,
    action: Action,
    project: Optional[Project] = None,
    is_member: bool = False
) -> bool:
    """Capability check for ``principal`` performing ``action`` on ``project``."""

    is_founder_role = principal.role_type == RoleType.FOUNDER.value
    owns_project = project is not None and project.founder_id == principal.id

    if action in FOUNDER_ACTIONS:
        return is_founder_role and (project is None or owns_project)

    if action in MEMBER_ACTIONS:
        if project is None:
            return True
        return owns_project or is_member

    return True


def authorize(
    principal: User,
    action: Action,
    project: Optional[Project] = None,
    is_member: bool = False
) -> None:
    """Raise UnauthorizedError unless the capability check passes."""

    if not is_allowed(principal, action, project, is_member):
        raise UnauthorizedError(f"Not allowed to {action.value.replace('_', ' ')}")
