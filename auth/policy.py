"""
Authorization policy.

Every role/department/ownership decision goes through ``authorize``. Routes and
services never compare roles and departments themselves.

    authorize(actor, "medical")      # department-scoped listing
    authorize(actor, alert)          # view/update an alert
    authorize(actor, chat_session)   # read/post in a chat session
"""
from typing import Union

from database.models import Alert, ChatSession, Department, User, UserRole
from core.exceptions import ForbiddenError

Resource = Union[str, Department, Alert, ChatSession]


def is_admin(actor: User) -> bool:
    return actor.role == UserRole.ADMIN


def is_department_member(actor: User, department: Union[str, Department]) -> bool:
    """Staff member assigned to the given department."""
    if actor.role != UserRole.STAFF:
        return False
    actor_department = actor.department.value if isinstance(actor.department, Department) else actor.department
    target = department.value if isinstance(department, Department) else department
    return actor_department == target and target != Department.NONE.value


def can_manage_department(actor: User, department: Union[str, Department]) -> bool:
    return is_admin(actor) or is_department_member(actor, department)


def authorize(actor: User, resource: Resource) -> bool:
    """
    Decide whether ``actor`` may act on ``resource``.

    - department: admin, or staff of that department
    - alert: admin, staff of the alert's department, or the student who raised it
    - chat session: admin, staff of the session's department, or its owner
    """
    if actor is None or not actor.is_active:
        return False
    if isinstance(resource, Alert):
        return resource.user_id == actor.id or can_manage_department(actor, resource.department)
    if isinstance(resource, ChatSession):
        return resource.user_id == actor.id or can_manage_department(actor, resource.department)
    if isinstance(resource, (str, Department)):
        return can_manage_department(actor, resource)
    raise TypeError(f"No authorization rule for {type(resource).__name__}")


def ensure_authorized(actor: User, resource: Resource, message: str = "Forbidden") -> None:
    """Raise ForbiddenError unless ``authorize`` allows the action."""
    if not authorize(actor, resource):
        raise ForbiddenError(message)
