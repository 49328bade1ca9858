import enum
from typing import Dict, FrozenSet, Optional

from complaint_portal.db.models import UserRole
from complaint_portal.utils.errors import AuthorizationError


class CallerContext:
    """Who is calling, resolved from the verified session. Read-only once built."""

    __slots__ = (
        "user_id",
        "email",
        "role",
        "organization_id",
        "department_id",
        "student_id",
        "admin_id",
    )

    def __init__(
        self,
        user_id: str,
        email: str,
        role: UserRole,
        organization_id: Optional[str] = None,
        department_id: Optional[str] = None,
        student_id: Optional[str] = None,
        admin_id: Optional[str] = None,
    ):
        object.__setattr__(self, "user_id", user_id)
        object.__setattr__(self, "email", email)
        object.__setattr__(self, "role", role)
        object.__setattr__(self, "organization_id", organization_id)
        object.__setattr__(self, "department_id", department_id)
        object.__setattr__(self, "student_id", student_id)
        object.__setattr__(self, "admin_id", admin_id)

    def __setattr__(self, name, value):
        raise AttributeError("CallerContext is read-only")

    def __repr__(self) -> str:
        return f"CallerContext(user_id={self.user_id!r}, role={self.role.value})"

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN


class Action(enum.Enum):
    SUBMIT_COMPLAINT = "submit_complaint"
    VIEW_COMPLAINTS = "view_complaints"
    VIEW_COMPLAINT_SUMMARY = "view_complaint_summary"
    LIST_ADMIN_COMPLAINTS = "list_admin_complaints"
    UPDATE_COMPLAINT_STATUS = "update_complaint_status"
    VIEW_REGISTRY = "view_registry"
    MANAGE_CATEGORIES = "manage_categories"
    MANAGE_DEPARTMENTS = "manage_departments"
    MANAGE_ORGANIZATION = "manage_organization"
    LIST_ADMINS = "list_admins"
    MANAGE_STUDENTS = "manage_students"
    VIEW_ANALYTICS = "view_analytics"
    ADMIN_CHAT = "admin_chat"
    STUDENT_CHAT = "student_chat"
    SEND_MESSAGE = "send_message"
    READ_MESSAGES = "read_messages"
    BROADCAST = "broadcast"
    VIEW_ACTIVITY = "view_activity"
    MANAGE_PROFILE = "manage_profile"
    VIEW_NOTIFICATIONS = "view_notifications"


_SHARED_ACTIONS = frozenset(
    {
        Action.VIEW_COMPLAINTS,
        Action.VIEW_COMPLAINT_SUMMARY,
        Action.VIEW_REGISTRY,
        Action.SEND_MESSAGE,
        Action.READ_MESSAGES,
        Action.MANAGE_PROFILE,
        Action.VIEW_NOTIFICATIONS,
    }
)

_STAFF_ACTIONS = _SHARED_ACTIONS | {
    Action.LIST_ADMIN_COMPLAINTS,
    Action.UPDATE_COMPLAINT_STATUS,
    Action.LIST_ADMINS,
    Action.MANAGE_STUDENTS,
    Action.VIEW_ANALYTICS,
    Action.ADMIN_CHAT,
}

# Every UserRole must appear here; auxiliary roles are granted nothing.
ROLE_PERMISSIONS: Dict[UserRole, FrozenSet[Action]] = {
    UserRole.STUDENT: _SHARED_ACTIONS
    | {Action.SUBMIT_COMPLAINT, Action.STUDENT_CHAT},
    UserRole.TEACHER: frozenset(),
    UserRole.ADMIN: frozenset(_STAFF_ACTIONS),
    UserRole.SUPER_ADMIN: _STAFF_ACTIONS
    | {
        Action.MANAGE_CATEGORIES,
        Action.MANAGE_DEPARTMENTS,
        Action.MANAGE_ORGANIZATION,
        Action.BROADCAST,
        Action.VIEW_ACTIVITY,
    },
}


def is_allowed(role: UserRole, action: Action) -> bool:
    try:
        granted = ROLE_PERMISSIONS[role]
    except KeyError:
        raise AuthorizationError(
            f"No access policy defined for role {role}", "UNKNOWN_ROLE"
        )
    return action in granted


def authorize(caller: CallerContext, action: Action) -> CallerContext:
    """Raise AuthorizationError unless the caller's role may perform ``action``."""
    if not is_allowed(caller.role, action):
        raise AuthorizationError(
            "Insufficient permissions", "INSUFFICIENT_PERMISSIONS"
        )
    return caller


def ensure_same_organization(
    caller: CallerContext, organization_id: Optional[str]
) -> None:
    if caller.organization_id is None or organization_id != caller.organization_id:
        raise AuthorizationError(
            "Resource belongs to another organization", "CROSS_ORGANIZATION_ACCESS"
        )


def ensure_student_owns(caller: CallerContext, student_id: Optional[str]) -> None:
    if not caller.is_student or caller.student_id is None:
        raise AuthorizationError("Student profile required", "STUDENT_REQUIRED")
    if student_id != caller.student_id:
        raise AuthorizationError(
            "You can only access your own records", "NOT_RESOURCE_OWNER"
        )


def ensure_admin_owns_category(caller: CallerContext, category) -> None:
    """Admins act only on categories assigned to them; super-admins on their org."""
    if caller.is_super_admin:
        ensure_same_organization(caller, category.organization_id if category else None)
        return
    if not caller.is_admin or category is None or category.admin_id != caller.admin_id:
        raise AuthorizationError(
            "You are not responsible for this category", "NOT_CATEGORY_ADMIN"
        )
