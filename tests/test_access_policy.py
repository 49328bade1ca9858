import pytest

from complaint_portal.db.models import UserRole
from complaint_portal.services.access_policy import (
    ROLE_PERMISSIONS,
    Action,
    CallerContext,
    authorize,
    ensure_admin_owns_category,
    ensure_same_organization,
    ensure_student_owns,
    is_allowed,
)
from complaint_portal.utils.errors import AuthorizationError


def _caller(role: UserRole, **kwargs) -> CallerContext:
    return CallerContext(
        user_id="user-1",
        email="someone@demo.edu",
        role=role,
        organization_id=kwargs.pop("organization_id", "org-1"),
        **kwargs,
    )


class _Category:
    def __init__(self, admin_id=None, organization_id="org-1"):
        self.admin_id = admin_id
        self.organization_id = organization_id


class TestPermissionTable:
    """The role table must cover every role and every action."""

    def test_every_role_has_an_entry(self):
        assert set(ROLE_PERMISSIONS) == set(UserRole)

    def test_every_action_is_granted_to_someone(self):
        granted = set().union(*ROLE_PERMISSIONS.values())
        assert granted == set(Action)

    def test_teacher_is_denied_everything(self):
        for action in Action:
            assert is_allowed(UserRole.TEACHER, action) is False

    def test_super_admin_includes_admin_permissions(self):
        assert ROLE_PERMISSIONS[UserRole.ADMIN] < ROLE_PERMISSIONS[UserRole.SUPER_ADMIN]

    @pytest.mark.parametrize(
        "role, action, expected",
        [
            (UserRole.STUDENT, Action.SUBMIT_COMPLAINT, True),
            (UserRole.ADMIN, Action.SUBMIT_COMPLAINT, False),
            (UserRole.STUDENT, Action.UPDATE_COMPLAINT_STATUS, False),
            (UserRole.ADMIN, Action.UPDATE_COMPLAINT_STATUS, True),
            (UserRole.ADMIN, Action.MANAGE_CATEGORIES, False),
            (UserRole.SUPER_ADMIN, Action.MANAGE_CATEGORIES, True),
            (UserRole.ADMIN, Action.BROADCAST, False),
            (UserRole.STUDENT, Action.STUDENT_CHAT, True),
            (UserRole.STUDENT, Action.ADMIN_CHAT, False),
        ],
    )
    def test_is_allowed(self, role, action, expected):
        assert is_allowed(role, action) is expected

    def test_unknown_role_is_rejected(self):
        with pytest.raises(AuthorizationError) as exc_info:
            is_allowed("JANITOR", Action.VIEW_COMPLAINTS)
        assert exc_info.value.error_code == "UNKNOWN_ROLE"


class TestCallerContext:
    def test_is_read_only(self):
        caller = _caller(UserRole.STUDENT, student_id="s-1")
        with pytest.raises(AttributeError):
            caller.role = UserRole.SUPER_ADMIN
        assert caller.role == UserRole.STUDENT

    def test_role_properties(self):
        assert _caller(UserRole.STUDENT).is_student
        assert _caller(UserRole.ADMIN).is_admin
        assert _caller(UserRole.SUPER_ADMIN).is_super_admin
        assert not _caller(UserRole.SUPER_ADMIN).is_admin


class TestGuards:
    def test_authorize_returns_caller(self):
        caller = _caller(UserRole.ADMIN, admin_id="a-1")
        assert authorize(caller, Action.VIEW_ANALYTICS) is caller

    def test_authorize_rejects(self):
        with pytest.raises(AuthorizationError) as exc_info:
            authorize(_caller(UserRole.STUDENT), Action.VIEW_ANALYTICS)
        assert exc_info.value.error_code == "INSUFFICIENT_PERMISSIONS"
        assert exc_info.value.status_code == 403

    def test_same_organization(self):
        caller = _caller(UserRole.SUPER_ADMIN)
        ensure_same_organization(caller, "org-1")
        with pytest.raises(AuthorizationError):
            ensure_same_organization(caller, "org-2")

    def test_caller_without_organization_matches_nothing(self):
        caller = _caller(UserRole.SUPER_ADMIN, organization_id=None)
        with pytest.raises(AuthorizationError):
            ensure_same_organization(caller, None)

    def test_student_owns(self):
        caller = _caller(UserRole.STUDENT, student_id="s-1")
        ensure_student_owns(caller, "s-1")
        with pytest.raises(AuthorizationError) as exc_info:
            ensure_student_owns(caller, "s-2")
        assert exc_info.value.error_code == "NOT_RESOURCE_OWNER"

    def test_admin_owns_category(self):
        caller = _caller(UserRole.ADMIN, admin_id="a-1")
        ensure_admin_owns_category(caller, _Category(admin_id="a-1"))
        with pytest.raises(AuthorizationError) as exc_info:
            ensure_admin_owns_category(caller, _Category(admin_id="a-2"))
        assert exc_info.value.error_code == "NOT_CATEGORY_ADMIN"

    def test_admin_cannot_act_on_detached_complaint(self):
        caller = _caller(UserRole.ADMIN, admin_id="a-1")
        with pytest.raises(AuthorizationError):
            ensure_admin_owns_category(caller, None)

    def test_super_admin_is_checked_by_organization(self):
        caller = _caller(UserRole.SUPER_ADMIN, admin_id="root")
        ensure_admin_owns_category(caller, _Category(admin_id="a-2"))
        with pytest.raises(AuthorizationError):
            ensure_admin_owns_category(
                caller, _Category(admin_id="a-2", organization_id="org-2")
            )
