import pytest
from sqlalchemy import func, select

from complaint_portal.db.models import User, UserRole
from complaint_portal.schemas.auth_schemas import SyncUserRequest
from complaint_portal.services.identity_service import IdentityService, normalize_role
from complaint_portal.utils.auth import ProviderIdentity
from complaint_portal.utils.errors import (
    AuthorizationError,
    NotFoundError,
    ValidationFailedError,
)


class TestNormalizeRole:
    @pytest.mark.parametrize("raw", ["student", "STUDENT", " Student "])
    def test_case_insensitive(self, raw):
        assert normalize_role(raw) == UserRole.STUDENT

    def test_super_admin(self):
        assert normalize_role("super_admin") == UserRole.SUPER_ADMIN

    @pytest.mark.parametrize("raw", ["", "   ", None, "dean"])
    def test_invalid(self, raw):
        with pytest.raises(ValidationFailedError):
            normalize_role(raw)


class TestProviderIdentity:
    def test_from_token_claims(self):
        identity = ProviderIdentity.from_provider_user(
            {
                "sub": "abc",
                "email": "Jane@Demo.EDU",
                "user_metadata": {"full_name": "Jane Doe", "role": "admin"},
            }
        )
        assert identity.user_id == "abc"
        assert identity.email == "jane@demo.edu"
        assert identity.name == "Jane Doe"
        assert identity.role is None
        assert identity.requested_role == "admin"

    def test_role_comes_from_app_metadata(self):
        identity = ProviderIdentity.from_provider_user(
            {
                "sub": "abc",
                "email": "jane@demo.edu",
                "app_metadata": {"role": "super_admin"},
                "user_metadata": {"role": "student"},
            }
        )
        assert identity.role == "super_admin"


class TestSyncUser:
    @pytest.mark.asyncio
    async def test_first_sign_in_provisions_student(self, db_session, organization):
        identity = ProviderIdentity(user_id="new-user", email="new@demo.edu", name="New")

        user = await IdentityService(db_session).sync_user(
            identity, SyncUserRequest(organization_id=organization.id)
        )

        assert user.id == "new-user"
        assert user.role == "STUDENT"
        assert user.organization_id == organization.id
        assert user.student is not None
        assert user.student.full_name == "New"
        assert user.student.matric_no == ""
        assert user.admin is None
        assert user.last_login is not None

    @pytest.mark.asyncio
    async def test_lowercase_role_from_body(self, db_session):
        identity = ProviderIdentity(user_id="adm", email="adm@demo.edu")

        user = await IdentityService(db_session).sync_user(
            identity, SyncUserRequest(role="admin")
        )

        assert user.role == "ADMIN"
        assert user.admin is not None
        assert user.admin.username == "adm@demo.edu"

    @pytest.mark.asyncio
    async def test_super_admin_cannot_be_self_assigned(self, db_session):
        identity = ProviderIdentity(user_id="x", email="x@demo.edu")

        with pytest.raises(AuthorizationError) as exc_info:
            await IdentityService(db_session).sync_user(
                identity, SyncUserRequest(role="SUPER_ADMIN")
            )
        assert exc_info.value.error_code == "ROLE_NOT_ASSIGNABLE"
        assert db_session.get(User, "x") is None

    @pytest.mark.asyncio
    async def test_super_admin_in_user_metadata_is_rejected(self, db_session):
        identity = ProviderIdentity(
            user_id="sneaky", email="sneaky@demo.edu", requested_role="SUPER_ADMIN"
        )

        with pytest.raises(AuthorizationError) as exc_info:
            await IdentityService(db_session).sync_user(identity, SyncUserRequest())
        assert exc_info.value.error_code == "ROLE_NOT_ASSIGNABLE"
        assert db_session.get(User, "sneaky") is None

    @pytest.mark.asyncio
    async def test_user_metadata_role_used_when_body_is_silent(self, db_session):
        identity = ProviderIdentity(
            user_id="staff", email="staff@demo.edu", requested_role="admin"
        )

        user = await IdentityService(db_session).sync_user(identity, SyncUserRequest())

        assert user.role == "ADMIN"

    @pytest.mark.asyncio
    async def test_provider_role_is_trusted(self, db_session):
        identity = ProviderIdentity(
            user_id="root", email="root@demo.edu", role="super_admin"
        )

        user = await IdentityService(db_session).sync_user(identity, SyncUserRequest())

        assert user.role == "SUPER_ADMIN"
        assert user.admin is not None

    @pytest.mark.asyncio
    async def test_existing_user_matched_by_email(self, db_session, student_user):
        identity = ProviderIdentity(user_id="another-provider-id", email=student_user.email)

        user = await IdentityService(db_session).sync_user(
            identity, SyncUserRequest(role="admin")
        )

        assert user.id == student_user.id
        assert user.role == "STUDENT"
        assert user.last_login is not None
        assert db_session.execute(select(func.count(User.id))).scalar() == 1

    @pytest.mark.asyncio
    async def test_unknown_organization(self, db_session):
        identity = ProviderIdentity(user_id="y", email="y@demo.edu")

        with pytest.raises(NotFoundError):
            await IdentityService(db_session).sync_user(
                identity, SyncUserRequest(organization_id="nowhere")
            )
