from typing import Optional

from fastapi import Depends
from sqlalchemy import select, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from complaint_portal.db.models import (
    Admin,
    Organization,
    Student,
    StudentStatus,
    User,
    UserRole,
)
from complaint_portal.db.session import get_sync_session
from complaint_portal.schemas.auth_schemas import SyncUserRequest, UserResponse
from complaint_portal.schemas.profile_schemas import (
    AdminProfileResponse,
    StudentProfileResponse,
)
from complaint_portal.utils.auth import ProviderIdentity
from complaint_portal.utils.datetime_utils import naive_utc_now
from complaint_portal.utils.errors import (
    AuthorizationError,
    DatabaseError,
    NotFoundError,
    ValidationFailedError,
)
from complaint_portal.utils.logging import get_logger

logger = get_logger()

# Roles a user may pick for themselves at sign-up
SELF_ASSIGNABLE_ROLES = {UserRole.STUDENT, UserRole.ADMIN}

# Roles that get an Admin profile row
ADMIN_PROFILE_ROLES = {UserRole.ADMIN, UserRole.SUPER_ADMIN}


def normalize_role(role: Optional[str]) -> UserRole:
    """Parse a role name case-insensitively ('student' == 'STUDENT')"""
    if not role or not role.strip():
        raise ValidationFailedError("Role is required", "INVALID_ROLE")
    try:
        return UserRole(role.strip().upper())
    except ValueError:
        raise ValidationFailedError(f"Unknown role: {role}", "INVALID_ROLE")


class IdentityService:
    """Reconciles the provider identity with the local user tables"""

    def __init__(self, db_session: Session):
        self.db = db_session

    async def find_user(self, user_id: str, email: str) -> Optional[User]:
        """Find a local user by provider id or by email"""
        stmt = (
            select(User)
            .where(or_(User.id == user_id, User.email == email.lower()))
            .options(selectinload(User.student), selectinload(User.admin))
        )
        return self.db.execute(stmt).scalars().first()

    def _resolve_role(
        self, identity: ProviderIdentity, request: SyncUserRequest
    ) -> UserRole:
        # Only server-written provider roles are trusted as-is
        if identity.role:
            return normalize_role(identity.role)

        requested = request.role or identity.requested_role
        if requested is None:
            return UserRole.STUDENT

        role = normalize_role(requested)
        if role not in SELF_ASSIGNABLE_ROLES:
            raise AuthorizationError(
                f"Role {role.value} cannot be self-assigned", "ROLE_NOT_ASSIGNABLE"
            )
        return role

    def _resolve_organization(
        self, identity: ProviderIdentity, request: SyncUserRequest
    ) -> Optional[str]:
        organization_id = request.organization_id or identity.organization_id
        if organization_id and not self.db.get(Organization, organization_id):
            raise NotFoundError("Organization not found", "ORGANIZATION_NOT_FOUND")
        return organization_id

    async def sync_user(
        self, identity: ProviderIdentity, request: SyncUserRequest
    ) -> UserResponse:
        """
        Return the local user for `identity`, provisioning it on first sight.

        New users get a Student profile (STUDENT) or an Admin profile
        (ADMIN, SUPER_ADMIN) with placeholder fields. Existing users only
        have their last login refreshed.
        """
        existing = await self.find_user(identity.user_id, identity.email)
        now = naive_utc_now()

        try:
            if existing:
                existing.last_login = now
                self.db.commit()
                return build_user_response(existing)

            role = self._resolve_role(identity, request)
            organization_id = self._resolve_organization(identity, request)
            display_name = request.name or identity.name or identity.email

            user = User(
                id=identity.user_id,
                email=identity.email,
                name=display_name,
                role=role,
                organization_id=organization_id,
                is_active=True,
                email_verified=identity.email_verified,
                last_login=now,
            )
            self.db.add(user)

            if role == UserRole.STUDENT:
                user.student = Student(
                    full_name=display_name,
                    email=identity.email,
                    matric_no="",
                    department="",
                    level="",
                    status=StudentStatus.ACTIVE,
                    last_login=now,
                )
            elif role in ADMIN_PROFILE_ROLES:
                user.admin = Admin(
                    full_name=display_name,
                    email=identity.email,
                    username=identity.email,
                    last_login=now,
                )

            self.db.commit()
            self.db.refresh(user)

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to sync user {identity.user_id}: {e}")
            raise DatabaseError("Failed to sync user", "USER_SYNC_FAILED")

        logger.info(f"Provisioned {role.value} user {user.id}")
        return build_user_response(user)

    async def get_user(self, user_id: str) -> UserResponse:
        stmt = (
            select(User)
            .where(User.id == user_id)
            .options(selectinload(User.student), selectinload(User.admin))
        )
        user = self.db.execute(stmt).scalar_one_or_none()
        if not user:
            raise NotFoundError("User not found", "USER_NOT_FOUND")
        return build_user_response(user)


def build_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role.value,
        organization_id=user.organization_id,
        department_id=user.department_id,
        profile_image_url=user.profile_image_url,
        is_active=user.is_active,
        email_verified=user.email_verified,
        two_factor_enabled=user.two_factor_enabled,
        last_login=user.last_login,
        student=(
            StudentProfileResponse.model_validate(user.student)
            if user.student
            else None
        ),
        admin=AdminProfileResponse.model_validate(user.admin) if user.admin else None,
    )


def get_identity_service(
    db: Session = Depends(get_sync_session),
) -> IdentityService:
    """Dependency to provide IdentityService instance"""
    return IdentityService(db)
