from typing import Optional, Callable
from fastapi import Request, Response, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware

from complaint_portal.config.settings import settings
from complaint_portal.db.models import User, UserRole
from complaint_portal.db.session import get_sync_session
from complaint_portal.services.access_policy import (
    Action,
    CallerContext,
    authorize,
)
from complaint_portal.utils.auth import ProviderIdentity, SupabaseAuthUtils
from complaint_portal.utils.errors import AuthenticationError, AuthorizationError
from complaint_portal.utils.responses import ResponseBuilder
from complaint_portal.utils.logging import get_logger

logger = get_logger()

SESSION_COOKIE = "sb-access-token"


class SupabaseAuthMiddleware(BaseHTTPMiddleware):
    """Verifies the Supabase session and stores the provider identity on the request"""

    EXCLUDED_PATHS = {
        "/health",
        "/docs",
        "/redoc",
        "/openapi.json",
        f"{settings.API_PREFIX}/health",
    }

    def __init__(self, app, excluded_paths: Optional[set] = None):
        super().__init__(app)
        self.excluded_paths = set(self.EXCLUDED_PATHS)
        if excluded_paths:
            self.excluded_paths.update(excluded_paths)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request through authentication middleware"""
        if self._should_skip_auth(request):
            return await call_next(request)

        try:
            bearer_token = self._get_bearer_token(request)
            request.state.identity = await self._resolve_identity(bearer_token)
        except AuthenticationError as e:
            logger.warning(f"Authentication rejected [{e.error_code}]: {e.message}")
            return ResponseBuilder.error(
                request=request,
                message=e.message,
                error_code=e.error_code,
                status_code=401,
            )

        return await call_next(request)

    def _should_skip_auth(self, request: Request) -> bool:
        """Check if the request should skip authentication."""
        return request.method == "OPTIONS" or self._is_excluded_path(request.url.path)

    def _is_excluded_path(self, path: str) -> bool:
        """Check if path is excluded from authentication"""
        return any(path.startswith(excluded) for excluded in self.excluded_paths)

    def _get_bearer_token(self, request: Request) -> str:
        """Extracts bearer token from headers or cookies."""
        token = SupabaseAuthUtils.extract_bearer_token(
            request.headers.get("authorization")
        ) or request.cookies.get(SESSION_COOKIE)
        if not token:
            raise AuthenticationError("No bearer token found", "AUTH_ERROR")
        return token

    async def _resolve_identity(self, token: str) -> ProviderIdentity:
        return await SupabaseAuthUtils.resolve_identity(token)


def get_provider_identity(request: Request) -> ProviderIdentity:
    """Dependency to get the verified provider identity from request state"""
    identity = getattr(request.state, "identity", None)

    if not identity:
        raise AuthenticationError("Not authenticated", "NOT_AUTHENTICATED")

    return identity


def _find_local_user(db: Session, identity: ProviderIdentity) -> Optional[User]:
    user = db.get(User, identity.user_id)
    if user is None:
        stmt = select(User).where(User.email == identity.email)
        user = db.execute(stmt).scalar_one_or_none()
    return user


def get_caller_context(
    identity: ProviderIdentity = Depends(get_provider_identity),
    db: Session = Depends(get_sync_session),
) -> CallerContext:
    """Dependency that maps the provider identity onto the local user record"""
    user = _find_local_user(db, identity)

    if not user:
        raise AuthenticationError("User not synced", "USER_NOT_SYNCED")

    if not user.is_active:
        raise AuthorizationError("Account is disabled", "ACCOUNT_DISABLED")

    return CallerContext(
        user_id=user.id,
        email=user.email,
        role=user.role,
        organization_id=user.organization_id,
        department_id=user.department_id,
        student_id=user.student.id if user.student else None,
        admin_id=user.admin.id if user.admin else None,
    )


def require_roles(*allowed_roles: UserRole):
    """Create dependency that requires one of the given roles"""

    def check_role(
        caller: CallerContext = Depends(get_caller_context),
    ) -> CallerContext:
        if caller.role not in allowed_roles:
            raise AuthorizationError(
                "Insufficient permissions", "INSUFFICIENT_PERMISSIONS"
            )
        return caller

    return check_role


def require_action(action: Action):
    """Create dependency that checks the caller against the access policy"""

    def check_action(
        caller: CallerContext = Depends(get_caller_context),
    ) -> CallerContext:
        return authorize(caller, action)

    return check_action


# Pre-defined dependencies for common roles
require_student = require_roles(UserRole.STUDENT)
require_staff = require_roles(UserRole.ADMIN, UserRole.SUPER_ADMIN)
require_super_admin = require_roles(UserRole.SUPER_ADMIN)
