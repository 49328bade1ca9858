from typing import Optional, Dict, Any
import jwt
from httpx import AsyncClient, HTTPStatusError, RequestError

from complaint_portal.config.settings import settings
from complaint_portal.utils.errors import AuthenticationError


class ProviderIdentity:
    """Identity asserted by the authentication provider for the current request"""

    def __init__(
        self,
        user_id: str,
        email: str,
        name: Optional[str] = None,
        role: Optional[str] = None,
        email_verified: bool = False,
        organization_id: Optional[str] = None,
        requested_role: Optional[str] = None,
    ):
        self.user_id = user_id
        self.email = email
        self.name = name
        # Set only from app_metadata, which the client cannot write
        self.role = role
        self.requested_role = requested_role
        self.email_verified = email_verified
        self.organization_id = organization_id

    @classmethod
    def from_provider_user(cls, payload: Dict[str, Any]) -> "ProviderIdentity":
        """Build from a Supabase user object or decoded access-token claims."""
        metadata = payload.get("user_metadata") or {}
        app_metadata = payload.get("app_metadata") or {}
        user_id = payload.get("id") or payload.get("sub")
        email = payload.get("email")
        if not user_id or not email:
            raise AuthenticationError("Invalid user data from provider", "AUTH_ERROR")

        email_verified = bool(
            payload.get("email_confirmed_at") or metadata.get("email_verified")
        )
        return cls(
            user_id=str(user_id),
            email=email.lower(),
            name=metadata.get("full_name") or metadata.get("name"),
            role=app_metadata.get("role"),
            email_verified=email_verified,
            organization_id=app_metadata.get("organization_id")
            or metadata.get("organizationId")
            or metadata.get("organization_id"),
            requested_role=metadata.get("role"),
        )


class SupabaseAuthUtils:
    """Verification of Supabase access tokens"""

    @staticmethod
    def extract_bearer_token(authorization_header: Optional[str]) -> Optional[str]:
        """Extract Bearer token from Authorization header"""
        if not authorization_header:
            return None

        if not authorization_header.startswith("Bearer "):
            return None

        return authorization_header[7:] or None

    @staticmethod
    def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
        """Verify the token signature locally with the project JWT secret"""
        try:
            return jwt.decode(
                token,
                settings.SUPABASE_JWT_SECRET,
                algorithms=[settings.SUPABASE_JWT_ALGORITHM],
                audience=settings.SUPABASE_JWT_AUDIENCE,
            )
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None

    @staticmethod
    async def fetch_provider_user(token: str) -> Dict[str, Any]:
        """Ask the Supabase auth server who the token belongs to"""
        try:
            async with AsyncClient(timeout=settings.SUPABASE_TIMEOUT) as client:
                response = await client.get(
                    f"{settings.SUPABASE_URL}/auth/v1/user",
                    headers={
                        "apikey": settings.SUPABASE_ANON_KEY,
                        "Authorization": f"Bearer {token}",
                    },
                )
                response.raise_for_status()
                return response.json()
        except HTTPStatusError:
            raise AuthenticationError("Invalid or expired session", "INVALID_SESSION")
        except RequestError:
            raise AuthenticationError(
                "Authentication provider unavailable", "AUTH_PROVIDER_ERROR"
            )

    @staticmethod
    async def resolve_identity(token: str) -> ProviderIdentity:
        if settings.SUPABASE_JWT_SECRET:
            claims = SupabaseAuthUtils.decode_access_token(token)
            if not claims:
                raise AuthenticationError(
                    "Invalid or expired session", "INVALID_SESSION"
                )
            return ProviderIdentity.from_provider_user(claims)

        provider_user = await SupabaseAuthUtils.fetch_provider_user(token)
        return ProviderIdentity.from_provider_user(provider_user)
