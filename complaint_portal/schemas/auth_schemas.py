from typing import Optional
from datetime import datetime
from pydantic import Field

from .camel_base_model import CamelCaseBaseModel as BaseModel
from .profile_schemas import StudentProfileResponse, AdminProfileResponse


class SyncUserRequest(BaseModel):
    """Optional profile hints sent by the client after sign-in"""

    name: Optional[str] = Field(None, max_length=200, description="Display name")
    role: Optional[str] = Field(
        None, description="Requested role when the provider has none on record"
    )
    organization_id: Optional[str] = Field(None, description="Organization ID")


class UserResponse(BaseModel):
    """User response schema"""

    id: str = Field(..., description="User ID")
    email: str = Field(..., description="Email address")
    name: Optional[str] = Field(None, description="Display name")
    role: str = Field(..., description="User role")
    organization_id: Optional[str] = Field(None, description="Organization ID")
    department_id: Optional[str] = Field(None, description="Department ID")
    profile_image_url: Optional[str] = Field(None, description="Profile image URL")
    is_active: bool = Field(..., description="User active status")
    email_verified: bool = Field(..., description="Email verified flag")
    two_factor_enabled: bool = Field(..., description="Two-factor enabled flag")
    last_login: Optional[datetime] = Field(None, description="Last login time")
    student: Optional[StudentProfileResponse] = None
    admin: Optional[AdminProfileResponse] = None


class TwoFactorSetupResponse(BaseModel):
    """Secret and QR code for enrolling an authenticator app"""

    secret: str = Field(..., description="Base32 TOTP secret")
    otpauth_uri: str = Field(..., description="otpauth:// provisioning URI")
    qr_code: str = Field(..., description="QR code as a PNG data URL")


class TwoFactorTokenRequest(BaseModel):
    token: str = Field(..., pattern=r"^\d{6}$", description="6-digit TOTP code")
