from typing import Optional
from datetime import datetime
from pydantic import Field

from complaint_portal.db.models import StudentStatus
from .camel_base_model import CamelCaseBaseModel as BaseModel


class StudentProfileResponse(BaseModel):
    """Student profile attached to a user"""

    id: str = Field(..., description="Student ID")
    full_name: str = Field(..., description="Full name")
    email: str = Field(..., description="Email address")
    matric_no: str = Field(..., description="Matriculation number")
    department: str = Field(..., description="Department (free text)")
    level: str = Field(..., description="Study level")
    phone: Optional[str] = Field(None, description="Phone number")
    status: StudentStatus = Field(..., description="Account status")
    joined_date: datetime = Field(..., description="Date the student joined")


class AdminProfileResponse(BaseModel):
    """Admin profile attached to a user"""

    id: str = Field(..., description="Admin ID")
    full_name: str = Field(..., description="Full name")
    email: str = Field(..., description="Email address")
    username: str = Field(..., description="Username")
    department: Optional[str] = Field(None, description="Department")
    phone: Optional[str] = Field(None, description="Phone number")
    avatar_url: Optional[str] = Field(None, description="Avatar image URL")


class ProfileResponse(BaseModel):
    """Profile of the current user"""

    user_id: str
    email: str
    name: Optional[str] = None
    role: str
    profile_image_url: Optional[str] = None
    student: Optional[StudentProfileResponse] = None
    admin: Optional[AdminProfileResponse] = None


class ProfileUpdate(BaseModel):
    """Fields accepted by the profile form; all optional"""

    full_name: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)
    department: Optional[str] = Field(None, max_length=200)
    level: Optional[str] = Field(None, max_length=50)
    matric_no: Optional[str] = Field(None, max_length=50)
