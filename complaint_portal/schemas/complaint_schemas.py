from typing import Optional, List
from datetime import datetime
from pydantic import Field

from complaint_portal.db.models import ComplaintStatus
from .camel_base_model import CamelCaseBaseModel as BaseModel


class CategoryRef(BaseModel):
    id: str
    name: str


class StudentRef(BaseModel):
    id: str
    full_name: str
    email: str
    matric_no: str


class ComplaintResponse(BaseModel):
    """Response schema for complaint data"""

    id: str = Field(..., description="Complaint ID")
    title: str = Field(..., description="Complaint title")
    description: str = Field(..., description="Complaint description")
    status: ComplaintStatus = Field(..., description="Lifecycle status")
    date_submitted: datetime = Field(..., description="Submission timestamp")
    student_id: str = Field(..., description="Owning student ID")
    category_id: Optional[str] = Field(None, description="Category ID")
    department_id: Optional[str] = Field(None, description="Department ID")
    assigned_admin_id: Optional[str] = Field(
        None, description="Admin responsible for the category at submission time"
    )
    category: Optional[CategoryRef] = None
    student: Optional[StudentRef] = None
    updated_at: Optional[datetime] = None


class ComplaintCounts(BaseModel):
    total_complaints: int = 0
    resolved_complaints: int = 0
    pending_complaints: int = 0
    in_progress_complaints: int = 0
    rejected_complaints: int = 0


class ComplaintListResponse(ComplaintCounts):
    complaints: List[ComplaintResponse] = []


class CreateComplaintRequest(BaseModel):
    """Request schema for submitting a complaint"""

    title: str = Field(..., min_length=1, max_length=300, description="Title")
    description: str = Field(..., min_length=1, description="Description")
    category_id: str = Field(..., min_length=1, description="Category ID")


class UpdateComplaintStatusRequest(BaseModel):
    status: ComplaintStatus = Field(..., description="New lifecycle status")


class AdminComplaintListResponse(BaseModel):
    complaints: List[ComplaintResponse] = []
    total_pending: int = 0
