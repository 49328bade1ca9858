from typing import Optional, List
from pydantic import Field

from complaint_portal.db.models import ComplaintStatus, StudentStatus
from .camel_base_model import CamelCaseBaseModel as BaseModel


class StudentComplaintDigest(BaseModel):
    description: str
    status: ComplaintStatus
    date: str


class AdminStudentItem(BaseModel):
    """A student row as shown on the admin students page"""

    id: str
    name: str
    department: str
    level: str
    email: str
    phone: Optional[str] = None
    total_complaints: int = 0
    resolved_complaints: int = 0
    status: StudentStatus
    joined_date: str
    complaints: List[StudentComplaintDigest] = []


class UpdateStudentStatusRequest(BaseModel):
    status: StudentStatus = Field(..., description="Active or Suspended")
