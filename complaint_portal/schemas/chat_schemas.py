from typing import Optional, List, Literal
from datetime import datetime
from pydantic import Field

from complaint_portal.db.models import ComplaintStatus, MessageStatus
from .camel_base_model import CamelCaseBaseModel as BaseModel


class ChatMessageResponse(BaseModel):
    """Response schema for a chat message"""

    id: str
    complaint_id: str
    message: str
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    status: MessageStatus
    sender_role: Literal["STUDENT", "ADMIN"]
    sender_student_id: Optional[str] = None
    sender_admin_id: Optional[str] = None
    receiver_student_id: Optional[str] = None
    receiver_admin_id: Optional[str] = None
    timestamp: datetime


class ChatStudentItem(BaseModel):
    id: str
    full_name: str
    email: str
    matric_no: str
    department: str
    level: str


class ChatComplaintItem(BaseModel):
    id: str
    title: str
    status: ComplaintStatus
    date_submitted: datetime
    category: Optional[str] = None


class ChatAdminItem(BaseModel):
    id: str
    full_name: str
    email: str
    avatar_url: Optional[str] = None
    categories: List[str] = []


class UpdateMessageStatusRequest(BaseModel):
    status: MessageStatus = Field(..., description="RECEIVED or READ")
