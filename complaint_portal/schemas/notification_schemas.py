from typing import Optional, Literal
from datetime import datetime
from pydantic import Field

from complaint_portal.db.models import NotificationKind
from .camel_base_model import CamelCaseBaseModel as BaseModel


class NotificationResponse(BaseModel):
    id: str
    title: str
    message: str
    type: NotificationKind
    is_read: bool
    created_at: datetime


class BroadcastRequest(BaseModel):
    """Request schema for broadcasting a notification across the organization"""

    title: str = Field(..., min_length=1, max_length=300)
    message: str = Field(..., min_length=1)
    type: NotificationKind = Field(NotificationKind.INFO)
    target: Literal["ALL", "ADMINS", "STUDENTS"] = Field("ALL")


class ActivityLogResponse(BaseModel):
    id: str
    action: str
    description: Optional[str] = None
    ip_address: Optional[str] = None
    timestamp: datetime
    actor_name: Optional[str] = None
    actor_role: Optional[str] = None
