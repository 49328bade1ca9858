from typing import List
from pydantic import Field

from complaint_portal.db.models import ComplaintStatus
from .camel_base_model import CamelCaseBaseModel as BaseModel


class MonthBucket(BaseModel):
    """Complaint counts for one calendar month, keyed by (year, month)"""

    year: int
    month: int = Field(..., ge=1, le=12)
    label: str
    complaints: int = 0
    resolved: int = 0
    in_progress: int = 0
    rejected: int = 0
    pending: int = 0


class DepartmentShare(BaseModel):
    department: str
    count: int
    percentage: float


class PieSlice(BaseModel):
    name: str
    value: int


class ComplaintSummaryResponse(BaseModel):
    total_complaints: int = 0
    resolved_complaints: int = 0
    pending_complaints: int = 0
    in_progress_complaints: int = 0
    rejected_complaints: int = 0
    by_department: List[DepartmentShare] = []


class AdminAnalyticsResponse(BaseModel):
    total_complaints: int = 0
    resolved_count: int = 0
    pending_count: int = 0
    in_progress_count: int = 0
    rejected_count: int = 0
    active_complaints: int = 0
    total_students: int = 0
    total_admins: int = 0
    complaint_stats: List[PieSlice] = []
    monthly_data: List[MonthBucket] = []
    department_data: List[DepartmentShare] = []


class DashboardStats(BaseModel):
    total_complaints: int = 0
    resolved_count: int = 0
    pending_count: int = 0
    in_progress_count: int = 0
    rejected_count: int = 0


class RecentComplaintItem(BaseModel):
    id: str
    student: str
    category: str
    title: str
    status: ComplaintStatus
    date: str


class AdminDashboardResponse(BaseModel):
    stats: DashboardStats
    recent_complaints: List[RecentComplaintItem] = []
    chart_data: List[MonthBucket] = []
