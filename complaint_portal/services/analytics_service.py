from collections import Counter
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta
from fastapi import Depends
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from complaint_portal.db.models import (
    Admin,
    Complaint,
    ComplaintStatus,
    Department,
    Student,
    StudentStatus,
    User,
    UserRole,
)
from complaint_portal.db.session import get_sync_session
from complaint_portal.schemas.analytics_schemas import (
    AdminAnalyticsResponse,
    AdminDashboardResponse,
    ComplaintSummaryResponse,
    DashboardStats,
    DepartmentShare,
    MonthBucket,
    PieSlice,
    RecentComplaintItem,
)
from complaint_portal.services.access_policy import Action, CallerContext, authorize
from complaint_portal.services.scope_service import ScopeService
from complaint_portal.utils.datetime_utils import format_display_date, naive_utc_now
from complaint_portal.utils.errors import AuthorizationError, ValidationFailedError
from complaint_portal.utils.logging import get_logger

logger = get_logger()

MonthKey = Tuple[int, int]

UNKNOWN_DEPARTMENT = "Unknown"
RECENT_COMPLAINTS_LIMIT = 5
DASHBOARD_MONTHS = 12

_BUCKET_FIELDS = {
    ComplaintStatus.RESOLVED: "resolved",
    ComplaintStatus.IN_PROGRESS: "in_progress",
    ComplaintStatus.REJECTED: "rejected",
    ComplaintStatus.PENDING: "pending",
}


# Pure aggregation helpers
def percentage(count: int, total: int) -> float:
    """
    Share of `total` as a percentage with one decimal, 0.0 for an empty total.

    Rounds down in integer arithmetic rather than to the nearest tenth
    (2 of 3 gives 66.6, not 66.7), so shares of one total never add up to
    more than 100.
    """
    if total <= 0:
        return 0.0
    return (count * 1000 // total) / 10


def status_counts(statuses: Iterable[ComplaintStatus]) -> Dict[ComplaintStatus, int]:
    counts = Counter(statuses)
    return {status: counts.get(status, 0) for status in ComplaintStatus}


def month_key(dt: datetime) -> MonthKey:
    return (dt.year, dt.month)


def month_label(key: MonthKey) -> str:
    year, month = key
    return datetime(year, month, 1).strftime("%b %Y")


def trailing_month_keys(now: datetime, months: int = DASHBOARD_MONTHS) -> List[MonthKey]:
    """The last `months` calendar months ending with the month of `now`"""
    first = now.replace(day=1) - relativedelta(months=months - 1)
    return [month_key(first + relativedelta(months=offset)) for offset in range(months)]


def bucket_by_month(
    rows: Iterable[Tuple[datetime, ComplaintStatus]],
    keys: Optional[Sequence[MonthKey]] = None,
) -> List[MonthBucket]:
    """
    Count complaints per calendar month.

    Rows are (date_submitted, status) pairs. Buckets are keyed by
    (year, month) so the same month of different years never merge, and
    come back in chronological order. When `keys` is given, exactly those
    months are reported (empty ones included) and rows outside are ignored.
    """
    buckets: Dict[MonthKey, MonthBucket] = {}
    if keys is not None:
        for key in keys:
            buckets[key] = MonthBucket(
                year=key[0], month=key[1], label=month_label(key)
            )

    for submitted, status in rows:
        key = month_key(submitted)
        bucket = buckets.get(key)
        if bucket is None:
            if keys is not None:
                continue
            bucket = MonthBucket(year=key[0], month=key[1], label=month_label(key))
            buckets[key] = bucket

        bucket.complaints += 1
        field = _BUCKET_FIELDS[status]
        setattr(bucket, field, getattr(bucket, field) + 1)

    return [buckets[key] for key in sorted(buckets)]


class AnalyticsService:
    """Counts, shares and time series over the complaints a caller may see"""

    def __init__(self, db_session: Session):
        self.db = db_session
        self.scope = ScopeService(db_session)

    async def _staff_complaints(self, caller: CallerContext) -> Sequence[Complaint]:
        if caller.role == UserRole.SUPER_ADMIN:
            return await self.scope.complaints_for_organization(caller.organization_id)
        return await self.scope.complaints_for_admin(caller.admin_id)

    async def _target_student(
        self, caller: CallerContext, student_id: Optional[str]
    ) -> Optional[str]:
        if caller.role == UserRole.STUDENT:
            return await self.scope.resolve_student_filter(
                caller, student_id or caller.student_id
            )
        if not student_id:
            raise ValidationFailedError(
                "Missing studentId parameter", "MISSING_STUDENT_ID"
            )
        return await self.scope.resolve_student_filter(caller, student_id)

    def _department_names(self, department_ids: Iterable[str]) -> Dict[str, str]:
        ids = [department_id for department_id in department_ids if department_id]
        if not ids:
            return {}
        rows = self.db.execute(
            select(Department.id, Department.name).where(Department.id.in_(ids))
        )
        return {row.id: row.name for row in rows}

    async def complaint_summary(
        self, caller: CallerContext, student_id: Optional[str] = None
    ) -> ComplaintSummaryResponse:
        """Totals by status and share per department for one student"""
        authorize(caller, Action.VIEW_COMPLAINT_SUMMARY)
        target = await self._target_student(caller, student_id)
        if not target:
            return ComplaintSummaryResponse()

        complaints = await self.scope.complaints_for_student(target)
        total = len(complaints)
        counts = status_counts(complaint.status for complaint in complaints)

        per_department = Counter(complaint.department_id for complaint in complaints)
        names = self._department_names(per_department)
        by_department = [
            DepartmentShare(
                department=names.get(department_id, UNKNOWN_DEPARTMENT),
                count=count,
                percentage=percentage(count, total),
            )
            for department_id, count in per_department.most_common()
        ]

        return ComplaintSummaryResponse(
            total_complaints=total,
            resolved_complaints=counts[ComplaintStatus.RESOLVED],
            pending_complaints=counts[ComplaintStatus.PENDING],
            in_progress_complaints=counts[ComplaintStatus.IN_PROGRESS],
            rejected_complaints=counts[ComplaintStatus.REJECTED],
            by_department=by_department,
        )

    async def bar_chart_stats(
        self, caller: CallerContext, student_id: Optional[str] = None
    ) -> List[MonthBucket]:
        authorize(caller, Action.VIEW_COMPLAINT_SUMMARY)
        target = await self._target_student(caller, student_id)
        if not target:
            return []

        complaints = await self.scope.complaints_for_student(target)
        return bucket_by_month((c.date_submitted, c.status) for c in complaints)

    async def admin_analytics(self, caller: CallerContext) -> AdminAnalyticsResponse:
        """Organization-wide analytics page"""
        authorize(caller, Action.VIEW_ANALYTICS)
        if not caller.organization_id:
            raise AuthorizationError(
                "Caller does not belong to an organization", "NO_ORGANIZATION"
            )

        complaints = await self.scope.complaints_for_organization(
            caller.organization_id
        )
        total = len(complaints)
        counts = status_counts(complaint.status for complaint in complaints)

        total_students = self.db.execute(
            select(func.count(Student.id))
            .join(User, Student.user_id == User.id)
            .where(
                User.organization_id == caller.organization_id,
                Student.status == StudentStatus.ACTIVE,
            )
        ).scalar()
        total_admins = self.db.execute(
            select(func.count(Admin.id))
            .join(User, Admin.user_id == User.id)
            .where(User.organization_id == caller.organization_id)
        ).scalar()

        per_department = Counter(complaint.department_id for complaint in complaints)
        departments = self.db.execute(
            select(Department)
            .where(Department.organization_id == caller.organization_id)
            .order_by(Department.name)
        ).scalars()
        department_data = [
            DepartmentShare(
                department=department.name,
                count=per_department.get(department.id, 0),
                percentage=percentage(per_department.get(department.id, 0), total),
            )
            for department in departments
        ]

        return AdminAnalyticsResponse(
            total_complaints=total,
            resolved_count=counts[ComplaintStatus.RESOLVED],
            pending_count=counts[ComplaintStatus.PENDING],
            in_progress_count=counts[ComplaintStatus.IN_PROGRESS],
            rejected_count=counts[ComplaintStatus.REJECTED],
            active_complaints=counts[ComplaintStatus.PENDING]
            + counts[ComplaintStatus.IN_PROGRESS],
            total_students=total_students or 0,
            total_admins=total_admins or 0,
            complaint_stats=[
                PieSlice(name="Resolved", value=counts[ComplaintStatus.RESOLVED]),
                PieSlice(name="Pending", value=counts[ComplaintStatus.PENDING]),
                PieSlice(name="In Review", value=counts[ComplaintStatus.IN_PROGRESS]),
                PieSlice(name="Rejected", value=counts[ComplaintStatus.REJECTED]),
            ],
            monthly_data=bucket_by_month(
                (c.date_submitted, c.status) for c in complaints
            ),
            department_data=department_data,
        )

    async def admin_dashboard(
        self, caller: CallerContext, now: Optional[datetime] = None
    ) -> AdminDashboardResponse:
        """Dashboard for the complaints routed to the caller"""
        authorize(caller, Action.VIEW_ANALYTICS)

        complaints = await self._staff_complaints(caller)
        counts = status_counts(complaint.status for complaint in complaints)

        recent = [
            RecentComplaintItem(
                id=complaint.id,
                student=complaint.student.full_name if complaint.student else "Unknown",
                category=(
                    complaint.category.name if complaint.category else "Uncategorized"
                ),
                title=complaint.title,
                status=complaint.status,
                date=format_display_date(complaint.date_submitted),
            )
            for complaint in complaints[:RECENT_COMPLAINTS_LIMIT]
        ]

        chart_data = bucket_by_month(
            ((c.date_submitted, c.status) for c in complaints),
            keys=trailing_month_keys(now or naive_utc_now()),
        )

        return AdminDashboardResponse(
            stats=DashboardStats(
                total_complaints=len(complaints),
                resolved_count=counts[ComplaintStatus.RESOLVED],
                pending_count=counts[ComplaintStatus.PENDING],
                in_progress_count=counts[ComplaintStatus.IN_PROGRESS],
                rejected_count=counts[ComplaintStatus.REJECTED],
            ),
            recent_complaints=recent,
            chart_data=chart_data,
        )


def get_analytics_service(
    db: Session = Depends(get_sync_session),
) -> AnalyticsService:
    """Dependency to provide AnalyticsService instance"""
    return AnalyticsService(db)
