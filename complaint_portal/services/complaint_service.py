from typing import Dict, FrozenSet, Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from complaint_portal.db.models import (
    Admin,
    Category,
    Complaint,
    ComplaintStatus,
    Student,
    UserRole,
)
from complaint_portal.db.session import get_sync_session
from complaint_portal.schemas.complaint_schemas import (
    AdminComplaintListResponse,
    CategoryRef,
    ComplaintListResponse,
    ComplaintResponse,
    CreateComplaintRequest,
    StudentRef,
)
from complaint_portal.services.access_policy import (
    Action,
    CallerContext,
    authorize,
    ensure_admin_owns_category,
    ensure_same_organization,
)
from complaint_portal.services.activity_service import ActivityService
from complaint_portal.services.analytics_service import status_counts
from complaint_portal.services.notification_service import NotificationService
from complaint_portal.services.scope_service import ScopeService
from complaint_portal.utils.errors import (
    AuthorizationError,
    DatabaseError,
    IllegalTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from complaint_portal.utils.logging import get_logger

logger = get_logger()

# Terminal states map to an empty set
ALLOWED_TRANSITIONS: Dict[ComplaintStatus, FrozenSet[ComplaintStatus]] = {
    ComplaintStatus.PENDING: frozenset(
        {
            ComplaintStatus.IN_PROGRESS,
            ComplaintStatus.RESOLVED,
            ComplaintStatus.REJECTED,
        }
    ),
    ComplaintStatus.IN_PROGRESS: frozenset(
        {ComplaintStatus.RESOLVED, ComplaintStatus.REJECTED}
    ),
    ComplaintStatus.RESOLVED: frozenset(),
    ComplaintStatus.REJECTED: frozenset(),
}


def check_transition(current: ComplaintStatus, requested: ComplaintStatus):
    """Raise IllegalTransitionError unless `current -> requested` is allowed"""
    if requested not in ALLOWED_TRANSITIONS[current]:
        raise IllegalTransitionError(current, requested)


def build_complaint_response(complaint: Complaint) -> ComplaintResponse:
    return ComplaintResponse(
        id=complaint.id,
        title=complaint.title,
        description=complaint.description,
        status=complaint.status,
        date_submitted=complaint.date_submitted,
        student_id=complaint.student_id,
        category_id=complaint.category_id,
        department_id=complaint.department_id,
        assigned_admin_id=complaint.admin_id,
        category=(
            CategoryRef(id=complaint.category.id, name=complaint.category.name)
            if complaint.category
            else None
        ),
        student=(
            StudentRef(
                id=complaint.student.id,
                full_name=complaint.student.full_name,
                email=complaint.student.email,
                matric_no=complaint.student.matric_no,
            )
            if complaint.student
            else None
        ),
        updated_at=complaint.updated_at,
    )


class ComplaintService:
    """Service provider for the complaint lifecycle"""

    def __init__(self, db_session: Session):
        self.db = db_session
        self.scope = ScopeService(db_session)
        self.activity = ActivityService(db_session)
        self.notifications = NotificationService(db_session)

    async def get_complaint_by_id(self, complaint_id: str) -> Optional[Complaint]:
        """Get complaint by ID or return None if not found"""
        stmt = (
            select(Complaint)
            .where(Complaint.id == complaint_id)
            .options(
                selectinload(Complaint.category),
                selectinload(Complaint.student).selectinload(Student.user),
            )
        )
        return self.db.execute(stmt).scalar_one_or_none()

    async def create_complaint(
        self, caller: CallerContext, request: CreateComplaintRequest
    ) -> ComplaintResponse:
        """
        File a complaint for the calling student.

        The complaint is routed to whoever administers the category right
        now; that admin id is stored on the complaint and does not follow
        later reassignments of the category.
        """
        authorize(caller, Action.SUBMIT_COMPLAINT)
        if not caller.student_id:
            raise AuthorizationError("Student profile required", "STUDENT_REQUIRED")

        title = request.title.strip()
        description = request.description.strip()
        if not title or not description:
            raise ValidationFailedError(
                "Title and description are required", "MISSING_FIELDS"
            )

        category = self.db.get(Category, request.category_id)
        if not category or category.organization_id != caller.organization_id:
            raise NotFoundError("Invalid category selected", "INVALID_CATEGORY")

        complaint = Complaint(
            title=title,
            description=description,
            status=ComplaintStatus.PENDING,
            student_id=caller.student_id,
            category_id=category.id,
            department_id=caller.department_id,
            admin_id=category.admin_id,
        )

        try:
            self.db.add(complaint)
            self.activity.record(
                caller,
                "COMPLAINT_SUBMITTED",
                f"Submitted complaint '{title}' under {category.name}",
            )
            self.db.commit()
            self.db.refresh(complaint)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create complaint: {e}")
            raise DatabaseError("Failed to create complaint", "COMPLAINT_CREATE_FAILED")

        logger.info(f"Complaint {complaint.id} filed by student {caller.student_id}")
        return build_complaint_response(complaint)

    async def get_complaint(
        self, caller: CallerContext, complaint_id: str
    ) -> ComplaintResponse:
        authorize(caller, Action.VIEW_COMPLAINTS)

        complaint = await self.get_complaint_by_id(complaint_id)
        if not complaint:
            raise NotFoundError("Complaint not found", "COMPLAINT_NOT_FOUND")

        if not await self.scope.can_view_complaint(caller, complaint):
            raise AuthorizationError(
                "You do not have access to this complaint", "COMPLAINT_FORBIDDEN"
            )

        return build_complaint_response(complaint)

    async def list_complaints(
        self,
        caller: CallerContext,
        student_id: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> ComplaintListResponse:
        """Complaints filtered by student and/or category, within the caller's scope"""
        authorize(caller, Action.VIEW_COMPLAINTS)
        if not student_id and not category_id:
            raise ValidationFailedError(
                "Either studentId or categoryId is required", "MISSING_FILTER"
            )

        complaints = await self.scope.visible_complaints(caller, student_id, category_id)
        counts = status_counts(complaint.status for complaint in complaints)

        return ComplaintListResponse(
            complaints=[build_complaint_response(c) for c in complaints],
            total_complaints=len(complaints),
            resolved_complaints=counts[ComplaintStatus.RESOLVED],
            pending_complaints=counts[ComplaintStatus.PENDING],
            in_progress_complaints=counts[ComplaintStatus.IN_PROGRESS],
            rejected_complaints=counts[ComplaintStatus.REJECTED],
        )

    async def list_admin_complaints(
        self, caller: CallerContext, admin_id: Optional[str] = None
    ) -> AdminComplaintListResponse:
        """
        Complaints routed to an admin.

        Admins only ever see their own queue. A super-admin sees the whole
        organization, or the queue of one admin of the organization when
        `admin_id` is given.
        """
        authorize(caller, Action.LIST_ADMIN_COMPLAINTS)

        if caller.role == UserRole.SUPER_ADMIN:
            if admin_id:
                admin = self.db.get(Admin, admin_id)
                if not admin:
                    raise NotFoundError("Admin not found", "ADMIN_NOT_FOUND")
                ensure_same_organization(caller, admin.user.organization_id)
                complaints = await self.scope.complaints_for_admin(admin_id)
            else:
                complaints = await self.scope.complaints_for_organization(
                    caller.organization_id
                )
        else:
            if admin_id and admin_id != caller.admin_id:
                raise AuthorizationError(
                    "You can only list your own complaints", "NOT_RESOURCE_OWNER"
                )
            complaints = await self.scope.complaints_for_admin(caller.admin_id)

        return AdminComplaintListResponse(
            complaints=[build_complaint_response(c) for c in complaints],
            total_pending=sum(
                1 for c in complaints if c.status == ComplaintStatus.PENDING
            ),
        )

    async def transition_status(
        self, caller: CallerContext, complaint_id: str, new_status: ComplaintStatus
    ) -> ComplaintResponse:
        """
        Move a complaint along its lifecycle.

        Concurrent updates are last-write-wins; the transition check runs
        against the status read in this request.
        """
        authorize(caller, Action.UPDATE_COMPLAINT_STATUS)

        complaint = await self.get_complaint_by_id(complaint_id)
        if not complaint:
            raise NotFoundError("Complaint not found", "COMPLAINT_NOT_FOUND")

        if caller.role == UserRole.SUPER_ADMIN:
            ensure_same_organization(caller, complaint.student.user.organization_id)
        else:
            ensure_admin_owns_category(caller, complaint.category)

        previous = complaint.status
        check_transition(previous, new_status)

        try:
            complaint.status = new_status
            self.activity.record(
                caller,
                "COMPLAINT_STATUS_UPDATED",
                f"Complaint '{complaint.title}' moved from {previous.value} "
                f"to {new_status.value}",
            )
            self.notifications.notify_student(
                complaint.student_id,
                "Complaint status updated",
                f"Your complaint '{complaint.title}' is now {new_status.value}",
            )
            self.db.commit()
            self.db.refresh(complaint)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update complaint {complaint_id}: {e}")
            raise DatabaseError(
                "Failed to update complaint status", "COMPLAINT_UPDATE_FAILED"
            )

        logger.info(
            f"Complaint {complaint.id}: {previous.value} -> {new_status.value}"
        )
        return build_complaint_response(complaint)


def get_complaint_service(
    db: Session = Depends(get_sync_session),
) -> ComplaintService:
    """Dependency to provide ComplaintService instance"""
    return ComplaintService(db)
