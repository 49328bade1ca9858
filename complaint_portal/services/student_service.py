from typing import List, Sequence

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from complaint_portal.db.models import (
    ComplaintStatus,
    Student,
    StudentStatus,
    User,
    UserRole,
)
from complaint_portal.db.session import get_sync_session
from complaint_portal.schemas.student_schemas import (
    AdminStudentItem,
    StudentComplaintDigest,
)
from complaint_portal.services.access_policy import (
    Action,
    CallerContext,
    authorize,
    ensure_same_organization,
)
from complaint_portal.services.activity_service import ActivityService
from complaint_portal.services.scope_service import ScopeService
from complaint_portal.utils.datetime_utils import format_display_date
from complaint_portal.utils.errors import (
    AuthorizationError,
    DatabaseError,
    NotFoundError,
)
from complaint_portal.utils.logging import get_logger

logger = get_logger()


class StudentService:
    """Student administration for admins and super-admins"""

    def __init__(self, db_session: Session):
        self.db = db_session
        self.scope = ScopeService(db_session)
        self.activity = ActivityService(db_session)

    async def _students_in_scope(self, caller: CallerContext) -> Sequence[Student]:
        stmt = select(Student).options(selectinload(Student.complaints))

        if caller.role == UserRole.SUPER_ADMIN:
            stmt = stmt.join(User, Student.user_id == User.id).where(
                User.organization_id == caller.organization_id
            )
        else:
            complaints = await self.scope.complaints_for_admin(caller.admin_id)
            student_ids = {complaint.student_id for complaint in complaints}
            if not student_ids:
                return []
            stmt = stmt.where(Student.id.in_(student_ids))

        stmt = stmt.order_by(Student.joined_date.desc())
        return self.db.execute(stmt).scalars().all()

    async def list_students(self, caller: CallerContext) -> List[AdminStudentItem]:
        authorize(caller, Action.MANAGE_STUDENTS)
        students = await self._students_in_scope(caller)
        return [self._create_student_item(student) for student in students]

    async def update_status(
        self, caller: CallerContext, student_id: str, status: StudentStatus
    ) -> AdminStudentItem:
        """Suspend or reactivate a student"""
        authorize(caller, Action.MANAGE_STUDENTS)

        student = self.db.get(Student, student_id)
        if not student:
            raise NotFoundError("Student not found", "STUDENT_NOT_FOUND")

        if caller.role == UserRole.SUPER_ADMIN:
            ensure_same_organization(caller, student.user.organization_id)
        elif not await self.scope.complaints_for_admin(caller.admin_id, student.id):
            raise AuthorizationError(
                "Student has no complaints in your categories", "NOT_RESOURCE_OWNER"
            )

        try:
            student.status = status
            self.activity.record(
                caller,
                "STUDENT_STATUS_UPDATED",
                f"{student.full_name} set to {status.value}",
            )
            self.db.commit()
            self.db.refresh(student)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update student {student_id}: {e}")
            raise DatabaseError("Failed to update student", "STUDENT_UPDATE_FAILED")

        logger.info(f"Student {student.id} is now {status.value}")
        return self._create_student_item(student)

    @staticmethod
    def _create_student_item(student: Student) -> AdminStudentItem:
        complaints = sorted(
            student.complaints, key=lambda c: c.date_submitted, reverse=True
        )
        return AdminStudentItem(
            id=student.id,
            name=student.full_name,
            department=student.department,
            level=student.level,
            email=student.email,
            phone=student.phone,
            total_complaints=len(complaints),
            resolved_complaints=sum(
                1 for c in complaints if c.status == ComplaintStatus.RESOLVED
            ),
            status=student.status,
            joined_date=format_display_date(student.joined_date),
            complaints=[
                StudentComplaintDigest(
                    description=c.description,
                    status=c.status,
                    date=format_display_date(c.date_submitted),
                )
                for c in complaints
            ],
        )


def get_student_service(
    db: Session = Depends(get_sync_session),
) -> StudentService:
    """Dependency to provide StudentService instance"""
    return StudentService(db)
