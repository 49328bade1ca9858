from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from complaint_portal.db.models import (
    Admin,
    Category,
    Complaint,
    Student,
    User,
    UserRole,
)
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.utils.errors import AuthorizationError, NotFoundError
from complaint_portal.utils.logging import get_logger

logger = get_logger()


def _complaint_query():
    return select(Complaint).options(
        selectinload(Complaint.category), selectinload(Complaint.student)
    )


class ScopeService:
    """
    Role-scoped reads of complaints and students.

    Admin visibility is always derived in two steps: the set of categories
    the admin owns, then the complaints filed under those categories.
    Nothing here trusts an owner id without checking it against the caller.
    """

    def __init__(self, db_session: Session):
        self.db = db_session

    async def admin_category_ids(self, admin_id: Optional[str]) -> List[str]:
        if not admin_id:
            return []
        result = self.db.execute(select(Category.id).where(Category.admin_id == admin_id))
        return list(result.scalars())

    async def complaints_for_admin(
        self, admin_id: Optional[str], student_id: Optional[str] = None
    ) -> Sequence[Complaint]:
        """Complaints filed under categories owned by the admin, newest first"""
        category_ids = await self.admin_category_ids(admin_id)
        if not category_ids:
            return []

        stmt = _complaint_query().where(Complaint.category_id.in_(category_ids))
        if student_id:
            stmt = stmt.where(Complaint.student_id == student_id)
        stmt = stmt.order_by(Complaint.date_submitted.desc())
        return self.db.execute(stmt).scalars().all()

    async def complaints_for_student(
        self, student_id: str, category_id: Optional[str] = None
    ) -> Sequence[Complaint]:
        stmt = _complaint_query().where(Complaint.student_id == student_id)
        if category_id:
            stmt = stmt.where(Complaint.category_id == category_id)
        stmt = stmt.order_by(Complaint.date_submitted.desc())
        return self.db.execute(stmt).scalars().all()

    async def complaints_for_organization(
        self,
        organization_id: Optional[str],
        student_id: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> Sequence[Complaint]:
        """Every complaint filed by a student of the organization"""
        if not organization_id:
            return []

        stmt = (
            _complaint_query()
            .join(Student, Complaint.student_id == Student.id)
            .join(User, Student.user_id == User.id)
            .where(User.organization_id == organization_id)
        )
        if student_id:
            stmt = stmt.where(Complaint.student_id == student_id)
        if category_id:
            stmt = stmt.where(Complaint.category_id == category_id)
        stmt = stmt.order_by(Complaint.date_submitted.desc())
        return self.db.execute(stmt).scalars().all()

    async def resolve_student_filter(
        self, caller: CallerContext, student_id: Optional[str]
    ) -> Optional[str]:
        """
        Check a client-supplied student id against the caller.

        Students may only name themselves. Super-admins may name any student
        of their organization. Admins may name students that have a complaint
        in one of their categories.
        """
        if student_id is None:
            return None

        if caller.role == UserRole.STUDENT:
            if student_id != caller.student_id:
                raise AuthorizationError(
                    "You can only access your own records", "NOT_RESOURCE_OWNER"
                )
            return student_id

        student = self.db.get(Student, student_id)
        if not student:
            raise NotFoundError("Student not found", "STUDENT_NOT_FOUND")

        if caller.role == UserRole.SUPER_ADMIN:
            if student.user.organization_id != caller.organization_id:
                raise AuthorizationError(
                    "Student belongs to another organization",
                    "CROSS_ORGANIZATION_ACCESS",
                )
            return student_id

        if caller.role == UserRole.ADMIN:
            if not await self.complaints_for_admin(caller.admin_id, student_id):
                raise AuthorizationError(
                    "Student has no complaints in your categories",
                    "NOT_RESOURCE_OWNER",
                )
            return student_id

        raise AuthorizationError("Insufficient permissions", "INSUFFICIENT_PERMISSIONS")

    async def visible_complaints(
        self,
        caller: CallerContext,
        student_id: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> Sequence[Complaint]:
        """Dispatch to the complaint scope of the caller's role"""
        student_id = await self.resolve_student_filter(caller, student_id)

        if caller.role == UserRole.STUDENT:
            return await self.complaints_for_student(caller.student_id, category_id)

        if caller.role == UserRole.ADMIN:
            complaints = await self.complaints_for_admin(caller.admin_id, student_id)
            if category_id:
                complaints = [c for c in complaints if c.category_id == category_id]
            return complaints

        if caller.role == UserRole.SUPER_ADMIN:
            return await self.complaints_for_organization(
                caller.organization_id, student_id, category_id
            )

        raise AuthorizationError("Insufficient permissions", "INSUFFICIENT_PERMISSIONS")

    async def can_view_complaint(
        self, caller: CallerContext, complaint: Complaint
    ) -> bool:
        if caller.role == UserRole.STUDENT:
            return complaint.student_id == caller.student_id

        if caller.role == UserRole.ADMIN:
            return (
                complaint.category is not None
                and complaint.category.admin_id == caller.admin_id
            )

        if caller.role == UserRole.SUPER_ADMIN:
            return complaint.student.user.organization_id == caller.organization_id

        return False

    async def chat_students_for_admin(self, admin_id: Optional[str]) -> List[Student]:
        """Distinct students with a complaint in the admin's categories, by id"""
        complaints = await self.complaints_for_admin(admin_id)
        student_ids = {complaint.student_id for complaint in complaints}
        if not student_ids:
            return []

        stmt = select(Student).where(Student.id.in_(student_ids)).order_by(Student.id)
        return list(self.db.execute(stmt).scalars())

    async def chat_complaints_for_admin(
        self, admin_id: Optional[str], student_id: str
    ) -> Sequence[Complaint]:
        return await self.complaints_for_admin(admin_id, student_id)

    async def admins_for_student(self, student_id: str) -> List[Admin]:
        """Admins currently responsible for a category the student complained in"""
        stmt = (
            select(Admin)
            .join(Category, Category.admin_id == Admin.id)
            .join(Complaint, Complaint.category_id == Category.id)
            .where(Complaint.student_id == student_id)
            .options(selectinload(Admin.categories))
            .distinct()
            .order_by(Admin.id)
        )
        return list(self.db.execute(stmt).scalars())
