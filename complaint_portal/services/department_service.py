from typing import List

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from complaint_portal.db.models import Department
from complaint_portal.db.session import get_sync_session
from complaint_portal.schemas.registry_schemas import (
    CreateDepartmentRequest,
    DepartmentResponse,
)
from complaint_portal.services.access_policy import Action, CallerContext, authorize
from complaint_portal.utils.errors import (
    ConflictError,
    DatabaseError,
    ValidationFailedError,
)
from complaint_portal.utils.logging import get_logger

logger = get_logger()


class DepartmentService:
    def __init__(self, db_session: Session):
        self.db = db_session

    async def list_departments(self, caller: CallerContext) -> List[DepartmentResponse]:
        authorize(caller, Action.VIEW_REGISTRY)

        stmt = (
            select(Department)
            .where(Department.organization_id == caller.organization_id)
            .order_by(Department.name)
        )
        return [
            DepartmentResponse.model_validate(department)
            for department in self.db.execute(stmt).scalars()
        ]

    async def create_department(
        self, caller: CallerContext, request: CreateDepartmentRequest
    ) -> DepartmentResponse:
        authorize(caller, Action.MANAGE_DEPARTMENTS)

        name = request.name.strip()
        if not name:
            raise ValidationFailedError("Department name is required", "MISSING_FIELDS")

        exists = self.db.execute(
            select(Department.id).where(
                Department.organization_id == caller.organization_id,
                Department.name == name,
            )
        ).first()
        if exists:
            raise ConflictError("Department already exists", "DEPARTMENT_EXISTS")

        department = Department(
            name=name,
            description=request.description,
            organization_id=caller.organization_id,
        )
        try:
            self.db.add(department)
            self.db.commit()
            self.db.refresh(department)
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Department already exists", "DEPARTMENT_EXISTS")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create department '{name}': {e}")
            raise DatabaseError(
                "Failed to create department", "DEPARTMENT_CREATE_FAILED"
            )

        logger.info(f"Created department {department.id} ({name})")
        return DepartmentResponse.model_validate(department)


def get_department_service(
    db: Session = Depends(get_sync_session),
) -> DepartmentService:
    """Dependency to provide DepartmentService instance"""
    return DepartmentService(db)
