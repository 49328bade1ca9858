from typing import List

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from complaint_portal.db.models import Admin, Organization, User
from complaint_portal.db.session import get_sync_session
from complaint_portal.schemas.registry_schemas import (
    AdminSummary,
    OrganizationResponse,
    UpdateOrganizationRequest,
)
from complaint_portal.services.access_policy import Action, CallerContext, authorize
from complaint_portal.services.activity_service import ActivityService
from complaint_portal.utils.errors import ConflictError, DatabaseError, NotFoundError
from complaint_portal.utils.logging import get_logger

logger = get_logger()


class OrganizationService:
    """The caller's tenant: contact details and staff directory"""

    def __init__(self, db_session: Session):
        self.db = db_session
        self.activity = ActivityService(db_session)

    def _get_organization(self, caller: CallerContext) -> Organization:
        organization = (
            self.db.get(Organization, caller.organization_id)
            if caller.organization_id
            else None
        )
        if not organization:
            raise NotFoundError("Organization not found", "ORGANIZATION_NOT_FOUND")
        return organization

    async def get_organization(self, caller: CallerContext) -> OrganizationResponse:
        authorize(caller, Action.VIEW_REGISTRY)
        return OrganizationResponse.model_validate(self._get_organization(caller))

    async def update_organization(
        self, caller: CallerContext, request: UpdateOrganizationRequest
    ) -> OrganizationResponse:
        authorize(caller, Action.MANAGE_ORGANIZATION)
        organization = self._get_organization(caller)

        changes = request.model_dump(exclude_unset=True)
        try:
            for field, value in changes.items():
                setattr(organization, field, value)
            self.activity.record(
                caller,
                "ORGANIZATION_UPDATED",
                f"Updated {', '.join(sorted(changes)) or 'nothing'}",
            )
            self.db.commit()
            self.db.refresh(organization)
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Organization name already taken", "ORGANIZATION_EXISTS")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update organization {organization.id}: {e}")
            raise DatabaseError(
                "Failed to update organization", "ORGANIZATION_UPDATE_FAILED"
            )

        return OrganizationResponse.model_validate(organization)

    async def list_admins(self, caller: CallerContext) -> List[AdminSummary]:
        authorize(caller, Action.LIST_ADMINS)

        stmt = (
            select(Admin)
            .join(User, Admin.user_id == User.id)
            .where(User.organization_id == caller.organization_id)
            .order_by(Admin.full_name)
        )
        return [AdminSummary.model_validate(a) for a in self.db.execute(stmt).scalars()]


def get_organization_service(
    db: Session = Depends(get_sync_session),
) -> OrganizationService:
    """Dependency to provide OrganizationService instance"""
    return OrganizationService(db)
