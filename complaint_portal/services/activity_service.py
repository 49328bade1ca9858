from typing import Optional, List

from fastapi import Depends
from sqlalchemy import select, or_
from sqlalchemy.orm import Session, aliased, selectinload

from complaint_portal.db.models import ActivityLog, Admin, Student, User
from complaint_portal.db.session import get_sync_session
from complaint_portal.schemas.notification_schemas import ActivityLogResponse
from complaint_portal.services.access_policy import Action, CallerContext, authorize
from complaint_portal.utils.context import get_client_ip
from complaint_portal.utils.logging import get_logger

logger = get_logger()

ACTIVITY_PAGE_SIZE = 100


class ActivityService:
    """Append-only audit trail of actions taken by students and admins"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def record(
        self,
        actor: CallerContext,
        action: str,
        description: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> ActivityLog:
        """Stage an activity entry; it is committed with the caller's transaction."""
        entry = ActivityLog(
            action=action,
            description=description,
            ip_address=ip_address or get_client_ip(),
            admin_id=actor.admin_id,
            student_id=actor.student_id,
        )
        self.db.add(entry)
        return entry

    async def list_recent(
        self, caller: CallerContext, limit: int = ACTIVITY_PAGE_SIZE
    ) -> List[ActivityLogResponse]:
        """Latest activity of actors inside the caller's organization"""
        authorize(caller, Action.VIEW_ACTIVITY)

        admin_user = aliased(User)
        student_user = aliased(User)
        stmt = (
            select(ActivityLog)
            .outerjoin(Admin, ActivityLog.admin_id == Admin.id)
            .outerjoin(admin_user, Admin.user_id == admin_user.id)
            .outerjoin(Student, ActivityLog.student_id == Student.id)
            .outerjoin(student_user, Student.user_id == student_user.id)
            .where(
                or_(
                    admin_user.organization_id == caller.organization_id,
                    student_user.organization_id == caller.organization_id,
                )
            )
            .options(selectinload(ActivityLog.admin), selectinload(ActivityLog.student))
            .order_by(ActivityLog.timestamp.desc())
            .limit(limit)
        )
        entries = self.db.execute(stmt).scalars().all()
        return [self._create_activity_response(entry) for entry in entries]

    @staticmethod
    def _create_activity_response(entry: ActivityLog) -> ActivityLogResponse:
        if entry.admin:
            actor_name, actor_role = entry.admin.full_name, "ADMIN"
        elif entry.student:
            actor_name, actor_role = entry.student.full_name, "STUDENT"
        else:
            actor_name, actor_role = None, None

        return ActivityLogResponse(
            id=entry.id,
            action=entry.action,
            description=entry.description,
            ip_address=entry.ip_address,
            timestamp=entry.timestamp,
            actor_name=actor_name,
            actor_role=actor_role,
        )


def get_activity_service(
    db: Session = Depends(get_sync_session),
) -> ActivityService:
    """Dependency to provide ActivityService instance"""
    return ActivityService(db)
