from typing import List

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from complaint_portal.db.models import (
    Admin,
    Notification,
    NotificationKind,
    Student,
    User,
)
from complaint_portal.db.session import get_sync_session
from complaint_portal.schemas.notification_schemas import (
    BroadcastRequest,
    NotificationResponse,
)
from complaint_portal.services.access_policy import Action, CallerContext, authorize
from complaint_portal.services.activity_service import ActivityService
from complaint_portal.utils.errors import (
    AuthorizationError,
    DatabaseError,
    NotFoundError,
)
from complaint_portal.utils.logging import get_logger

logger = get_logger()

NOTIFICATION_PAGE_SIZE = 20


class NotificationService:
    """In-app notifications for students and admins"""

    def __init__(self, db_session: Session):
        self.db = db_session
        self.activity = ActivityService(db_session)

    def notify_student(
        self,
        student_id: str,
        title: str,
        message: str,
        kind: NotificationKind = NotificationKind.INFO,
    ) -> Notification:
        """Stage a notification for one student without committing"""
        notification = Notification(
            title=title, message=message, type=kind, student_id=student_id
        )
        self.db.add(notification)
        return notification

    async def broadcast(self, caller: CallerContext, request: BroadcastRequest) -> int:
        """Send one notification to every targeted member of the organization"""
        authorize(caller, Action.BROADCAST)

        admin_ids: List[str] = []
        student_ids: List[str] = []
        if request.target in ("ALL", "ADMINS"):
            admin_ids = list(
                self.db.execute(
                    select(Admin.id)
                    .join(User, Admin.user_id == User.id)
                    .where(User.organization_id == caller.organization_id)
                ).scalars()
            )
        if request.target in ("ALL", "STUDENTS"):
            student_ids = list(
                self.db.execute(
                    select(Student.id)
                    .join(User, Student.user_id == User.id)
                    .where(User.organization_id == caller.organization_id)
                ).scalars()
            )

        notifications = [
            Notification(
                title=request.title,
                message=request.message,
                type=request.type,
                admin_id=admin_id,
            )
            for admin_id in admin_ids
        ] + [
            Notification(
                title=request.title,
                message=request.message,
                type=request.type,
                student_id=student_id,
            )
            for student_id in student_ids
        ]

        try:
            self.db.add_all(notifications)
            self.activity.record(
                caller,
                f"BROADCAST: {request.title}",
                f"Sent to {len(notifications)} recipients ({request.target})",
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Broadcast failed: {e}")
            raise DatabaseError("Failed to send broadcast", "BROADCAST_FAILED")

        logger.info(
            f"Broadcast '{request.title}' delivered to {len(notifications)} recipients"
        )
        return len(notifications)

    async def list_for_caller(
        self, caller: CallerContext, limit: int = NOTIFICATION_PAGE_SIZE
    ) -> List[NotificationResponse]:
        authorize(caller, Action.VIEW_NOTIFICATIONS)

        stmt = select(Notification)
        if caller.admin_id:
            stmt = stmt.where(Notification.admin_id == caller.admin_id)
        elif caller.student_id:
            stmt = stmt.where(Notification.student_id == caller.student_id)
        else:
            return []

        stmt = stmt.order_by(Notification.created_at.desc()).limit(limit)
        return [
            NotificationResponse.model_validate(notification)
            for notification in self.db.execute(stmt).scalars()
        ]

    async def mark_read(
        self, caller: CallerContext, notification_id: str
    ) -> NotificationResponse:
        """Mark one of the caller's notifications as read"""
        authorize(caller, Action.VIEW_NOTIFICATIONS)

        notification = self.db.get(Notification, notification_id)
        if not notification:
            raise NotFoundError("Notification not found", "NOTIFICATION_NOT_FOUND")

        is_recipient = (
            caller.admin_id is not None and notification.admin_id == caller.admin_id
        ) or (
            caller.student_id is not None
            and notification.student_id == caller.student_id
        )
        if not is_recipient:
            raise AuthorizationError(
                "You can only update your own notifications", "NOT_RESOURCE_OWNER"
            )

        if not notification.is_read:
            notification.is_read = True
            try:
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Failed to mark notification {notification_id}: {e}")
                raise DatabaseError(
                    "Failed to update notification", "NOTIFICATION_UPDATE_FAILED"
                )

        return NotificationResponse.model_validate(notification)


def get_notification_service(
    db: Session = Depends(get_sync_session),
) -> NotificationService:
    """Dependency to provide NotificationService instance"""
    return NotificationService(db)
