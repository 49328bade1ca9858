from typing import Annotated

from fastapi import APIRouter, Depends, Path, Request

from complaint_portal.middlewares.auth_middleware import get_caller_context
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.services.notification_service import (
    NotificationService,
    get_notification_service,
)
from complaint_portal.utils.responses import ResponseBuilder

notifications_router = APIRouter()


@notifications_router.get("")
async def get_notifications(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    notification_service: Annotated[
        NotificationService, Depends(get_notification_service)
    ],
):
    """Latest notifications of the current user, newest first"""
    notifications = await notification_service.list_for_caller(caller)
    return ResponseBuilder.success(
        request=request,
        data={
            "notifications": [n.model_dump(by_alias=True) for n in notifications],
            "unreadCount": sum(1 for n in notifications if not n.is_read),
        },
        message=f"Retrieved {len(notifications)} notifications",
    )


@notifications_router.patch("/{notification_id}/read")
async def mark_notification_as_read(
    request: Request,
    notification_id: Annotated[str, Path(description="Notification ID")],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    notification_service: Annotated[
        NotificationService, Depends(get_notification_service)
    ],
):
    """Mark one of the current user's notifications as read"""
    notification = await notification_service.mark_read(caller, notification_id)
    return ResponseBuilder.success(
        request=request,
        data={"notification": notification.model_dump(by_alias=True)},
        message="Notification marked as read",
    )
