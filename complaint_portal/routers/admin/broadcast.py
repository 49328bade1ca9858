from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from complaint_portal.middlewares.auth_middleware import get_caller_context
from complaint_portal.schemas.notification_schemas import BroadcastRequest
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.services.notification_service import (
    NotificationService,
    get_notification_service,
)
from complaint_portal.utils.responses import ResponseBuilder

broadcast_router = APIRouter()


@broadcast_router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Broadcast a notification",
    description="Send a notification to all admins, all students, or everyone in the organization.",
)
async def broadcast(
    request: Request,
    body: BroadcastRequest,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    notification_service: Annotated[
        NotificationService, Depends(get_notification_service)
    ],
):
    recipients = await notification_service.broadcast(caller, body)
    return ResponseBuilder.success(
        request=request,
        data={"recipients": recipients},
        message=f"Broadcast sent to {recipients} recipients",
        status_code=status.HTTP_201_CREATED,
    )
