from typing import Annotated

from fastapi import APIRouter, Depends, Request

from complaint_portal.middlewares.auth_middleware import get_caller_context
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.services.activity_service import (
    ActivityService,
    get_activity_service,
)
from complaint_portal.utils.responses import ResponseBuilder

activity_router = APIRouter()


@activity_router.get("", summary="Recent activity in the organization")
async def get_activity(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    activity_service: Annotated[ActivityService, Depends(get_activity_service)],
):
    logs = await activity_service.list_recent(caller)
    return ResponseBuilder.success(
        request=request,
        data={"logs": [log.model_dump(by_alias=True) for log in logs]},
        message=f"Retrieved {len(logs)} activity entries",
    )
