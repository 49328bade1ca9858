from typing import Annotated

from fastapi import APIRouter, Depends, Request

from complaint_portal.middlewares.auth_middleware import get_caller_context
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.services.chat_service import ChatService, get_chat_service
from complaint_portal.utils.responses import ResponseBuilder

chat_router = APIRouter()


@chat_router.get("/admins", summary="Admins the student can chat with")
async def get_chat_admins(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
):
    admins = await chat_service.student_chat_admins(caller)
    return ResponseBuilder.success(
        request=request,
        data={"admins": [a.model_dump(by_alias=True) for a in admins]},
        message=f"Retrieved {len(admins)} admins",
    )
