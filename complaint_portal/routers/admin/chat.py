from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request

from complaint_portal.middlewares.auth_middleware import get_caller_context
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.services.chat_service import ChatService, get_chat_service
from complaint_portal.utils.responses import ResponseBuilder

chat_router = APIRouter()


@chat_router.get("/students", summary="Students the admin can chat with")
async def get_chat_students(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
):
    students = await chat_service.admin_chat_students(caller)
    return ResponseBuilder.success(
        request=request,
        data={"students": [s.model_dump(by_alias=True) for s in students]},
        message=f"Retrieved {len(students)} students",
    )


@chat_router.get("/complaints", summary="Complaints shared with a student")
async def get_chat_complaints(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
    student_id: Annotated[Optional[str], Query(alias="studentId")] = None,
):
    complaints = await chat_service.admin_chat_complaints(caller, student_id)
    return ResponseBuilder.success(
        request=request,
        data={"complaints": [c.model_dump(by_alias=True) for c in complaints]},
        message=f"Retrieved {len(complaints)} complaints",
    )
