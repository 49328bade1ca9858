from typing import Annotated, Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    Path,
    Query,
    Request,
    UploadFile,
    status,
)

from complaint_portal.middlewares.auth_middleware import get_caller_context
from complaint_portal.schemas.chat_schemas import UpdateMessageStatusRequest
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.services.chat_service import ChatService, get_chat_service
from complaint_portal.utils.responses import ResponseBuilder

chat_router = APIRouter()


@chat_router.get("/messages", summary="Messages of a complaint conversation")
async def list_messages(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
    complaint_id: Annotated[str, Query(alias="complaintId")],
):
    messages = await chat_service.list_messages(caller, complaint_id)
    return ResponseBuilder.success(
        request=request,
        data={"messages": [m.model_dump(by_alias=True) for m in messages]},
        message=f"Retrieved {len(messages)} messages",
    )


@chat_router.post(
    "/messages",
    status_code=status.HTTP_201_CREATED,
    summary="Send a message",
    description="Multipart form: message text and/or a file. Without complaintId the latest complaint shared with the receiver is used.",
)
async def send_message(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
    message: Annotated[Optional[str], Form()] = None,
    complaint_id: Annotated[Optional[str], Form(alias="complaintId")] = None,
    receiver_id: Annotated[Optional[str], Form(alias="receiverId")] = None,
    file: Annotated[Optional[UploadFile], File()] = None,
):
    sent = await chat_service.send_message(
        caller,
        complaint_id=complaint_id,
        receiver_id=receiver_id,
        text=message,
        upload=file,
    )
    return ResponseBuilder.success(
        request=request,
        data={"message": sent.model_dump(by_alias=True)},
        message="Message sent",
        status_code=status.HTTP_201_CREATED,
    )


@chat_router.patch(
    "/messages/read-all", summary="Mark a conversation as read"
)
async def mark_conversation_read(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
    complaint_id: Annotated[str, Query(alias="complaintId")],
):
    updated = await chat_service.mark_conversation_read(caller, complaint_id)
    return ResponseBuilder.success(
        request=request,
        data={"updated": updated},
        message=f"{updated} messages marked as read",
    )


@chat_router.patch(
    "/messages/{message_id}/status",
    summary="Advance a message's delivery status",
    description="Only the receiver may update; statuses never move backwards and repeating a status is a no-op.",
)
async def update_message_status(
    request: Request,
    body: UpdateMessageStatusRequest,
    message_id: Annotated[str, Path(description="Message ID")],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
):
    updated = await chat_service.advance_status(caller, message_id, body.status)
    return ResponseBuilder.success(
        request=request,
        data={"message": updated.model_dump(by_alias=True)},
        message="Message status updated",
    )
