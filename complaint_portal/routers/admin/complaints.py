from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Request

from complaint_portal.middlewares.auth_middleware import get_caller_context
from complaint_portal.schemas.complaint_schemas import UpdateComplaintStatusRequest
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.services.complaint_service import (
    ComplaintService,
    get_complaint_service,
)
from complaint_portal.utils.responses import ResponseBuilder

complaints_router = APIRouter()


@complaints_router.get(
    "",
    summary="Complaints routed to an admin",
    description="An admin sees complaints in the categories they own. A super-admin sees the organization, or one admin's queue with adminId.",
)
async def list_admin_complaints(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    complaint_service: Annotated[ComplaintService, Depends(get_complaint_service)],
    admin_id: Annotated[Optional[str], Query(alias="adminId")] = None,
):
    result = await complaint_service.list_admin_complaints(caller, admin_id)
    return ResponseBuilder.success(
        request=request,
        data=result.model_dump(by_alias=True),
        message=f"Retrieved {len(result.complaints)} complaints",
    )


@complaints_router.patch(
    "/{complaint_id}",
    summary="Update a complaint's status",
    description="Moves the complaint along PENDING -> IN_PROGRESS -> RESOLVED | REJECTED. Illegal transitions are rejected with 409.",
)
async def update_complaint_status(
    request: Request,
    body: UpdateComplaintStatusRequest,
    complaint_id: Annotated[str, Path(description="Complaint ID")],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    complaint_service: Annotated[ComplaintService, Depends(get_complaint_service)],
):
    complaint = await complaint_service.transition_status(
        caller, complaint_id, body.status
    )
    return ResponseBuilder.success(
        request=request,
        data={"complaint": complaint.model_dump(by_alias=True)},
        message="Complaint status updated",
    )
