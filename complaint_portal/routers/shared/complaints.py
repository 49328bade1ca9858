from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status

from complaint_portal.middlewares.auth_middleware import get_caller_context
from complaint_portal.schemas.complaint_schemas import CreateComplaintRequest
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.services.analytics_service import (
    AnalyticsService,
    get_analytics_service,
)
from complaint_portal.services.complaint_service import (
    ComplaintService,
    get_complaint_service,
)
from complaint_portal.utils.responses import ResponseBuilder

complaints_router = APIRouter()


@complaints_router.get(
    "",
    summary="List complaints",
    description="List complaints by studentId and/or categoryId within the caller's visibility, with counts by status.",
)
async def list_complaints(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    complaint_service: Annotated[ComplaintService, Depends(get_complaint_service)],
    student_id: Annotated[Optional[str], Query(alias="studentId")] = None,
    category_id: Annotated[Optional[str], Query(alias="categoryId")] = None,
):
    result = await complaint_service.list_complaints(caller, student_id, category_id)
    return ResponseBuilder.success(
        request=request,
        data=result.model_dump(by_alias=True),
        message=f"Retrieved {result.total_complaints} complaints",
    )


@complaints_router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Submit a complaint",
)
async def create_complaint(
    request: Request,
    body: CreateComplaintRequest,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    complaint_service: Annotated[ComplaintService, Depends(get_complaint_service)],
):
    complaint = await complaint_service.create_complaint(caller, body)
    return ResponseBuilder.success(
        request=request,
        data={"complaint": complaint.model_dump(by_alias=True)},
        message="Complaint submitted successfully",
        status_code=status.HTTP_201_CREATED,
    )


@complaints_router.get("/summary", summary="Complaint totals for a student")
async def complaint_summary(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    analytics_service: Annotated[AnalyticsService, Depends(get_analytics_service)],
    student_id: Annotated[Optional[str], Query(alias="studentId")] = None,
):
    summary = await analytics_service.complaint_summary(caller, student_id)
    return ResponseBuilder.success(
        request=request,
        data=summary.model_dump(by_alias=True),
        message="Complaint summary retrieved",
    )


@complaints_router.get(
    "/bar-chart-stats", summary="Monthly complaint counts for a student"
)
async def bar_chart_stats(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    analytics_service: Annotated[AnalyticsService, Depends(get_analytics_service)],
    student_id: Annotated[Optional[str], Query(alias="studentId")] = None,
):
    buckets = await analytics_service.bar_chart_stats(caller, student_id)
    return ResponseBuilder.success(
        request=request,
        data={"months": [bucket.model_dump(by_alias=True) for bucket in buckets]},
        message=(
            "Monthly statistics retrieved"
            if buckets
            else "No complaints found for this student"
        ),
    )


@complaints_router.get("/{complaint_id}", summary="Get a complaint")
async def get_complaint(
    request: Request,
    complaint_id: Annotated[str, Path(description="Complaint ID")],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    complaint_service: Annotated[ComplaintService, Depends(get_complaint_service)],
):
    complaint = await complaint_service.get_complaint(caller, complaint_id)
    return ResponseBuilder.success(
        request=request,
        data={"complaint": complaint.model_dump(by_alias=True)},
        message="Complaint retrieved successfully",
    )
