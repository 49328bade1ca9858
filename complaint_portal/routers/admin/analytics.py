from typing import Annotated

from fastapi import APIRouter, Depends, Request

from complaint_portal.middlewares.auth_middleware import get_caller_context
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.services.analytics_service import (
    AnalyticsService,
    get_analytics_service,
)
from complaint_portal.utils.responses import ResponseBuilder

analytics_router = APIRouter()


@analytics_router.get("/analytics", summary="Organization analytics")
async def get_analytics(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    analytics_service: Annotated[AnalyticsService, Depends(get_analytics_service)],
):
    analytics = await analytics_service.admin_analytics(caller)
    return ResponseBuilder.success(
        request=request,
        data=analytics.model_dump(by_alias=True),
        message="Analytics retrieved successfully",
    )


@analytics_router.get("/dashboard", summary="Admin dashboard")
async def get_dashboard(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    analytics_service: Annotated[AnalyticsService, Depends(get_analytics_service)],
):
    """Stats, the five latest complaints and a trailing 12-month chart"""
    dashboard = await analytics_service.admin_dashboard(caller)
    return ResponseBuilder.success(
        request=request,
        data=dashboard.model_dump(by_alias=True),
        message="Dashboard retrieved successfully",
    )
