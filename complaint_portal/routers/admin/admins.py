from typing import Annotated

from fastapi import APIRouter, Depends, Request

from complaint_portal.middlewares.auth_middleware import get_caller_context
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.services.organization_service import (
    OrganizationService,
    get_organization_service,
)
from complaint_portal.utils.responses import ResponseBuilder

admins_router = APIRouter()


@admins_router.get("", summary="Admins of the caller's organization")
async def list_admins(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    organization_service: Annotated[
        OrganizationService, Depends(get_organization_service)
    ],
):
    admins = await organization_service.list_admins(caller)
    return ResponseBuilder.success(
        request=request,
        data={"admins": [a.model_dump(by_alias=True) for a in admins]},
        message=f"Retrieved {len(admins)} admins",
    )
