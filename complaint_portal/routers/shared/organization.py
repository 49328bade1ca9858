from typing import Annotated

from fastapi import APIRouter, Depends, Request

from complaint_portal.middlewares.auth_middleware import get_caller_context
from complaint_portal.schemas.registry_schemas import UpdateOrganizationRequest
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.services.organization_service import (
    OrganizationService,
    get_organization_service,
)
from complaint_portal.utils.responses import ResponseBuilder

organization_router = APIRouter()


@organization_router.get("", summary="Get the caller's organization")
async def get_organization(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    organization_service: Annotated[
        OrganizationService, Depends(get_organization_service)
    ],
):
    organization = await organization_service.get_organization(caller)
    return ResponseBuilder.success(
        request=request,
        data={"organization": organization.model_dump(by_alias=True)},
        message="Organization retrieved successfully",
    )


@organization_router.patch("", summary="Update organization contact details")
async def update_organization(
    request: Request,
    body: UpdateOrganizationRequest,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    organization_service: Annotated[
        OrganizationService, Depends(get_organization_service)
    ],
):
    organization = await organization_service.update_organization(caller, body)
    return ResponseBuilder.success(
        request=request,
        data={"organization": organization.model_dump(by_alias=True)},
        message="Organization updated successfully",
    )
