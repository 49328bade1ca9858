from typing import Annotated

from fastapi import APIRouter, Depends, Request

from complaint_portal.middlewares.auth_middleware import get_caller_context
from complaint_portal.schemas.settings_schemas import UpdateUserSettingsRequest
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.services.user_settings_service import (
    UserSettingsService,
    get_user_settings_service,
)
from complaint_portal.utils.responses import ResponseBuilder

settings_router = APIRouter()


@settings_router.get("", summary="Get the current user's settings")
async def get_settings(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    settings_service: Annotated[
        UserSettingsService, Depends(get_user_settings_service)
    ],
):
    preferences = await settings_service.get_settings(caller)
    return ResponseBuilder.success(
        request=request,
        data={"settings": preferences.model_dump(by_alias=True)},
        message="Settings retrieved successfully",
    )


@settings_router.put("", summary="Update the current user's settings")
async def update_settings(
    request: Request,
    body: UpdateUserSettingsRequest,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    settings_service: Annotated[
        UserSettingsService, Depends(get_user_settings_service)
    ],
):
    preferences = await settings_service.update_settings(caller, body)
    return ResponseBuilder.success(
        request=request,
        data={"settings": preferences.model_dump(by_alias=True)},
        message="Settings updated successfully",
    )
