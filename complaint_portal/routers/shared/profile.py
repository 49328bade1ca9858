from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from complaint_portal.middlewares.auth_middleware import get_caller_context
from complaint_portal.schemas.profile_schemas import ProfileUpdate
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.services.profile_service import (
    ProfileService,
    get_profile_service,
)
from complaint_portal.utils.responses import ResponseBuilder

profile_router = APIRouter()


@profile_router.get("", summary="Get the current user's profile")
async def get_profile(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    profile_service: Annotated[ProfileService, Depends(get_profile_service)],
):
    profile = await profile_service.get_profile(caller)
    return ResponseBuilder.success(
        request=request,
        data={"profile": profile.model_dump(by_alias=True)},
        message="Profile retrieved successfully",
    )


@profile_router.put(
    "",
    summary="Update the current user's profile",
    description="Multipart form with optional profile fields and an optional image file.",
)
async def update_profile(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    profile_service: Annotated[ProfileService, Depends(get_profile_service)],
    full_name: Annotated[Optional[str], Form(alias="fullName")] = None,
    phone: Annotated[Optional[str], Form()] = None,
    department: Annotated[Optional[str], Form()] = None,
    level: Annotated[Optional[str], Form()] = None,
    matric_no: Annotated[Optional[str], Form(alias="matricNo")] = None,
    image: Annotated[Optional[UploadFile], File()] = None,
):
    update = ProfileUpdate(
        full_name=full_name,
        phone=phone,
        department=department,
        level=level,
        matric_no=matric_no,
    )
    profile = await profile_service.update_profile(caller, update, image)
    return ResponseBuilder.success(
        request=request,
        data={"profile": profile.model_dump(by_alias=True)},
        message="Profile updated successfully",
    )
