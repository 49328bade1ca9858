from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from complaint_portal.middlewares.auth_middleware import (
    get_caller_context,
    get_provider_identity,
)
from complaint_portal.schemas.auth_schemas import (
    SyncUserRequest,
    TwoFactorTokenRequest,
)
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.services.identity_service import (
    IdentityService,
    get_identity_service,
)
from complaint_portal.services.two_factor_service import (
    TwoFactorService,
    get_two_factor_service,
)
from complaint_portal.utils.auth import ProviderIdentity
from complaint_portal.utils.responses import ResponseBuilder

auth_router = APIRouter()


@auth_router.post(
    "/sync-user",
    status_code=status.HTTP_200_OK,
    summary="Sync the signed-in user",
    description="Return the local user of the verified session, provisioning it and its student/admin profile on first sign-in.",
)
async def sync_user(
    request: Request,
    identity: Annotated[ProviderIdentity, Depends(get_provider_identity)],
    identity_service: Annotated[IdentityService, Depends(get_identity_service)],
    body: SyncUserRequest = SyncUserRequest(),
):
    user = await identity_service.sync_user(identity, body)
    return ResponseBuilder.success(
        request=request,
        data={"user": user.model_dump(by_alias=True)},
        message="User synced successfully",
    )


@auth_router.get("/me", summary="Get the current user")
async def get_me(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    identity_service: Annotated[IdentityService, Depends(get_identity_service)],
):
    user = await identity_service.get_user(caller.user_id)
    return ResponseBuilder.success(
        request=request,
        data={"user": user.model_dump(by_alias=True)},
        message="User retrieved successfully",
    )


@auth_router.post("/2fa/enable", summary="Start two-factor enrolment")
async def enable_two_factor(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    two_factor_service: Annotated[TwoFactorService, Depends(get_two_factor_service)],
):
    """Returns the TOTP secret and a QR code to scan with an authenticator app"""
    setup = await two_factor_service.enable(caller)
    return ResponseBuilder.success(
        request=request,
        data=setup.model_dump(by_alias=True),
        message="Scan this QR code with your authenticator app.",
    )


@auth_router.post("/2fa/verify", summary="Verify a TOTP code")
async def verify_two_factor(
    request: Request,
    body: TwoFactorTokenRequest,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    two_factor_service: Annotated[TwoFactorService, Depends(get_two_factor_service)],
):
    await two_factor_service.verify(caller, body.token)
    return ResponseBuilder.success(
        request=request,
        data={"twoFactorEnabled": True},
        message="2FA verified successfully",
    )


@auth_router.post("/2fa/disable", summary="Turn two-factor authentication off")
async def disable_two_factor(
    request: Request,
    body: TwoFactorTokenRequest,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    two_factor_service: Annotated[TwoFactorService, Depends(get_two_factor_service)],
):
    await two_factor_service.disable(caller, body.token)
    return ResponseBuilder.success(
        request=request,
        data={"twoFactorEnabled": False},
        message="2FA disabled successfully",
    )
