from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Request, status

from complaint_portal.middlewares.auth_middleware import get_caller_context
from complaint_portal.schemas.registry_schemas import (
    AssignCategoryAdminRequest,
    CreateCategoryRequest,
)
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.services.category_service import (
    CategoryService,
    get_category_service,
)
from complaint_portal.utils.responses import ResponseBuilder

categories_router = APIRouter()


@categories_router.get("", summary="List the organization's categories")
async def list_categories(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    category_service: Annotated[CategoryService, Depends(get_category_service)],
    include_admins: Annotated[bool, Query(alias="includeAdmins")] = False,
):
    categories = await category_service.list_categories(caller, include_admins)
    return ResponseBuilder.success(
        request=request,
        data={"categories": [c.model_dump(by_alias=True) for c in categories]},
        message=f"Retrieved {len(categories)} categories",
    )


@categories_router.post(
    "", status_code=status.HTTP_201_CREATED, summary="Create a category"
)
async def create_category(
    request: Request,
    body: CreateCategoryRequest,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    category_service: Annotated[CategoryService, Depends(get_category_service)],
):
    category = await category_service.create_category(caller, body)
    return ResponseBuilder.success(
        request=request,
        data={"category": category.model_dump(by_alias=True)},
        message="Category created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@categories_router.patch(
    "",
    summary="Assign a category admin",
    description="Assign the admin responsible for a category, or pass adminId null to unassign. Existing complaints keep their assigned admin.",
)
async def assign_category_admin(
    request: Request,
    body: AssignCategoryAdminRequest,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    category_service: Annotated[CategoryService, Depends(get_category_service)],
):
    category = await category_service.assign_admin(caller, body)
    return ResponseBuilder.success(
        request=request,
        data={"category": category.model_dump(by_alias=True)},
        message="Category updated successfully",
    )


@categories_router.delete("/{category_id}", summary="Delete a category")
async def delete_category(
    request: Request,
    category_id: Annotated[str, Path(description="Category ID to delete")],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    category_service: Annotated[CategoryService, Depends(get_category_service)],
):
    detached = await category_service.delete_category(caller, category_id)
    return ResponseBuilder.success(
        request=request,
        data={"detachedComplaints": detached},
        message="Category deleted successfully",
    )
