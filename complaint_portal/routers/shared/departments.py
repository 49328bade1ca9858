from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from complaint_portal.middlewares.auth_middleware import get_caller_context
from complaint_portal.schemas.registry_schemas import CreateDepartmentRequest
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.services.department_service import (
    DepartmentService,
    get_department_service,
)
from complaint_portal.utils.responses import ResponseBuilder

departments_router = APIRouter()


@departments_router.get("", summary="List the organization's departments")
async def list_departments(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    department_service: Annotated[DepartmentService, Depends(get_department_service)],
):
    departments = await department_service.list_departments(caller)
    return ResponseBuilder.success(
        request=request,
        data={"departments": [d.model_dump(by_alias=True) for d in departments]},
        message=f"Retrieved {len(departments)} departments",
    )


@departments_router.post(
    "", status_code=status.HTTP_201_CREATED, summary="Create a department"
)
async def create_department(
    request: Request,
    body: CreateDepartmentRequest,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    department_service: Annotated[DepartmentService, Depends(get_department_service)],
):
    department = await department_service.create_department(caller, body)
    return ResponseBuilder.success(
        request=request,
        data={"department": department.model_dump(by_alias=True)},
        message="Department created successfully",
        status_code=status.HTTP_201_CREATED,
    )
