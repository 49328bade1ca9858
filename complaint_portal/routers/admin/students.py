from typing import Annotated

from fastapi import APIRouter, Depends, Path, Request

from complaint_portal.middlewares.auth_middleware import get_caller_context
from complaint_portal.schemas.student_schemas import UpdateStudentStatusRequest
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.services.student_service import (
    StudentService,
    get_student_service,
)
from complaint_portal.utils.responses import ResponseBuilder

students_router = APIRouter()


@students_router.get("", summary="Students within the caller's reach")
async def list_students(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    student_service: Annotated[StudentService, Depends(get_student_service)],
):
    students = await student_service.list_students(caller)
    return ResponseBuilder.success(
        request=request,
        data={"students": [s.model_dump(by_alias=True) for s in students]},
        message=f"Retrieved {len(students)} students",
    )


@students_router.patch("/{student_id}", summary="Suspend or reactivate a student")
async def update_student_status(
    request: Request,
    body: UpdateStudentStatusRequest,
    student_id: Annotated[str, Path(description="Student ID")],
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    student_service: Annotated[StudentService, Depends(get_student_service)],
):
    student = await student_service.update_status(caller, student_id, body.status)
    return ResponseBuilder.success(
        request=request,
        data={"student": student.model_dump(by_alias=True)},
        message="Student status updated",
    )
