from fastapi import APIRouter

from complaint_portal.routers.admin import admin_router
from complaint_portal.routers.student import student_router
from complaint_portal.routers.shared import shared_router

main_router = APIRouter()

# Include domain-based routers
main_router.include_router(admin_router, prefix="/admin", tags=["Admin"])
main_router.include_router(student_router, prefix="/student", tags=["Student"])
main_router.include_router(shared_router, tags=["Shared Services"])
