from fastapi import APIRouter, Depends

from complaint_portal.middlewares.auth_middleware import require_staff

from .complaints import complaints_router
from .students import students_router
from .analytics import analytics_router
from .chat import chat_router
from .activity import activity_router
from .broadcast import broadcast_router
from .admins import admins_router

admin_router = APIRouter(dependencies=[Depends(require_staff)])

# Include sub-routers
admin_router.include_router(
    complaints_router, prefix="/complaints", tags=["Admin - Complaint Management"]
)
admin_router.include_router(
    students_router, prefix="/students", tags=["Admin - Student Management"]
)
admin_router.include_router(analytics_router, tags=["Admin - Analytics"])
admin_router.include_router(chat_router, prefix="/chat", tags=["Admin - Chat"])
admin_router.include_router(
    activity_router, prefix="/activity", tags=["Admin - Activity Log"]
)
admin_router.include_router(
    broadcast_router, prefix="/broadcast", tags=["Admin - Broadcast"]
)
admin_router.include_router(admins_router, prefix="/list", tags=["Admin - Directory"])
