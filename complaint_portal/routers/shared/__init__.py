from fastapi import APIRouter

from .auth import auth_router
from .health import health_router
from .notifications import notifications_router
from .complaints import complaints_router
from .categories import categories_router
from .departments import departments_router
from .organization import organization_router
from .chat import chat_router
from .profile import profile_router
from .settings import settings_router

shared_router = APIRouter()

# Include sub-routers
shared_router.include_router(
    auth_router, prefix="/auth", tags=["Shared - Authentication"]
)
shared_router.include_router(
    health_router, prefix="/health", tags=["Shared - Health Checks"]
)
shared_router.include_router(
    notifications_router, prefix="/notifications", tags=["Shared - Notifications"]
)
shared_router.include_router(
    complaints_router, prefix="/complaints", tags=["Shared - Complaints"]
)
shared_router.include_router(
    categories_router, prefix="/categories", tags=["Shared - Categories"]
)
shared_router.include_router(
    departments_router, prefix="/departments", tags=["Shared - Departments"]
)
shared_router.include_router(
    organization_router, prefix="/organization", tags=["Shared - Organization"]
)
shared_router.include_router(chat_router, prefix="/chat", tags=["Shared - Chat"])
shared_router.include_router(
    profile_router, prefix="/profile", tags=["Shared - Profile"]
)
shared_router.include_router(
    settings_router, prefix="/settings", tags=["Shared - Settings"]
)
