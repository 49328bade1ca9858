from fastapi import APIRouter, Depends

from complaint_portal.middlewares.auth_middleware import require_student

from .chat import chat_router

student_router = APIRouter(dependencies=[Depends(require_student)])

# Include sub-routers
student_router.include_router(chat_router, prefix="/chat", tags=["Student - Chat"])
