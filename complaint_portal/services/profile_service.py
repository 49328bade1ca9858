from typing import Optional

from fastapi import Depends, UploadFile
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from complaint_portal.config.settings import settings
from complaint_portal.db.models import User
from complaint_portal.db.session import get_sync_session
from complaint_portal.schemas.profile_schemas import (
    AdminProfileResponse,
    ProfileResponse,
    ProfileUpdate,
    StudentProfileResponse,
)
from complaint_portal.services.access_policy import Action, CallerContext, authorize
from complaint_portal.services.storage_service import StorageService
from complaint_portal.utils.errors import DatabaseError, NotFoundError
from complaint_portal.utils.logging import get_logger

logger = get_logger()

STUDENT_ONLY_FIELDS = ("level", "matric_no")


class ProfileService:
    def __init__(self, db_session: Session, storage: Optional[StorageService] = None):
        self.db = db_session
        self._storage = storage

    @property
    def storage(self) -> StorageService:
        if self._storage is None:
            self._storage = StorageService()
        return self._storage

    def _load_user(self, caller: CallerContext) -> User:
        stmt = (
            select(User)
            .where(User.id == caller.user_id)
            .options(selectinload(User.student), selectinload(User.admin))
        )
        user = self.db.execute(stmt).scalar_one_or_none()
        if not user:
            raise NotFoundError("User not found", "USER_NOT_FOUND")
        return user

    async def get_profile(self, caller: CallerContext) -> ProfileResponse:
        authorize(caller, Action.MANAGE_PROFILE)
        return self._create_profile_response(self._load_user(caller))

    async def update_profile(
        self,
        caller: CallerContext,
        update: ProfileUpdate,
        image: Optional[UploadFile] = None,
    ) -> ProfileResponse:
        """
        Update the caller's profile and, optionally, their picture.

        The image goes to storage first. An upload failure surfaces as
        StorageError and leaves the database untouched; a failed write
        removes the uploaded image again and surfaces as DatabaseError.
        """
        authorize(caller, Action.MANAGE_PROFILE)
        user = self._load_user(caller)

        image_url = public_id = None
        if image is not None:
            uploaded = await self.storage.upload(
                image, settings.CLOUDINARY_AVATAR_FOLDER, "IMAGE_UPLOAD_FAILED"
            )
            image_url = uploaded["url"]
            public_id = uploaded.get("public_id")

        changes = update.model_dump(exclude_none=True)

        try:
            if "full_name" in changes:
                user.name = changes["full_name"]
            if image_url:
                user.profile_image_url = image_url

            if user.student:
                for field, value in changes.items():
                    setattr(user.student, field, value)
            elif user.admin:
                for field, value in changes.items():
                    if field not in STUDENT_ONLY_FIELDS:
                        setattr(user.admin, field, value)
                if image_url:
                    user.admin.avatar_url = image_url

            self.db.commit()
            self.db.refresh(user)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update profile of user {user.id}: {e}")
            if public_id:
                await self.storage.delete(public_id)
            raise DatabaseError("Failed to update profile", "PROFILE_UPDATE_FAILED")

        logger.info(f"Updated profile of user {user.id}")
        return self._create_profile_response(user)

    @staticmethod
    def _create_profile_response(user: User) -> ProfileResponse:
        return ProfileResponse(
            user_id=user.id,
            email=user.email,
            name=user.name,
            role=user.role.value,
            profile_image_url=user.profile_image_url,
            student=(
                StudentProfileResponse.model_validate(user.student)
                if user.student
                else None
            ),
            admin=(
                AdminProfileResponse.model_validate(user.admin) if user.admin else None
            ),
        )


def get_profile_service(
    db: Session = Depends(get_sync_session),
) -> ProfileService:
    """Dependency to provide ProfileService instance"""
    return ProfileService(db)
