from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from complaint_portal.db.models import UserSettings
from complaint_portal.db.session import get_sync_session
from complaint_portal.schemas.settings_schemas import (
    UpdateUserSettingsRequest,
    UserPreferences,
)
from complaint_portal.services.access_policy import Action, CallerContext, authorize
from complaint_portal.utils.errors import DatabaseError
from complaint_portal.utils.logging import get_logger

logger = get_logger()


class UserSettingsService:
    """Notification, privacy and accessibility preferences of the caller"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def _load(self, user_id: str) -> UserPreferences:
        row = self.db.get(UserSettings, user_id)
        if row is None:
            return UserPreferences()
        return UserPreferences.model_validate_json(row.settings)

    async def get_settings(self, caller: CallerContext) -> UserPreferences:
        """Stored settings, or the defaults for a user who never saved any"""
        authorize(caller, Action.MANAGE_PROFILE)
        return self._load(caller.user_id)

    async def update_settings(
        self, caller: CallerContext, request: UpdateUserSettingsRequest
    ) -> UserPreferences:
        authorize(caller, Action.MANAGE_PROFILE)

        merged = self._load(caller.user_id).model_dump()
        changes = request.settings.model_dump(exclude_unset=True)
        for section, values in changes.items():
            merged[section].update(values)
        preferences = UserPreferences.model_validate(merged)

        try:
            row = self.db.get(UserSettings, caller.user_id)
            if row is None:
                row = UserSettings(user_id=caller.user_id)
                self.db.add(row)
            row.settings = preferences.model_dump_json(by_alias=True)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save settings of user {caller.user_id}: {e}")
            raise DatabaseError("Failed to update settings", "SETTINGS_UPDATE_FAILED")

        return preferences


def get_user_settings_service(
    db: Session = Depends(get_sync_session),
) -> UserSettingsService:
    """Dependency to provide UserSettingsService instance"""
    return UserSettingsService(db)
