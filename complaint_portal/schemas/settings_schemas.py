from typing import Literal
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PreferencesModel(BaseModel):
    """camelCase aliases; plain values only, so nested dumps keep exclude_unset"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NotificationPreferences(PreferencesModel):
    email_status_updates: bool = Field(
        True, description="Email when a complaint changes status"
    )
    email_messages: bool = Field(True, description="Email on new chat messages")
    inapp_broadcasts: bool = Field(True, description="Show organization broadcasts")


class PrivacySettings(PreferencesModel):
    analytics_consent: bool = True
    data_retention: Literal["6_months", "1_year", "forever"] = "1_year"


class AccessibilitySettings(PreferencesModel):
    font_size: Literal["small", "medium", "large"] = "medium"
    high_contrast: bool = False
    reduced_motion: bool = False


class UserPreferences(PreferencesModel):
    """Per-user settings; sections left out of an update keep their values"""

    notification_preferences: NotificationPreferences = Field(
        default_factory=NotificationPreferences
    )
    privacy: PrivacySettings = Field(default_factory=PrivacySettings)
    accessibility: AccessibilitySettings = Field(default_factory=AccessibilitySettings)


class UpdateUserSettingsRequest(PreferencesModel):
    settings: UserPreferences = Field(..., description="Settings to change")
