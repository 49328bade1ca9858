import pytest

from complaint_portal.db.models import UserSettings
from complaint_portal.schemas.settings_schemas import UpdateUserSettingsRequest
from complaint_portal.services.user_settings_service import UserSettingsService


class TestUserSettingsService:
    @pytest.mark.asyncio
    async def test_defaults_before_first_save(
        self, db_session, caller_for, student_user
    ):
        preferences = await UserSettingsService(db_session).get_settings(
            caller_for(student_user)
        )

        assert preferences.notification_preferences.email_status_updates is True
        assert preferences.privacy.data_retention == "1_year"
        assert preferences.accessibility.font_size == "medium"
        assert db_session.get(UserSettings, student_user.id) is None

    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_values(
        self, db_session, caller_for, student_user
    ):
        service = UserSettingsService(db_session)
        caller = caller_for(student_user)

        await service.update_settings(
            caller,
            UpdateUserSettingsRequest.model_validate(
                {"settings": {"accessibility": {"highContrast": True}}}
            ),
        )
        await service.update_settings(
            caller,
            UpdateUserSettingsRequest.model_validate(
                {"settings": {"privacy": {"dataRetention": "forever"}}}
            ),
        )

        preferences = await UserSettingsService(db_session).get_settings(caller)
        assert preferences.accessibility.high_contrast is True
        assert preferences.accessibility.font_size == "medium"
        assert preferences.privacy.data_retention == "forever"
        assert preferences.privacy.analytics_consent is True


class TestUserSettingsApi:
    def test_update_then_read(self, client, auth_headers, admin_user):
        headers = auth_headers(admin_user)

        response = client.put(
            "/api/settings",
            json={"settings": {"notificationPreferences": {"emailMessages": False}}},
            headers=headers,
        )
        assert response.status_code == 200

        current = client.get("/api/settings", headers=headers)
        assert current.status_code == 200
        notifications = current.json()["data"]["settings"]["notificationPreferences"]
        assert notifications == {
            "emailStatusUpdates": True,
            "emailMessages": False,
            "inappBroadcasts": True,
        }

    def test_unknown_choice_rejected(self, client, auth_headers, student_user):
        response = client.put(
            "/api/settings",
            json={"settings": {"accessibility": {"fontSize": "huge"}}},
            headers=auth_headers(student_user),
        )

        assert response.status_code == 400
        assert response.json()["meta"]["error_code"] == "VALIDATION_ERROR"

    def test_settings_body_required(self, client, auth_headers, student_user):
        response = client.put(
            "/api/settings", json={}, headers=auth_headers(student_user)
        )

        assert response.status_code == 400
