import io

import cloudinary.uploader
import pytest
from fastapi import UploadFile
from sqlalchemy.exc import OperationalError

from complaint_portal.schemas.profile_schemas import ProfileUpdate
from complaint_portal.services.profile_service import ProfileService
from complaint_portal.services.storage_service import StorageService
from complaint_portal.utils.errors import (
    DatabaseError,
    StorageError,
    ValidationFailedError,
)


def _upload(data: bytes = b"image-bytes", filename: str = "me.png") -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=filename)


@pytest.fixture
def fake_cloudinary(monkeypatch):
    """Replace the Cloudinary uploader and record its calls."""
    calls = []

    def fake_upload(data, **options):
        calls.append((data, options))
        return {
            "secure_url": f"https://res.cloudinary.com/demo/{options['folder']}/x.png",
            "public_id": f"{options['folder']}/x",
        }

    monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)
    return calls


@pytest.fixture
def failing_cloudinary(monkeypatch):
    def fake_upload(data, **options):
        raise RuntimeError("cloudinary is down")

    monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)


class TestStorageService:
    @pytest.mark.asyncio
    async def test_upload_returns_secure_url(self, fake_cloudinary):
        result = await StorageService().upload(_upload(), "avatars")

        assert result["url"] == "https://res.cloudinary.com/demo/avatars/x.png"
        assert result["file_name"] == "me.png"
        data, options = fake_cloudinary[0]
        assert data == b"image-bytes"
        assert options == {"folder": "avatars", "resource_type": "auto"}

    @pytest.mark.asyncio
    async def test_empty_file(self, fake_cloudinary):
        with pytest.raises(ValidationFailedError):
            await StorageService().upload(_upload(b""), "avatars")
        assert fake_cloudinary == []

    @pytest.mark.asyncio
    async def test_provider_failure_uses_given_code(self, failing_cloudinary):
        with pytest.raises(StorageError) as exc_info:
            await StorageService().upload(_upload(), "avatars", "IMAGE_UPLOAD_FAILED")
        assert exc_info.value.error_code == "IMAGE_UPLOAD_FAILED"
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_delete_asset(self, monkeypatch):
        destroyed = []

        def fake_destroy(public_id, **options):
            destroyed.append((public_id, options))
            return {"result": "ok"}

        monkeypatch.setattr(cloudinary.uploader, "destroy", fake_destroy)

        assert await StorageService().delete("avatars/x") is True
        assert destroyed == [("avatars/x", {"invalidate": True})]

    @pytest.mark.asyncio
    async def test_delete_failure_is_reported_not_raised(self, monkeypatch):
        def fake_destroy(public_id, **options):
            raise RuntimeError("cloudinary is down")

        monkeypatch.setattr(cloudinary.uploader, "destroy", fake_destroy)

        assert await StorageService().delete("avatars/x") is False



class TestProfileService:
    @pytest.mark.asyncio
    async def test_student_updates_profile_and_picture(
        self, db_session, caller_for, student_user, fake_cloudinary
    ):
        profile = await ProfileService(db_session).update_profile(
            caller_for(student_user),
            ProfileUpdate(full_name="Samuel Student", level="400"),
            image=_upload(),
        )

        assert profile.name == "Samuel Student"
        assert profile.profile_image_url.endswith("/avatars/x.png")
        assert profile.student.full_name == "Samuel Student"
        assert profile.student.level == "400"

    @pytest.mark.asyncio
    async def test_admin_picture_is_also_the_avatar(
        self, db_session, caller_for, admin_user, fake_cloudinary
    ):
        profile = await ProfileService(db_session).update_profile(
            caller_for(admin_user),
            ProfileUpdate(phone="+234 800 000 0000", level="ignored"),
            image=_upload(),
        )

        assert profile.admin.avatar_url == profile.profile_image_url
        assert profile.admin.phone == "+234 800 000 0000"

    @pytest.mark.asyncio
    async def test_failed_upload_leaves_profile_untouched(
        self, db_session, caller_for, student_user, failing_cloudinary
    ):
        with pytest.raises(StorageError):
            await ProfileService(db_session).update_profile(
                caller_for(student_user),
                ProfileUpdate(full_name="Changed"),
                image=_upload(),
            )

        profile = await ProfileService(db_session).get_profile(caller_for(student_user))
        assert profile.name == "Sam Student"
        assert profile.profile_image_url is None

    @pytest.mark.asyncio
    async def test_failed_write_removes_uploaded_image(
        self, monkeypatch, db_session, caller_for, student_user, fake_cloudinary
    ):
        destroyed = []

        def fake_destroy(public_id, **options):
            destroyed.append(public_id)
            return {"result": "ok"}

        monkeypatch.setattr(cloudinary.uploader, "destroy", fake_destroy)

        def broken_commit():
            raise OperationalError("UPDATE", {}, Exception("disk full"))

        monkeypatch.setattr(db_session, "commit", broken_commit)

        with pytest.raises(DatabaseError) as exc_info:
            await ProfileService(db_session).update_profile(
                caller_for(student_user),
                ProfileUpdate(full_name="Changed"),
                image=_upload(),
            )
        assert exc_info.value.error_code == "PROFILE_UPDATE_FAILED"
        assert destroyed == ["avatars/x"]
