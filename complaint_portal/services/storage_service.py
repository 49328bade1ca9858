from typing import Dict, Optional

import cloudinary
import cloudinary.uploader
from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from complaint_portal.config.settings import settings
from complaint_portal.utils.errors import StorageError, ValidationFailedError
from complaint_portal.utils.logging import get_logger

logger = get_logger()


class StorageService:
    """Uploads user media to Cloudinary and returns the hosted URL"""

    def __init__(self):
        cloudinary.config(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            secure=True,
        )

    async def upload(
        self,
        file: UploadFile,
        folder: str,
        error_code: str = "UPLOAD_FAILED",
    ) -> Dict[str, Optional[str]]:
        """
        Upload a file into `folder`.

        Raises:
            ValidationFailedError: the file is empty
            StorageError: the storage provider rejected or failed the upload
        """
        contents = await file.read()
        if not contents:
            raise ValidationFailedError("Uploaded file is empty", "EMPTY_FILE")

        try:
            # The Cloudinary SDK is blocking
            result = await run_in_threadpool(
                cloudinary.uploader.upload,
                contents,
                folder=folder,
                resource_type="auto",
            )
        except Exception as e:
            logger.error(f"Cloudinary upload of '{file.filename}' failed: {e}")
            raise StorageError("File upload failed", error_code)

        logger.info(f"Uploaded '{file.filename}' to {folder}")
        return {
            "url": result["secure_url"],
            "public_id": result.get("public_id"),
            "file_name": file.filename,
        }

    async def delete(self, public_id: Optional[str]) -> bool:
        """Remove an uploaded asset. Returns False when the provider refuses."""
        if not public_id:
            return False
        try:
            result = await run_in_threadpool(
                cloudinary.uploader.destroy, public_id, invalidate=True
            )
        except Exception as e:
            logger.error(f"Cloudinary delete of '{public_id}' failed: {e}")
            return False

        deleted = result.get("result") == "ok"
        if not deleted:
            logger.warning(f"Cloudinary did not delete '{public_id}': {result}")
        return deleted
