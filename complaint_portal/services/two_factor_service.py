import base64
import io

import pyotp
import qrcode
from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from complaint_portal.config.settings import settings
from complaint_portal.db.models import User
from complaint_portal.db.session import get_sync_session
from complaint_portal.schemas.auth_schemas import TwoFactorSetupResponse
from complaint_portal.services.access_policy import CallerContext
from complaint_portal.utils.errors import (
    BusinessLogicError,
    ConflictError,
    DatabaseError,
    NotFoundError,
)
from complaint_portal.utils.logging import get_logger

logger = get_logger()


def generate_qr_code(data: str) -> str:
    """Render `data` as a QR code PNG data URL"""
    qr = qrcode.QRCode(version=1, box_size=10, border=5)
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    img_str = base64.b64encode(buffer.getvalue()).decode()

    return f"data:image/png;base64,{img_str}"


class TwoFactorService:
    """TOTP enrolment and verification for the current user"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def _get_user(self, caller: CallerContext) -> User:
        user = self.db.get(User, caller.user_id)
        if not user:
            raise NotFoundError("User not found", "USER_NOT_FOUND")
        return user

    def _commit(self, error_message: str):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"{error_message}: {e}")
            raise DatabaseError(error_message, "TWO_FACTOR_UPDATE_FAILED")

    async def enable(self, caller: CallerContext) -> TwoFactorSetupResponse:
        """Generate and store a fresh secret; 2FA turns on once a code is verified"""
        user = self._get_user(caller)
        if user.two_factor_enabled:
            raise ConflictError(
                "Two-factor authentication is already enabled",
                "TWO_FACTOR_ALREADY_ENABLED",
            )

        secret = pyotp.random_base32()
        uri = pyotp.TOTP(secret).provisioning_uri(
            name=user.email, issuer_name=settings.TOTP_ISSUER
        )

        user.two_factor_secret = secret
        user.two_factor_enabled = False
        self._commit("Failed to enable 2FA")

        return TwoFactorSetupResponse(
            secret=secret, otpauth_uri=uri, qr_code=generate_qr_code(uri)
        )

    def _verify_token(self, user: User, token: str):
        if not user.two_factor_secret:
            raise BusinessLogicError(
                "Two-factor authentication has not been set up", "TWO_FACTOR_NOT_SETUP"
            )
        totp = pyotp.TOTP(user.two_factor_secret)
        if not totp.verify(token, valid_window=settings.TOTP_VALID_WINDOW):
            raise BusinessLogicError("Invalid token", "INVALID_TWO_FACTOR_TOKEN")

    async def verify(self, caller: CallerContext, token: str) -> bool:
        user = self._get_user(caller)
        self._verify_token(user, token)

        if not user.two_factor_enabled:
            user.two_factor_enabled = True
            self._commit("Failed to verify 2FA")
            logger.info(f"Two-factor authentication enabled for user {user.id}")
        return True

    async def disable(self, caller: CallerContext, token: str) -> bool:
        user = self._get_user(caller)
        self._verify_token(user, token)

        user.two_factor_secret = None
        user.two_factor_enabled = False
        self._commit("Failed to disable 2FA")
        logger.info(f"Two-factor authentication disabled for user {user.id}")
        return True


def get_two_factor_service(
    db: Session = Depends(get_sync_session),
) -> TwoFactorService:
    """Dependency to provide TwoFactorService instance"""
    return TwoFactorService(db)
