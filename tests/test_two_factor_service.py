import pyotp
import pytest

from complaint_portal.db.models import User
from complaint_portal.services.two_factor_service import (
    TwoFactorService,
    generate_qr_code,
)
from complaint_portal.utils.errors import BusinessLogicError, ConflictError


def test_generate_qr_code_is_png_data_url():
    assert generate_qr_code("otpauth://totp/demo").startswith(
        "data:image/png;base64,"
    )


class TestTwoFactor:
    @pytest.mark.asyncio
    async def test_enable_then_verify(self, db_session, caller_for, student_user):
        service = TwoFactorService(db_session)
        caller = caller_for(student_user)

        setup = await service.enable(caller)

        user = db_session.get(User, student_user.id)
        assert user.two_factor_secret == setup.secret
        assert user.two_factor_enabled is False
        assert setup.otpauth_uri.startswith("otpauth://totp/")

        assert await service.verify(caller, pyotp.TOTP(setup.secret).now()) is True
        assert user.two_factor_enabled is True

    @pytest.mark.asyncio
    async def test_wrong_token(self, db_session, caller_for, student_user):
        service = TwoFactorService(db_session)
        caller = caller_for(student_user)
        setup = await service.enable(caller)
        wrong = "000000" if pyotp.TOTP(setup.secret).now() != "000000" else "111111"

        with pytest.raises(BusinessLogicError) as exc_info:
            await service.verify(caller, wrong)
        assert exc_info.value.error_code == "INVALID_TWO_FACTOR_TOKEN"

    @pytest.mark.asyncio
    async def test_verify_before_enable(self, db_session, caller_for, student_user):
        with pytest.raises(BusinessLogicError) as exc_info:
            await TwoFactorService(db_session).verify(
                caller_for(student_user), "123456"
            )
        assert exc_info.value.error_code == "TWO_FACTOR_NOT_SETUP"

    @pytest.mark.asyncio
    async def test_disable(self, db_session, caller_for, student_user):
        service = TwoFactorService(db_session)
        caller = caller_for(student_user)
        setup = await service.enable(caller)
        totp = pyotp.TOTP(setup.secret)
        await service.verify(caller, totp.now())

        await service.disable(caller, totp.now())

        user = db_session.get(User, student_user.id)
        assert user.two_factor_enabled is False
        assert user.two_factor_secret is None

    @pytest.mark.asyncio
    async def test_enable_refused_while_active(
        self, db_session, caller_for, student_user
    ):
        service = TwoFactorService(db_session)
        caller = caller_for(student_user)
        setup = await service.enable(caller)
        await service.verify(caller, pyotp.TOTP(setup.secret).now())

        with pytest.raises(ConflictError) as exc_info:
            await service.enable(caller)
        assert exc_info.value.error_code == "TWO_FACTOR_ALREADY_ENABLED"

        user = db_session.get(User, student_user.id)
        assert user.two_factor_enabled is True
        assert user.two_factor_secret == setup.secret
