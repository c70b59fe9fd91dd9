"""
用户服务测试：登录、注册
"""
import pytest
from pydantic import ValidationError

from keycard.models.ontology import UserRole
from keycard.models.schemas import GuestSignupRequest, UserCreate
from keycard.security.auth import decode_token
from keycard.services.user_service import UserService


def _signup(email="carol@example.com", password="secret1"):
    return GuestSignupRequest(email=email, password=password, first_name="Carol", last_name="King")


class TestSignup:

    def test_guest_signup_uses_email_as_username(self, db_session):
        user = UserService(db_session).guest_signup(_signup(email="Carol@Example.com"))
        assert user.username == "carol@example.com"
        assert user.email == "carol@example.com"
        assert user.role == UserRole.GUEST
        assert user.full_name == "Carol King"

    def test_duplicate_email_rejected(self, db_session):
        service = UserService(db_session)
        service.guest_signup(_signup())
        with pytest.raises(ValueError):
            service.guest_signup(_signup())

    def test_invalid_email_rejected(self):
        with pytest.raises(ValidationError):
            _signup(email="no-at-sign")

    def test_short_password_rejected(self):
        with pytest.raises(ValidationError):
            _signup(password="123")

    def test_admin_creates_staff(self, db_session):
        user = UserService(db_session).admin_create_user(UserCreate(
            username="front2", email="front2@keycard.test", password="123456",
            first_name="Fay", role=UserRole.FRONT_DESK
        ))
        assert user.role == UserRole.FRONT_DESK
        assert user.full_name == "Fay"

    def test_admin_duplicate_username(self, db_session, front_desk_user):
        with pytest.raises(ValueError):
            UserService(db_session).admin_create_user(UserCreate(
                username="front1", email="other@keycard.test", password="123456",
                first_name="Fay", role=UserRole.FRONT_DESK
            ))


class TestAuthenticate:

    def test_login_by_username(self, db_session, front_desk_user):
        result = UserService(db_session).authenticate("front1", "123456")
        assert result["token_type"] == "bearer"
        assert result["user"].id == front_desk_user.id
        payload = decode_token(result["access_token"])
        assert payload["sub"] == str(front_desk_user.id)
        assert payload["role"] == "FrontDesk"

    def test_login_by_email(self, db_session, sample_guest):
        result = UserService(db_session).authenticate("ALICE@example.com", "123456")
        assert result["user"].id == sample_guest.id

    def test_wrong_password(self, db_session, front_desk_user):
        assert UserService(db_session).authenticate("front1", "wrong") is None

    def test_unknown_user(self, db_session):
        assert UserService(db_session).authenticate("ghost", "123456") is None

    def test_inactive_user(self, db_session, front_desk_user):
        front_desk_user.is_active = False
        db_session.commit()
        with pytest.raises(ValueError):
            UserService(db_session).authenticate("front1", "123456")
