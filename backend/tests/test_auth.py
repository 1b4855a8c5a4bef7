"""AuthService tests"""

import pytest
from sqlalchemy import select

from app.errors import AuthError, AuthErrorCode, ValidationError
from app.models.trainer import Trainer
from app.services.auth import (
    FAILED_ATTEMPT_WINDOW_SECONDS,
    MAX_FAILED_ATTEMPTS,
    AuthService,
    hash_password,
    map_provider_error,
    verify_password,
)


class FakeClock:

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def auth(session_factory, clock) -> AuthService:
    service = AuthService(session_factory, clock=clock)
    service.register_trainer("coach@example.com", "s3cret-pass")
    return service


class TestSignIn:
    """sign_in() tests"""

    def test_success(self, auth) -> None:
        session = auth.sign_in("Coach@Example.com ", "s3cret-pass")

        assert session.email == "coach@example.com"
        assert len(session.token) > 20

    def test_wrong_password(self, auth) -> None:
        with pytest.raises(AuthError) as exc_info:
            auth.sign_in("coach@example.com", "wrong")
        assert exc_info.value.reason == AuthErrorCode.INVALID_CREDENTIAL

    def test_unknown_email_same_message(self, auth) -> None:
        with pytest.raises(AuthError) as unknown:
            auth.sign_in("nobody@example.com", "s3cret-pass")
        with pytest.raises(AuthError) as wrong:
            auth.sign_in("coach@example.com", "nope")

        assert unknown.value.reason == AuthErrorCode.INVALID_CREDENTIAL
        assert unknown.value.message == wrong.value.message

    def test_invalid_email_format(self, auth) -> None:
        with pytest.raises(AuthError) as exc_info:
            auth.sign_in("not-an-email", "whatever")
        assert exc_info.value.reason == AuthErrorCode.INVALID_EMAIL_FORMAT

    @pytest.mark.parametrize("email, password", [("", "x"), ("coach@example.com", ""), ("  ", "")])
    def test_blank_fields(self, auth, email, password) -> None:
        with pytest.raises(ValidationError):
            auth.sign_in(email, password)

    def test_too_many_attempts(self, auth, clock) -> None:
        for _ in range(MAX_FAILED_ATTEMPTS):
            with pytest.raises(AuthError):
                auth.sign_in("coach@example.com", "wrong")

        # Locked even with the right password
        with pytest.raises(AuthError) as exc_info:
            auth.sign_in("coach@example.com", "s3cret-pass")
        assert exc_info.value.reason == AuthErrorCode.TOO_MANY_ATTEMPTS

        clock.now += FAILED_ATTEMPT_WINDOW_SECONDS
        assert auth.sign_in("coach@example.com", "s3cret-pass").email == "coach@example.com"

    def test_success_resets_failures(self, auth) -> None:
        for _ in range(MAX_FAILED_ATTEMPTS - 1):
            with pytest.raises(AuthError):
                auth.sign_in("coach@example.com", "wrong")
        auth.sign_in("coach@example.com", "s3cret-pass")

        with pytest.raises(AuthError) as exc_info:
            auth.sign_in("coach@example.com", "wrong")
        assert exc_info.value.reason == AuthErrorCode.INVALID_CREDENTIAL

    def test_failures_forgotten_after_window(self, auth, clock) -> None:
        for email in ("a@example.com", "b@example.com", "c@example.com"):
            with pytest.raises(AuthError):
                auth.sign_in(email, "wrong")
        assert auth.tracked_emails() == 3

        clock.now += FAILED_ATTEMPT_WINDOW_SECONDS
        assert auth.tracked_emails() == 0


class TestPasswordHashing:

    def test_stored_as_argon2id(self, auth, session_factory) -> None:
        db = session_factory()
        try:
            trainer = db.scalars(select(Trainer).where(Trainer.email == "coach@example.com")).one()
        finally:
            db.close()

        assert trainer.password_hash.startswith("$argon2id$")
        assert "s3cret-pass" not in trainer.password_hash

    def test_same_password_different_hashes(self) -> None:
        assert hash_password("s3cret-pass") != hash_password("s3cret-pass")

    def test_verify(self) -> None:
        stored = hash_password("s3cret-pass")

        assert verify_password("s3cret-pass", stored) is True
        assert verify_password("wrong", stored) is False
        assert verify_password("s3cret-pass", "not-a-hash") is False


class TestRegisterTrainer:

    def test_duplicate_email(self, auth) -> None:
        with pytest.raises(ValidationError):
            auth.register_trainer("COACH@example.com", "other")

    def test_invalid_email(self, auth) -> None:
        with pytest.raises(ValidationError):
            auth.register_trainer("coach", "pw")


class TestMapProviderError:

    @pytest.mark.parametrize("code, expected", [
        ("auth/user-not-found", AuthErrorCode.INVALID_CREDENTIAL),
        ("auth/wrong-password", AuthErrorCode.INVALID_CREDENTIAL),
        ("auth/invalid-credential", AuthErrorCode.INVALID_CREDENTIAL),
        ("auth/invalid-email", AuthErrorCode.INVALID_EMAIL_FORMAT),
        ("auth/too-many-requests", AuthErrorCode.TOO_MANY_ATTEMPTS),
        ("invalid-email", AuthErrorCode.INVALID_EMAIL_FORMAT),
        ("auth/network-request-failed", AuthErrorCode.INVALID_CREDENTIAL),
        (None, AuthErrorCode.INVALID_CREDENTIAL),
    ])
    def test_mapping(self, code, expected) -> None:
        assert map_provider_error(code) == expected
