"""
Auth Service - trainer sign-in.

sign_in() never exposes raw provider errors: every failure is mapped to
one of three AuthErrorCode values, each with a fixed user-facing message.

Rules:
1. Blank email or password is a ValidationError (nothing is checked)
2. Email must look like an address, otherwise INVALID_EMAIL_FORMAT
3. Unknown email and wrong password both give INVALID_CREDENTIAL
4. After MAX_FAILED_ATTEMPTS failures inside FAILED_ATTEMPT_WINDOW_SECONDS
   every attempt for that email gives TOO_MANY_ATTEMPTS until the window
   has passed
"""

import os
import re
import secrets
import threading
import time
import uuid
from collections import defaultdict, deque
from datetime import datetime, timezone

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerifyMismatchError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.database import SessionLocal
from app.errors import AuthError, AuthErrorCode, StoreError, ValidationError
from app.logging_config import get_logger, log_with_context
from app.models.trainer import Trainer
from app.schemas import AuthSession

logger = get_logger("auth")

MAX_FAILED_ATTEMPTS = int(os.getenv("MAX_FAILED_ATTEMPTS", "5"))
FAILED_ATTEMPT_WINDOW_SECONDS = int(os.getenv("FAILED_ATTEMPT_WINDOW_SECONDS", "300"))

# Argon2id; each hash string carries its own salt and parameters
_hasher = PasswordHasher(
    time_cost=2,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Raw provider codes -> closed set
PROVIDER_ERROR_CODES = {
    "user-not-found": AuthErrorCode.INVALID_CREDENTIAL,
    "wrong-password": AuthErrorCode.INVALID_CREDENTIAL,
    "invalid-credential": AuthErrorCode.INVALID_CREDENTIAL,
    "invalid-email": AuthErrorCode.INVALID_EMAIL_FORMAT,
    "too-many-requests": AuthErrorCode.TOO_MANY_ATTEMPTS,
}


def map_provider_error(code: str) -> AuthErrorCode:
    """Map a provider error code (with or without an 'auth/' prefix)."""
    code = (code or "").strip().lower()
    if code.startswith("auth/"):
        code = code[len("auth/"):]
    return PROVIDER_ERROR_CODES.get(code, AuthErrorCode.INVALID_CREDENTIAL)


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return _hasher.verify(password_hash, password)
    except (VerifyMismatchError, InvalidHash):
        return False


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class AuthService:

    def __init__(self, session_factory=SessionLocal, clock=time.monotonic):
        self._session_factory = session_factory
        self._clock = clock
        self._failures = defaultdict(deque)
        self._lock = threading.Lock()

    def register_trainer(self, email: str, password: str) -> str:
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("Email and password are required")
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("Email format is invalid", field="email")

        trainer = Trainer(id=str(uuid.uuid4()), email=email,
                          password_hash=hash_password(password),
                          created_at=datetime.now(timezone.utc))
        db = self._session_factory()
        try:
            db.add(trainer)
            db.commit()
            trainer_id = trainer.id
        except IntegrityError as exc:
            db.rollback()
            raise ValidationError("A trainer with this email already exists", field="email") from exc
        except SQLAlchemyError as exc:
            db.rollback()
            raise StoreError("register_trainer failed") from exc
        finally:
            db.close()

        log_with_context(logger, "INFO", "Trainer registered",
                         context={"trainer_id": trainer_id})
        return trainer_id

    def sign_in(self, email: str, password: str) -> AuthSession:
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("Please enter your email and password")
        if not EMAIL_PATTERN.match(email):
            raise AuthError(AuthErrorCode.INVALID_EMAIL_FORMAT)
        if self._is_locked(email):
            log_with_context(logger, "WARNING", "Sign-in blocked: too many attempts",
                             extra_data={"email": email})
            raise AuthError(AuthErrorCode.TOO_MANY_ATTEMPTS)

        db = self._session_factory()
        try:
            trainer = db.scalars(select(Trainer).where(Trainer.email == email)).first()
            stored_hash = trainer.password_hash if trainer else None
        except SQLAlchemyError as exc:
            raise StoreError("sign_in failed") from exc
        finally:
            db.close()

        if stored_hash is None or not verify_password(password, stored_hash):
            self._record_failure(email)
            log_with_context(logger, "WARNING", "Sign-in failed: invalid credential",
                             extra_data={"email": email})
            raise AuthError(AuthErrorCode.INVALID_CREDENTIAL)

        with self._lock:
            self._failures.pop(email, None)

        log_with_context(logger, "INFO", "Trainer signed in", extra_data={"email": email})
        return AuthSession(token=secrets.token_urlsafe(32), email=email,
                           issued_at=datetime.now(timezone.utc))

    def _prune(self, email: str, now: float) -> int:
        """Drop failures older than the window; forget the email once none remain."""
        failures = self._failures.get(email)
        if failures is None:
            return 0
        while failures and now - failures[0] >= FAILED_ATTEMPT_WINDOW_SECONDS:
            failures.popleft()
        if not failures:
            del self._failures[email]
        return len(failures)

    def _is_locked(self, email: str) -> bool:
        with self._lock:
            return self._prune(email, self._clock()) >= MAX_FAILED_ATTEMPTS

    def _record_failure(self, email: str):
        with self._lock:
            now = self._clock()
            self._prune(email, now)
            self._failures[email].append(now)

    def tracked_emails(self) -> int:
        """Number of emails with failed attempts still inside the window."""
        with self._lock:
            now = self._clock()
            for email in list(self._failures):
                self._prune(email, now)
            return len(self._failures)
