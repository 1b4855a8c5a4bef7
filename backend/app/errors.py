"""
Error taxonomy for the ledger backend.

- ValidationError: caller input breaks a precondition. Raised before any
  store call is attempted.
- StoreError: a persistence call failed. NotFoundError and
  PartialFailureError narrow it down.
- AuthError: sign-in failure, always one of a closed set of codes.

The HTTP layer maps each class to a status code in main.py.
"""

from enum import Enum


class LedgerError(Exception):
    """Base class for all domain errors raised by the backend."""

    code = "ledger_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class ValidationError(LedgerError):
    """User input failed a precondition (missing field, bad number, ...)."""

    code = "validation_error"

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.field:
            body["field"] = self.field
        return body


class StoreError(LedgerError):
    """The underlying document store rejected or failed a call."""

    code = "store_error"


class NotFoundError(StoreError):
    """The referenced student does not exist."""

    code = "not_found"

    def __init__(self, student_id: str):
        super().__init__("Student {} not found".format(student_id))
        self.student_id = student_id


class PartialFailureError(StoreError):
    """
    A multi-step command applied its record update but failed to append
    the history entry. The caller has to reconcile: the state change is
    persisted, the audit trail is not.
    """

    code = "partial_failure"

    def __init__(self, student_id: str, applied: str, cause: Exception = None):
        super().__init__(
            "Student {} was updated ({}) but the history entry could not be written".format(
                student_id, applied))
        self.student_id = student_id
        self.applied = applied
        self.cause = cause

    def to_dict(self) -> dict:
        body = super().to_dict()
        body.update({
            "student_id": self.student_id,
            "applied": self.applied,
            "partially_applied": True,
        })
        return body


class AuthErrorCode(str, Enum):
    INVALID_CREDENTIAL = "invalid_credential"
    INVALID_EMAIL_FORMAT = "invalid_email_format"
    TOO_MANY_ATTEMPTS = "too_many_attempts"


AUTH_ERROR_MESSAGES = {
    AuthErrorCode.INVALID_CREDENTIAL: "Email or password is incorrect.",
    AuthErrorCode.INVALID_EMAIL_FORMAT: "The email address format is invalid.",
    AuthErrorCode.TOO_MANY_ATTEMPTS: "Too many failed attempts. Please try again later.",
}


class AuthError(LedgerError):
    """Sign-in failure mapped onto a user-facing message."""

    code = "auth_error"

    def __init__(self, reason: AuthErrorCode):
        super().__init__(AUTH_ERROR_MESSAGES[reason])
        self.reason = reason

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["reason"] = self.reason.value
        return body
