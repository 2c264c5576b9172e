"""
utils/errors.py
-----------------
Error types raised by the portal services. Every adapter translates the
failures of its own library into one of these, so callers only ever
handle a PortalError.
"""


class PortalError(Exception):
    status_code = 400
    default_message = "Request failed."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {"error": type(self).__name__, "message": self.message}


class RateLimited(PortalError):
    status_code = 429

    def __init__(self, days_remaining, cooldown_days=30):
        self.days_remaining = days_remaining
        super().__init__(
            f"Security Limit: You can only change your password once every {cooldown_days} days. "
            f"Please wait {days_remaining} more day(s)."
        )

    def to_dict(self):
        data = super().to_dict()
        data["days_remaining"] = self.days_remaining
        return data


class InvalidToken(PortalError):
    default_message = "Invalid verification code."


class TooManyAttempts(InvalidToken):
    status_code = 429
    default_message = "Too many invalid attempts. Please request a new code."


class PasswordMismatch(PortalError):
    default_message = "Passwords do not match."


class PasswordTooWeak(PortalError):
    default_message = "Password must be at least 6 characters."


class InvalidStep(PortalError):
    status_code = 409
    default_message = "This action is not available at the current step."


class InvalidSetting(PortalError):
    default_message = "Invalid setting value."


class NotFound(PortalError):
    status_code = 404
    default_message = "Not found."


class Forbidden(PortalError):
    status_code = 403
    default_message = "You cannot change this item."


class TokenAlreadyIssued(PortalError):
    status_code = 409
    default_message = "This user already has an active token."


class CredentialUpdateFailed(PortalError):
    status_code = 502
    default_message = "Failed to update password."


class PersistenceFailed(PortalError):
    status_code = 502
    default_message = "Failed to save changes."


class DeliveryFailed(PortalError):
    status_code = 502
    default_message = "Could not send the verification email."


class BulkWritePartialFailure(PersistenceFailed):
    def __init__(self, committed, total, cause=None):
        self.committed = committed
        self.total = total
        self.cause = cause
        if committed:
            message = (
                f"Update failed after {committed} of {total} records were saved. "
                "Some records may have been updated; refresh before retrying."
            )
        else:
            message = "Failed to update all records. Please try again."
        super().__init__(message)

    def to_dict(self):
        data = super().to_dict()
        data.update(committed=self.committed, total=self.total)
        return data
