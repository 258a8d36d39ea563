"""Domain errors raised by the auth and recovery services.

Every error carries the message that is safe to show to the client. The
handlers registered in ``main.py`` turn them into JSON responses; anything
that is not an ``AuthError`` is logged and collapsed to a generic failure.
"""

import math
from datetime import timedelta

GENERIC_FAILURE = "Something went wrong. Please try again."


class AuthError(Exception):
    status_code: int = 400
    message: str = "Request could not be completed"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(AuthError):
    status_code = 400


class InvalidCredential(AuthError):
    status_code = 401
    message = "Invalid email or password"


class InvalidOrExpiredToken(AuthError):
    status_code = 400
    message = "Invalid or expired reset token. Please request a new OTP."


class RateLimited(AuthError):
    status_code = 429

    def __init__(self, retry_after: timedelta):
        self.retry_after = retry_after
        super().__init__(
            f"Too many OTP requests. Please try again in {self.retry_after_minutes} minutes."
        )

    @property
    def retry_after_minutes(self) -> int:
        return max(1, math.ceil(self.retry_after.total_seconds() / 60))


class OtpError(AuthError):
    status_code = 400


class NoActiveOtp(OtpError):
    message = "No OTP requested. Please request a new one."


class OtpExpired(OtpError):
    message = "OTP has expired. Please request a new one."


class AttemptsExhausted(OtpError):
    message = "Too many failed attempts. Please request a new OTP."


class OtpMismatch(OtpError):
    def __init__(self, attempts_remaining: int):
        self.attempts_remaining = attempts_remaining
        super().__init__(f"Invalid OTP. {attempts_remaining} attempts remaining.")


class DeliveryFailure(AuthError):
    status_code = 500
    message = "Failed to send OTP. Please try again."


class PersistenceFailure(AuthError):
    status_code = 500
    message = GENERIC_FAILURE


class ConcurrentUpdate(AuthError):
    status_code = 409
    message = "Request conflicted with another request. Please try again."
