"""One-time password lifecycle for password recovery.

An account holds at most one OTP, stored only as a keyed digest together with
its expiry and the number of failed guesses. The states are::

    NO_OTP -> OTP_ACTIVE -> CONSUMED | EXPIRED | ATTEMPTS_EXHAUSTED

and every terminal state clears the stored fields again. The functions here
only mutate the account in memory; the caller persists it.
"""

import datetime as dt
import enum
import secrets
import string
from dataclasses import dataclass

from app.core.config import RecoverySettings
from app.models.user import User
from app.services import rate_limit
from app.services.hashing import hash_secret, secrets_match
from app.utils.clock import as_utc

OTP_LENGTH = 6


class VerifyStatus(str, enum.Enum):
    SUCCESS = "success"
    NO_ACTIVE_OTP = "no_active_otp"
    EXPIRED = "expired"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class VerifyResult:
    status: VerifyStatus
    attempts_remaining: int | None = None

    @property
    def ok(self) -> bool:
        return self.status is VerifyStatus.SUCCESS


def generate_otp() -> str:
    # every digit uniform, so 000000-999999 are all equally likely
    return "".join(secrets.choice(string.digits) for _ in range(OTP_LENGTH))


def clear(account: User) -> None:
    account.otp_hash = None
    account.otp_expires_at = None
    account.otp_attempts = 0


def issue(account: User, now: dt.datetime, policy: RecoverySettings) -> str:
    """Replace any previous OTP with a fresh one and return its plaintext."""
    otp = generate_otp()
    account.otp_hash = hash_secret(otp, policy.secret_pepper)
    account.otp_expires_at = now + dt.timedelta(seconds=policy.otp_ttl_s)
    account.otp_attempts = 0
    return otp


def verify(account: User, candidate: str, now: dt.datetime, policy: RecoverySettings) -> VerifyResult:
    if account.otp_hash is None:
        return VerifyResult(VerifyStatus.NO_ACTIVE_OTP)

    expires_at = as_utc(account.otp_expires_at)
    if expires_at is None or now > expires_at:
        clear(account)
        return VerifyResult(VerifyStatus.EXPIRED)

    attempts = account.otp_attempts or 0
    if attempts >= policy.otp_max_attempts:
        clear(account)
        return VerifyResult(VerifyStatus.ATTEMPTS_EXHAUSTED)

    if not secrets_match(candidate, account.otp_hash, policy.secret_pepper):
        account.otp_attempts = attempts + 1
        return VerifyResult(
            VerifyStatus.MISMATCH,
            attempts_remaining=policy.otp_max_attempts - account.otp_attempts,
        )

    clear(account)
    # a verified OTP forgives earlier request counters
    rate_limit.reset_window(account)
    return VerifyResult(VerifyStatus.SUCCESS)
