"""Per-account throttle for OTP requests.

At most ``otp_max_requests`` OTPs may be issued inside a rolling window of
``otp_request_window_s`` seconds. Asking once more blocks the account for
``otp_block_s`` seconds. The counters live on the account row, so callers
must persist the account after every decision, allowed or not, before any
OTP is generated.
"""

import datetime as dt
from dataclasses import dataclass

from app.core.config import RecoverySettings
from app.models.user import User
from app.utils.clock import as_utc


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    retry_after: dt.timedelta | None = None
    requests_remaining: int | None = None


def reset_window(account: User) -> None:
    account.otp_request_count = 0
    account.otp_window_start = None
    account.otp_blocked_until = None


def authorize_otp_request(account: User, now: dt.datetime, policy: RecoverySettings) -> RateDecision:
    blocked_until = as_utc(account.otp_blocked_until)
    if blocked_until is not None and blocked_until > now:
        return RateDecision(allowed=False, retry_after=blocked_until - now)

    window_start = as_utc(account.otp_window_start)
    if window_start is not None and now - window_start > dt.timedelta(seconds=policy.otp_request_window_s):
        reset_window(account)

    count = account.otp_request_count or 0
    if count >= policy.otp_max_requests:
        block = dt.timedelta(seconds=policy.otp_block_s)
        account.otp_blocked_until = now + block
        return RateDecision(allowed=False, retry_after=block)

    account.otp_request_count = count + 1
    if account.otp_window_start is None:
        account.otp_window_start = now
    return RateDecision(
        allowed=True,
        requests_remaining=policy.otp_max_requests - account.otp_request_count,
    )
