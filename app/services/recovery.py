"""Password recovery flow: request an OTP, verify it, reset the password.

Each step loads one account, runs the pure state transitions from
``rate_limit``, ``otp`` and ``reset_token`` against it and commits the result
through ``accounts.save`` as a single versioned update. Failures are raised as
``app.core.errors`` exceptions carrying the client-facing message.
"""

import datetime as dt
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import RecoverySettings, settings
from app.core.errors import (
    AttemptsExhausted,
    DeliveryFailure,
    InvalidOrExpiredToken,
    NoActiveOtp,
    OtpError,
    OtpExpired,
    OtpMismatch,
    RateLimited,
    ValidationError,
)
from app.models.user import User
from app.services import accounts, audit, otp, rate_limit, reset_token, templates
from app.services import email as email_service
from app.services.hashing import hash_secret
from app.services.otp import VerifyStatus
from app.services.password import hash_password_async
from app.services.session import issue_session
from app.utils.clock import utcnow

logger = logging.getLogger("cvbuilder.recovery")


@dataclass(frozen=True)
class OtpRequestOutcome:
    sent: bool
    requests_remaining: int | None = None


@dataclass(frozen=True)
class ResetOutcome:
    user: User
    token: str


async def request_otp(
    db: AsyncSession,
    email: str,
    *,
    ip: str | None = None,
    user_agent: str | None = None,
    now: dt.datetime | None = None,
    policy: RecoverySettings | None = None,
) -> OtpRequestOutcome:
    """Issue and mail a new OTP if the account exists and is not throttled.

    An unknown email is not an error: the outcome is ``sent=False`` so the
    route can answer exactly as it would for a real account.
    """
    now = now or utcnow()
    policy = policy or settings.recovery
    masked = accounts.mask_email(email)

    account = await accounts.find_by_email(db, email)
    if account is None:
        logger.warning("OTP requested for unknown email %s", masked)
        return OtpRequestOutcome(sent=False)

    decision = rate_limit.authorize_otp_request(account, now, policy)
    if not decision.allowed:
        audit.record_event(
            db,
            user_id=account.id,
            event="otp.blocked",
            ip=ip,
            user_agent=user_agent,
            email_masked=masked,
        )
        await accounts.save(db, account)
        logger.warning("OTP request blocked for %s (retry in %s)", masked, decision.retry_after)
        raise RateLimited(decision.retry_after)

    # counters are committed before the OTP exists
    audit.record_event(
        db,
        user_id=account.id,
        event="otp.request",
        ip=ip,
        user_agent=user_agent,
        email_masked=masked,
        detail=f"{account.otp_request_count}/{policy.otp_max_requests}",
    )
    await accounts.save(db, account)

    plaintext = otp.issue(account, now, policy)
    await accounts.save(db, account)

    body = templates.otp_email(
        account.first_name,
        plaintext,
        ttl_minutes=policy.otp_ttl_s // 60,
        max_attempts=policy.otp_max_attempts,
    )
    if not await email_service.deliver(account.email, templates.OTP_SUBJECT, body):
        logger.error("Failed to send OTP email to %s", masked)
        raise DeliveryFailure()

    logger.info(
        "OTP sent to %s (%d/%d requests this window)",
        masked,
        account.otp_request_count,
        policy.otp_max_requests,
    )
    return OtpRequestOutcome(sent=True, requests_remaining=decision.requests_remaining)


_VERIFY_ERRORS = {
    VerifyStatus.NO_ACTIVE_OTP: NoActiveOtp,
    VerifyStatus.EXPIRED: OtpExpired,
    VerifyStatus.ATTEMPTS_EXHAUSTED: AttemptsExhausted,
}


async def verify_otp(
    db: AsyncSession,
    email: str,
    candidate: str,
    *,
    ip: str | None = None,
    user_agent: str | None = None,
    now: dt.datetime | None = None,
    policy: RecoverySettings | None = None,
) -> str:
    """Check ``candidate`` and return a reset token when it matches."""
    now = now or utcnow()
    policy = policy or settings.recovery
    masked = accounts.mask_email(email)

    account = await accounts.find_by_email(db, email)
    if account is None:
        logger.warning("OTP verification for unknown email %s", masked)
        raise OtpError("Invalid or expired OTP")

    result = otp.verify(account, candidate, now, policy)
    if result.ok:
        token = reset_token.issue(account, now, policy)
        audit.record_event(
            db,
            user_id=account.id,
            event="otp.verify.success",
            ip=ip,
            user_agent=user_agent,
            email_masked=masked,
        )
        await accounts.save(db, account)
        logger.info("OTP verified for %s; request limits reset", masked)
        return token

    audit.record_event(
        db,
        user_id=account.id,
        event="otp.verify.fail",
        ip=ip,
        user_agent=user_agent,
        email_masked=masked,
        detail=result.status.value,
    )
    await accounts.save(db, account)

    if result.status is VerifyStatus.MISMATCH:
        logger.warning(
            "Invalid OTP attempt %d/%d for %s",
            account.otp_attempts,
            policy.otp_max_attempts,
            masked,
        )
        raise OtpMismatch(result.attempts_remaining)
    logger.warning("OTP verification failed for %s: %s", masked, result.status.value)
    raise _VERIFY_ERRORS[result.status]()


def check_new_password(new_password: str, confirm_password: str, policy: RecoverySettings) -> None:
    if not new_password or not confirm_password:
        raise ValidationError("Please provide all required fields")
    if new_password != confirm_password:
        raise ValidationError("Passwords do not match")
    if len(new_password) < policy.password_min_length:
        raise ValidationError(f"Password must be at least {policy.password_min_length} characters")


async def reset_password(
    db: AsyncSession,
    email: str,
    candidate_token: str,
    new_password: str,
    confirm_password: str,
    *,
    ip: str | None = None,
    user_agent: str | None = None,
    now: dt.datetime | None = None,
    policy: RecoverySettings | None = None,
) -> ResetOutcome:
    """Spend a reset token on a new password and sign the user in.

    Unknown email, wrong token, reused token and expired token all raise the
    same ``InvalidOrExpiredToken``.
    """
    now = now or utcnow()
    policy = policy or settings.recovery
    masked = accounts.mask_email(email)

    check_new_password(new_password, confirm_password, policy)

    token_hash = hash_secret(candidate_token, policy.secret_pepper)
    account = await accounts.find_by_email_and_token(db, email, token_hash, now)
    if account is None:
        logger.warning("Invalid or expired reset token used for %s", masked)
        raise InvalidOrExpiredToken()

    account.password_hash = await hash_password_async(new_password)
    reset_token.clear(account)
    audit.record_event(
        db,
        user_id=account.id,
        event="reset.finish",
        ip=ip,
        user_agent=user_agent,
        email_masked=masked,
    )
    await accounts.save(db, account)

    session_token = await issue_session(
        db, account, origin="password_reset", user_agent=user_agent, ip=ip
    )
    await db.commit()
    logger.info("Password reset for %s", masked)
    return ResetOutcome(user=account, token=session_token)
