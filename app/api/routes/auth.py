import logging

import jwt
from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import get_db
from app.core.errors import InvalidCredential, ValidationError
from app.models.user import User
from app.schemas.auth import (
    AuthData,
    AuthEnvelope,
    LoginEnvelope,
    LoginIn,
    MeEnvelope,
    OtpRequestIn,
    OtpRequestOut,
    OtpVerifyIn,
    OtpVerifyOut,
    PasswordResetIn,
    PasswordResetOut,
    RegisterIn,
    UserPublic,
)
from app.services import accounts, audit, recovery, templates
from app.services import email as email_service
from app.services.password import hash_password_async, verify_password_async
from app.services.session import issue_session
from app.services.tokens import decode_access
from app.utils.clock import utcnow

logger = logging.getLogger("cvbuilder.auth")

router = APIRouter(prefix="/api/auth", tags=["auth"])
bearer = HTTPBearer(auto_error=False)


def _public_user(user: User) -> UserPublic:
    return UserPublic(
        id=user.id,
        firstName=user.first_name,
        lastName=user.last_name,
        email=user.email,
        phoneNumber=user.phone_number,
        lastLogin=user.last_login_at,
        loginCount=user.login_count,
    )


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def _split_name(full_name: str) -> tuple[str, str]:
    parts = full_name.strip().split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


@router.post("/register", response_model=AuthEnvelope, status_code=status.HTTP_201_CREATED)
async def register(
    req: RegisterIn,
    request: Request,
    background: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    email = accounts.normalize_email(req.email)
    if await accounts.find_by_email(db, email):
        raise ValidationError("An account with this email already exists")

    first_name, last_name = _split_name(req.fullName)
    user = User(
        email=email,
        password_hash=await hash_password_async(req.password),
        first_name=first_name,
        last_name=last_name,
        phone_number=req.phoneNumber or "",
        login_count=0,
        last_login_at=None,
        otp_attempts=0,
        otp_request_count=0,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ValidationError("An account with this email already exists")

    user_agent = request.headers.get("user-agent")
    token = await issue_session(db, user, origin="signup", user_agent=user_agent, ip=_client_ip(request))
    audit.record_event(
        db,
        user_id=user.id,
        event="signup",
        ip=_client_ip(request),
        user_agent=user_agent,
        email_masked=accounts.mask_email(email),
    )
    await db.commit()
    logger.info("Registered %s", accounts.mask_email(email))

    # best effort; a mail outage must not fail the signup
    background.add_task(
        email_service.deliver, email, templates.WELCOME_SUBJECT, templates.welcome_email(first_name)
    )

    return AuthEnvelope(
        message="Registration successful! Welcome to CV Builder.",
        data=AuthData(user=_public_user(user), token=token),
    )


@router.post("/login", response_model=LoginEnvelope)
async def login(req: LoginIn, request: Request, db: AsyncSession = Depends(get_db)):
    ip = _client_ip(request)
    user_agent = request.headers.get("user-agent")
    user = await accounts.find_by_email(db, req.email)
    if not user or not await verify_password_async(user.password_hash, req.password):
        audit.record_event(
            db,
            user_id=user.id if user else None,
            event="signin.fail",
            ip=ip,
            user_agent=user_agent,
            email_masked=accounts.mask_email(req.email),
        )
        await db.commit()
        raise InvalidCredential()

    is_first_login = user.login_count == 0
    user.login_count += 1
    user.last_login_at = utcnow()
    await accounts.save(db, user)

    token = await issue_session(db, user, origin="login", user_agent=user_agent, ip=ip)
    audit.record_event(db, user_id=user.id, event="signin.success", ip=ip, user_agent=user_agent)
    await db.commit()

    message = (
        "Welcome to CV Builder! Your account is ready."
        if is_first_login
        else f"Welcome back, {user.first_name}!"
    )
    return LoginEnvelope(
        message=message,
        isFirstLogin=is_first_login,
        data=AuthData(user=_public_user(user), token=token),
    )


@router.get("/me", response_model=MeEnvelope)
async def me(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: AsyncSession = Depends(get_db),
):
    if credentials is None:
        raise InvalidCredential("Not authorized")
    try:
        payload = decode_access(credentials.credentials)
    except jwt.PyJWTError:
        raise InvalidCredential("Not authorized")
    user = await db.get(User, payload["sub"])
    if not user:
        raise InvalidCredential("Not authorized")
    return MeEnvelope(data=_public_user(user))


@router.post("/request-otp", response_model=OtpRequestOut, response_model_exclude_none=True)
async def request_otp(req: OtpRequestIn, request: Request, db: AsyncSession = Depends(get_db)):
    outcome = await recovery.request_otp(
        db,
        req.email,
        ip=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    if not outcome.sent:
        return OtpRequestOut(message="If an account exists with this email, you will receive an OTP.")
    ttl_minutes = settings.recovery.otp_ttl_s // 60
    return OtpRequestOut(
        message="OTP sent to your email.",
        note=f"Please check your inbox AND spam folder. OTP expires in {ttl_minutes} minutes.",
        requestsRemaining=outcome.requests_remaining,
    )


@router.post("/verify-otp", response_model=OtpVerifyOut)
async def verify_otp(req: OtpVerifyIn, request: Request, db: AsyncSession = Depends(get_db)):
    reset_token = await recovery.verify_otp(
        db,
        req.email,
        req.otp,
        ip=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    ttl_minutes = settings.recovery.reset_token_ttl_s // 60
    return OtpVerifyOut(
        message="OTP verified successfully.",
        resetToken=reset_token,
        note=f"You can now reset your password. This token expires in {ttl_minutes} minutes.",
    )


@router.post("/reset-password", response_model=PasswordResetOut)
async def reset_password(req: PasswordResetIn, request: Request, db: AsyncSession = Depends(get_db)):
    outcome = await recovery.reset_password(
        db,
        req.email,
        req.resetToken,
        req.newPassword,
        req.confirmPassword,
        ip=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return PasswordResetOut(
        message="Password reset successful! You can now log in with your new password.",
        token=outcome.token,
        user=_public_user(outcome.user),
    )
