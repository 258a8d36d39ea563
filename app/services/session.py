import datetime as dt
import hashlib
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.session import Session
from app.models.user import User
from app.services.tokens import issue_access


async def create_session(
    db: AsyncSession,
    *,
    user_id: str,
    origin: str,
    ttl_days: int,
    user_agent: str | None,
    ip: str | None,
) -> Session:
    expires_at = dt.datetime.now(dt.timezone.utc) + dt.timedelta(days=ttl_days)
    ip_hash = hashlib.sha256(ip.encode()).hexdigest() if ip else None
    session = Session(
        user_id=user_id,
        jti=str(uuid.uuid4()),
        origin=origin,
        user_agent=user_agent,
        ip_hash=ip_hash,
        expires_at=expires_at,
    )
    db.add(session)
    await db.flush()
    return session


async def issue_session(
    db: AsyncSession,
    user: User,
    *,
    origin: str,
    user_agent: str | None = None,
    ip: str | None = None,
) -> str:
    """Record a new session for ``user`` and return its signed access token.

    The caller owns the transaction and commits it.
    """
    session = await create_session(
        db,
        user_id=user.id,
        origin=origin,
        ttl_days=settings.session_days,
        user_agent=user_agent,
        ip=ip,
    )
    return issue_access(user.id, user.email, session.jti)
