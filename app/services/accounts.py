import datetime as dt

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import ConcurrentUpdate
from app.models.user import User


def normalize_email(email: str) -> str:
    return email.strip().lower()


def mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    if len(local) <= 2:
        masked_local = local[:1] + "*"
    else:
        masked_local = local[0] + "*" * (len(local) - 2) + local[-1]
    return f"{masked_local}@{domain}"


async def find_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def find_by_email_and_token(
    db: AsyncSession, email: str, token_hash: str, now: dt.datetime
) -> User | None:
    result = await db.execute(
        select(User).where(
            User.email == normalize_email(email),
            User.reset_token_hash == token_hash,
            User.reset_token_expires_at > now,
        )
    )
    return result.scalar_one_or_none()


async def save(db: AsyncSession, account: User) -> None:
    """Commit the account as one UPDATE guarded by its version number.

    If another request committed the same row since it was loaded the update
    matches nothing and ``ConcurrentUpdate`` is raised; nothing is written.
    """
    db.add(account)
    try:
        await db.commit()
    except StaleDataError as exc:
        await db.rollback()
        raise ConcurrentUpdate() from exc
