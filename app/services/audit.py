from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit import AuthAudit


def record_event(
    db: AsyncSession,
    *,
    user_id: str | None,
    event: str,
    ip: str | None,
    user_agent: str | None,
    email_masked: str | None = None,
    detail: str | None = None,
) -> None:
    """Queue an audit row; it is written by the caller's next commit."""
    audit = AuthAudit(
        user_id=user_id,
        event=event,
        email_masked=email_masked,
        detail=detail,
        ip=ip,
        ua=user_agent,
    )
    db.add(audit)
