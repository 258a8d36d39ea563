import logging

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema

from app.core.config import settings

logger = logging.getLogger("cvbuilder.email")

conf = ConnectionConfig(
    MAIL_USERNAME=settings.mail_username,
    MAIL_PASSWORD=settings.mail_password,
    MAIL_FROM=settings.mail_sender,
    MAIL_PORT=settings.mail_port,
    MAIL_SERVER=settings.mail_host,
    MAIL_FROM_NAME=settings.mail_sender_name,
    MAIL_STARTTLS=settings.mail_use_tls,
    MAIL_SSL_TLS=False,
    USE_CREDENTIALS=True,
    SUPPRESS_SEND=int(settings.mail_suppress_send),
)


async def send_mail(subject: str, recipients: list[str], body: str) -> None:
    message = MessageSchema(subject=subject, recipients=recipients, body=body, subtype="html")
    mailer = FastMail(conf)
    await mailer.send_message(message)


async def deliver(address: str, subject: str, body: str) -> bool:
    """Send one message; transport errors are logged and reported as ``False``."""
    try:
        await send_mail(subject=subject, recipients=[address], body=body)
    except Exception:
        logger.exception("Email delivery failed (subject=%r)", subject)
        return False
    logger.info("Email sent (subject=%r)", subject)
    return True
