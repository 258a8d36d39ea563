import datetime as dt
import secrets

from app.core.config import RecoverySettings
from app.models.user import User
from app.services.hashing import hash_secret


def issue(account: User, now: dt.datetime, policy: RecoverySettings) -> str:
    """Authorize one password change; only call right after a successful OTP verify."""
    token = secrets.token_hex(policy.reset_token_bytes)
    account.reset_token_hash = hash_secret(token, policy.secret_pepper)
    account.reset_token_expires_at = now + dt.timedelta(seconds=policy.reset_token_ttl_s)
    return token


def clear(account: User) -> None:
    account.reset_token_hash = None
    account.reset_token_expires_at = None
