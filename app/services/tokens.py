import datetime as dt
import uuid

import jwt

from app.core.config import settings

ACCESS_MIN = settings.access_token_minutes


def issue_access(user_id: str, email: str, session_jti: str) -> str:
    now = dt.datetime.now(dt.timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "jti": str(uuid.uuid4()),
        "sid": session_jti,
        "iat": now,
        "exp": now + dt.timedelta(minutes=ACCESS_MIN),
        "iss": settings.jwt_iss,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def decode_access(token: str) -> dict:
    return jwt.decode(token, settings.jwt_secret, algorithms=["HS256"], issuer=settings.jwt_iss)
