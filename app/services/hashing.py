import hashlib
import hmac
import secrets


def hash_secret(value: str, key: str) -> str:
    """Keyed SHA-256 digest of an OTP or reset token, safe to store at rest."""
    return hmac.new(key.encode(), value.encode(), hashlib.sha256).hexdigest()


def secrets_match(candidate: str, digest: str | None, key: str) -> bool:
    if not digest:
        return False
    return secrets.compare_digest(hash_secret(candidate, key), digest)
