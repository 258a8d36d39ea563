from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from fastapi.concurrency import run_in_threadpool

from app.core.config import settings

ph = PasswordHasher(
    time_cost=settings.hashing.time_cost,
    memory_cost=settings.hashing.memory_cost,
    parallelism=settings.hashing.parallelism,
)


def hash_password(password: str) -> str:
    return ph.hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


# argon2 is deliberately slow; keep it off the event loop.
async def hash_password_async(password: str) -> str:
    return await run_in_threadpool(hash_password, password)


async def verify_password_async(password_hash: str, password: str) -> bool:
    return await run_in_threadpool(verify_password, password_hash, password)
