"""
tests/conftest.py -- Shared fixtures for the auth and recovery tests.

Settings are read from the environment when ``app.core.config`` is first
imported, so every variable below must be set before any ``app`` import.
The database is a throwaway SQLite file; it is rebuilt for each test that
asks for it and the engine pool is disposed afterwards so no connection
outlives the event loop it was opened on.

Outgoing mail never reaches SMTP: ``mailbox`` swaps
``app.services.email.send_mail`` for a recorder.
"""

from __future__ import annotations

import os
import re
import tempfile
from collections.abc import AsyncIterator
from dataclasses import dataclass

_DB_DIR = tempfile.mkdtemp(prefix="cvbuilder-tests-")

os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_DB_DIR}/test.db")
os.environ.setdefault("JWT_SECRET", "test-secret-with-enough-length-for-hs256")
os.environ.setdefault("JWT_ISS", "cv-builder-tests")
os.environ.setdefault("MAIL_SENDER", "no-reply@example.com")
os.environ.setdefault("MAIL_HOST", "localhost")
os.environ.setdefault("MAIL_USERNAME", "tests")
os.environ.setdefault("MAIL_PASSWORD", "tests")
os.environ.setdefault("MAIL_SUPPRESS_SEND", "true")
os.environ.setdefault("RECOVERY__SECRET_PEPPER", "test-pepper")
# cheap argon2 parameters keep the suite fast
os.environ.setdefault("HASHING__TIME_COST", "1")
os.environ.setdefault("HASHING__MEMORY_COST", "8192")
os.environ.setdefault("HASHING__PARALLELISM", "1")

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import Base, SessionLocal, engine
from app.models.user import User
from app.services.password import hash_password
from main import app

OTP_RE = re.compile(r"<strong>(\d{6})</strong>")

TEST_EMAIL = "user@example.com"
TEST_PASSWORD = "old-password-1"


@dataclass
class SentMail:
    subject: str
    recipients: list[str]
    body: str


class Mailbox(list):
    def otps_for(self, address: str) -> list[str]:
        return [
            match.group(1)
            for mail in self
            if address in mail.recipients
            for match in [OTP_RE.search(mail.body)]
            if match
        ]

    def last_otp(self, address: str = TEST_EMAIL) -> str:
        otps = self.otps_for(address)
        assert otps, f"no OTP mail sent to {address}"
        return otps[-1]


def make_account(**overrides) -> User:
    """An unsaved account with the counters a flushed row would have."""
    fields = {
        "email": TEST_EMAIL,
        "password_hash": "unused",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "phone_number": "",
        "login_count": 0,
        "otp_attempts": 0,
        "otp_request_count": 0,
    }
    fields.update(overrides)
    return User(**fields)


@pytest.fixture
async def database() -> AsyncIterator[None]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest.fixture
async def db(database) -> AsyncIterator[AsyncSession]:
    async with SessionLocal() as session:
        yield session


@pytest.fixture
async def account(db: AsyncSession) -> User:
    user = make_account(password_hash=hash_password(TEST_PASSWORD))
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
def mailbox(monkeypatch) -> Mailbox:
    sent = Mailbox()

    async def _record(subject: str, recipients: list[str], body: str) -> None:
        sent.append(SentMail(subject=subject, recipients=list(recipients), body=body))

    monkeypatch.setattr("app.services.email.send_mail", _record)
    return sent


@pytest.fixture
async def client(database, mailbox) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
