"""
tests/test_otp.py -- Unit tests for the OTP lifecycle.

Covers generation, the NO_OTP -> OTP_ACTIVE -> CONSUMED | EXPIRED |
ATTEMPTS_EXHAUSTED transitions, and what each transition clears.
"""

from __future__ import annotations

import datetime as dt

from conftest import make_account

from app.core.config import RecoverySettings
from app.services import otp
from app.services.hashing import hash_secret
from app.services.otp import VerifyStatus

POLICY = RecoverySettings(secret_pepper="unit-pepper")
T0 = dt.datetime(2026, 10, 19, 9, 0, tzinfo=dt.timezone.utc)


def _wrong(code: str) -> str:
    return "000000" if code != "000000" else "111111"


class TestGenerate:
    def test_six_decimal_digits(self) -> None:
        for _ in range(200):
            code = otp.generate_otp()
            assert len(code) == 6
            assert code.isdigit()

    def test_leading_zeros_are_possible(self, monkeypatch) -> None:
        monkeypatch.setattr(otp.secrets, "choice", lambda digits: "0")
        assert otp.generate_otp() == "000000"


class TestIssue:
    def test_stores_digest_not_plaintext(self) -> None:
        account = make_account()
        code = otp.issue(account, T0, POLICY)
        assert account.otp_hash == hash_secret(code, POLICY.secret_pepper)
        assert account.otp_hash != code
        assert account.otp_expires_at == T0 + dt.timedelta(minutes=5)
        assert account.otp_attempts == 0

    def test_new_otp_replaces_previous_one(self) -> None:
        account = make_account()
        first = otp.issue(account, T0, POLICY)
        otp.verify(account, _wrong(first), T0, POLICY)
        assert account.otp_attempts == 1

        second = otp.issue(account, T0 + dt.timedelta(minutes=1), POLICY)
        assert account.otp_attempts == 0
        assert account.otp_hash == hash_secret(second, POLICY.secret_pepper)
        if first != second:
            result = otp.verify(account, first, T0 + dt.timedelta(minutes=1), POLICY)
            assert result.status is VerifyStatus.MISMATCH


class TestVerify:
    def test_no_active_otp(self) -> None:
        result = otp.verify(make_account(), "123456", T0, POLICY)
        assert result.status is VerifyStatus.NO_ACTIVE_OTP

    def test_correct_code_succeeds_exactly_once(self) -> None:
        account = make_account()
        code = otp.issue(account, T0, POLICY)
        assert otp.verify(account, code, T0 + dt.timedelta(minutes=1), POLICY).ok
        again = otp.verify(account, code, T0 + dt.timedelta(minutes=1), POLICY)
        assert again.status is VerifyStatus.NO_ACTIVE_OTP

    def test_success_clears_otp_and_rate_limit_fields(self) -> None:
        account = make_account(
            otp_request_count=2,
            otp_window_start=T0,
            otp_blocked_until=T0 + dt.timedelta(hours=1),
        )
        code = otp.issue(account, T0, POLICY)
        otp.verify(account, code, T0, POLICY)
        assert account.otp_hash is None
        assert account.otp_expires_at is None
        assert account.otp_attempts == 0
        assert account.otp_request_count == 0
        assert account.otp_window_start is None
        assert account.otp_blocked_until is None

    def test_mismatch_counts_attempts(self) -> None:
        account = make_account()
        code = otp.issue(account, T0, POLICY)
        results = [otp.verify(account, _wrong(code), T0, POLICY) for _ in range(3)]
        assert [r.status for r in results] == [VerifyStatus.MISMATCH] * 3
        assert [r.attempts_remaining for r in results] == [2, 1, 0]
        assert account.otp_attempts == 3

    def test_correct_code_rejected_after_three_mismatches(self) -> None:
        account = make_account()
        code = otp.issue(account, T0, POLICY)
        for _ in range(3):
            otp.verify(account, _wrong(code), T0, POLICY)

        result = otp.verify(account, code, T0, POLICY)
        assert result.status is VerifyStatus.ATTEMPTS_EXHAUSTED
        assert account.otp_hash is None
        assert account.otp_attempts == 0
        assert otp.verify(account, code, T0, POLICY).status is VerifyStatus.NO_ACTIVE_OTP

    def test_expired_regardless_of_candidate(self) -> None:
        for use_correct in (True, False):
            account = make_account()
            code = otp.issue(account, T0, POLICY)
            candidate = code if use_correct else _wrong(code)
            late = T0 + dt.timedelta(minutes=5, seconds=1)
            result = otp.verify(account, candidate, late, POLICY)
            assert result.status is VerifyStatus.EXPIRED
            assert account.otp_hash is None
            assert account.otp_expires_at is None

    def test_valid_at_exact_expiry_instant(self) -> None:
        account = make_account()
        code = otp.issue(account, T0, POLICY)
        assert otp.verify(account, code, T0 + dt.timedelta(minutes=5), POLICY).ok

    def test_mismatch_keeps_rate_limit_counters(self) -> None:
        account = make_account(otp_request_count=2, otp_window_start=T0)
        code = otp.issue(account, T0, POLICY)
        otp.verify(account, _wrong(code), T0, POLICY)
        assert account.otp_request_count == 2
        assert account.otp_window_start == T0
