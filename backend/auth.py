"""
Mock mobile-OTP login.

There is no real verification: the accepted code is a fixed, configurable
value. The pending code is kept as a bcrypt hash and the session is a single
boolean flag in the key-value store.
"""

from __future__ import annotations

import json

import bcrypt

from backend.audit_log import AuditAction, AuditLog
from backend.storage import AUTH_KEY, PENDING_OTP_KEY, BooleanFlag, KeyValueStore

MOCK_OTP_CODE = "123456"
MIN_PHONE_LENGTH = 10


class AuthenticationError(ValueError):
    pass


def hash_code(code: str) -> str:
    return bcrypt.hashpw(code.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_code(code: str, hashed_code: str) -> bool:
    return bcrypt.checkpw(code.encode("utf-8"), hashed_code.encode("utf-8"))


class MockOtpAuthenticator:
    def __init__(
        self,
        store: KeyValueStore,
        audit_log: AuditLog,
        otp_code: str = MOCK_OTP_CODE,
    ) -> None:
        self._store = store
        self._audit_log = audit_log
        self._otp_code = otp_code
        self._session = BooleanFlag(store, AUTH_KEY)

    def is_authenticated(self) -> bool:
        return self._session.get()

    def request_otp(self, phone: str) -> None:
        phone = phone.strip()
        if len(phone) < MIN_PHONE_LENGTH:
            raise AuthenticationError("Please enter a valid mobile number")
        pending = {"phone": phone, "otp_hash": hash_code(self._otp_code)}
        self._store.set(PENDING_OTP_KEY, json.dumps(pending))
        self._audit_log.record(AuditAction.OTP_REQUEST, f"OTP requested for {phone}")

    def verify_otp(self, phone: str, otp: str) -> bool:
        phone = phone.strip()
        raw = self._store.get(PENDING_OTP_KEY)
        if not raw:
            raise AuthenticationError("Request an OTP first")
        try:
            pending = json.loads(raw)
        except json.JSONDecodeError as exc:
            self._store.delete(PENDING_OTP_KEY)
            raise AuthenticationError("Request an OTP first") from exc

        otp_hash = pending.get("otp_hash")
        if pending.get("phone") == phone and otp_hash and verify_code(otp.strip(), otp_hash):
            self._store.delete(PENDING_OTP_KEY)
            self._session.set(True)
            self._audit_log.record(
                AuditAction.LOGIN_SUCCESS, "User logged in successfully via Mobile OTP"
            )
            return True

        self._audit_log.record(AuditAction.LOGIN_FAILED, f"Invalid OTP entered for {phone}")
        return False

    def logout(self) -> None:
        self._session.set(False)
        self._audit_log.record(AuditAction.LOGOUT, "User logged out")
