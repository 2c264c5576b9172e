"""
utils/password_reset.py
-----------------
Password change verification for the security settings screen.

A ResetSession moves through three steps:

    request -> verify_token -> set_password -> (back to request)

The user either asks for a 6-digit code (emailed to them, kept only in the
session) or declares an administrator-issued bypass token. Once the code or
token is verified, a new password can be set. Codes may only be requested
once the cooldown since the last password change has elapsed; bypass tokens
skip the cooldown and are consumed by the password change.
"""

import logging
import math
import secrets
import threading
from datetime import datetime, timedelta, timezone
from enum import Enum
from functools import wraps

from utils.db import DELETE_FIELD
from utils.errors import (
    CredentialUpdateFailed,
    DeliveryFailed,
    InvalidStep,
    InvalidToken,
    NotFound,
    PasswordMismatch,
    PasswordTooWeak,
    RateLimited,
    TooManyAttempts,
)

logger = logging.getLogger(__name__)


class ResetStep(str, Enum):
    REQUEST = "request"
    VERIFY_TOKEN = "verify_token"
    SET_PASSWORD = "set_password"


def utc_now():
    return datetime.now(timezone.utc)


def days_remaining(last_change, now, cooldown_days=30):
    """Whole days (rounded up) until another password change is allowed."""
    if last_change is None:
        return 0
    if last_change.tzinfo is None:
        # Mongo hands back naive UTC datetimes
        last_change = last_change.replace(tzinfo=timezone.utc)
    next_allowed = last_change + timedelta(days=cooldown_days)
    if now >= next_allowed:
        return 0
    return math.ceil((next_allowed - now) / timedelta(days=1))


def generate_code():
    return str(secrets.randbelow(900000) + 100000)


def _matches(entered, expected):
    if not entered or not expected:
        return False
    return secrets.compare_digest(entered.encode("utf-8"), expected.encode("utf-8"))


class ResetSession:

    def __init__(self, user_id):
        self.user_id = user_id
        # Held for the whole of each step so parallel requests cannot interleave
        self.lock = threading.Lock()
        self.clear()

    def clear(self):
        self.step = ResetStep.REQUEST
        self.using_bypass_token = False
        self.generated_code = None
        self.entered_code = ""
        # Only set when mail delivery failed and the display fallback is enabled
        self.fallback_code = None
        self.attempts = 0

    def to_dict(self):
        return {
            "step": self.step.value,
            "using_bypass_token": self.using_bypass_token,
            "fallback_code": self.fallback_code,
        }


def _locked(step):
    @wraps(step)
    def wrapper(self, session, *args, **kwargs):
        with session.lock:
            return step(self, session, *args, **kwargs)
    return wrapper


class ResetSessionRegistry:
    """In-process holder for open reset sessions, one per user. Never persisted."""

    def __init__(self):
        self._sessions = {}
        self._lock = threading.Lock()

    def open(self, user_id):
        session = ResetSession(user_id)
        with self._lock:
            self._sessions[user_id] = session
        return session

    def get(self, user_id):
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                session = self._sessions[user_id] = ResetSession(user_id)
            return session

    def discard(self, user_id):
        with self._lock:
            self._sessions.pop(user_id, None)


class PasswordResetFlow:

    def __init__(self, profiles, credentials, mailer, clock=utc_now, cooldown_days=30,
                 min_password_length=6, max_attempts=5, allow_code_display=False,
                 portal_name="BseePortal", code_factory=generate_code):
        self._profiles = profiles
        self._credentials = credentials
        self._mailer = mailer
        self._clock = clock
        self.cooldown_days = cooldown_days
        self.min_password_length = min_password_length
        self.max_attempts = max_attempts
        self.allow_code_display = allow_code_display
        self.portal_name = portal_name
        self._code_factory = code_factory

    @classmethod
    def from_config(cls, config, profiles, credentials, mailer, **kwargs):
        return cls(
            profiles, credentials, mailer,
            cooldown_days=config.get("PASSWORD_CHANGE_COOLDOWN_DAYS", 30),
            min_password_length=config.get("MIN_PASSWORD_LENGTH", 6),
            max_attempts=config.get("MAX_VERIFY_ATTEMPTS", 5),
            allow_code_display=config.get("ALLOW_CODE_DISPLAY_FALLBACK", False),
            portal_name=config.get("PORTAL_NAME", "BseePortal"),
            **kwargs
        )

    def _profile(self, user_id):
        profile = self._profiles.get(user_id)
        if not profile:
            raise NotFound("User not found.")
        return profile

    @staticmethod
    def _require(session, *steps):
        if session.step not in steps:
            raise InvalidStep()

    def cooldown(self, user_id):
        profile = self._profile(user_id)
        return days_remaining(profile.get("last_password_change"), self._clock(), self.cooldown_days)

    # ------------------------------------------------------
    # request -> verify_token
    # ------------------------------------------------------
    @_locked
    def request_code(self, session):
        self._require(session, ResetStep.REQUEST, ResetStep.VERIFY_TOKEN)

        remaining = self.cooldown(session.user_id)
        if remaining > 0:
            raise RateLimited(remaining, self.cooldown_days)

        code = self._code_factory()
        session.clear()
        session.generated_code = code

        try:
            email = self._credentials.get_current_user_email(session.user_id)
            if not email:
                raise DeliveryFailed("No email address found on your profile.")
            self._mailer.send([email], f"{self.portal_name} Password Change Verification",
                              self._code_email(code))
        except DeliveryFailed:
            if not self.allow_code_display:
                session.clear()
                raise
            logger.warning("Email service unavailable, showing code on screen for user %s", session.user_id)
            session.fallback_code = code

        session.step = ResetStep.VERIFY_TOKEN
        return session

    @_locked
    def use_bypass_token(self, session):
        self._require(session, ResetStep.REQUEST)
        session.clear()
        session.using_bypass_token = True
        session.step = ResetStep.VERIFY_TOKEN
        return session

    # ------------------------------------------------------
    # verify_token -> set_password
    # ------------------------------------------------------
    @_locked
    def verify(self, session, entered):
        self._require(session, ResetStep.VERIFY_TOKEN)
        entered = (entered or "").strip()
        session.entered_code = entered

        if session.using_bypass_token:
            # Always compare against the stored token, never a copy held by the session
            expected = self._profile(session.user_id).get("special_password_token")
            message = "Invalid Administrative Token."
        else:
            expected = session.generated_code
            message = "Invalid verification code."

        if _matches(entered, expected):
            session.step = ResetStep.SET_PASSWORD
            session.attempts = 0
            return session

        session.attempts += 1
        if session.attempts >= self.max_attempts:
            session.clear()
            raise TooManyAttempts()
        raise InvalidToken(message)

    # ------------------------------------------------------
    # set_password -> request
    # ------------------------------------------------------
    @_locked
    def set_password(self, session, new_password, confirm_password):
        self._require(session, ResetStep.SET_PASSWORD)

        if new_password != confirm_password:
            raise PasswordMismatch()
        if len(new_password or "") < self.min_password_length:
            raise PasswordTooWeak(f"Password must be at least {self.min_password_length} characters.")

        updates = {"last_password_change": self._clock()}
        expected = None
        if session.using_bypass_token:
            updates["special_password_token"] = DELETE_FIELD
            expected = {"special_password_token": session.entered_code}

        changed = self._credentials.update_credential(
            session.user_id, new_password, profile_updates=updates, expected=expected
        )
        if not changed:
            if session.using_bypass_token:
                session.clear()
                raise InvalidToken("Administrative token is no longer valid.")
            raise CredentialUpdateFailed("User account not found.")

        logger.info("Password changed for user %s", session.user_id)
        session.clear()
        return session

    @_locked
    def cancel(self, session):
        session.clear()
        return session

    def _code_email(self, code):
        return f"""
            <div style="font-family: sans-serif; color: #333;">
                <h2>Password Change Request</h2>
                <p>Use the following code to verify your identity and change your password:</p>
                <div style="background: #f4f4f4; padding: 15px; font-size: 24px; letter-spacing: 5px;
                            font-weight: bold; text-align: center; border-radius: 8px; margin: 20px 0;">
                    {code}
                </div>
                <p>If you did not request this, please ignore this email and secure your account.</p>
            </div>
        """
