"""
Local identity provider.

Credentials and sessions live in the same database as the tracker data, so a
``Profile`` row is created alongside every account. Sessions are opaque
tokens handed to the caller; nothing is kept in process memory apart from
auth-state subscribers.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Callable, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from productivity_tracker import config
from productivity_tracker.schema import ROLES, Profile
from productivity_tracker.store import Store, StoreError

logger = logging.getLogger(__name__)

EMAIL_NOT_CONFIRMED = "Email not confirmed"
INVALID_CREDENTIALS = "Invalid login credentials"

AuthCallback = Callable[[str, Optional[Profile]], None]


class AuthError(Exception):
    """Raised when the identity provider refuses a request."""


def login_error_message(exc: BaseException) -> str:
    """Map a sign-in failure onto the message shown to the user."""

    message = str(exc) or "An error occurred"
    if EMAIL_NOT_CONFIRMED in message:
        return "Please confirm your email address before signing in. Check your inbox for the confirmation link."
    if INVALID_CREDENTIALS in message:
        return "Invalid email or password. Please try again."
    return message


def _log_confirmation(email: str, token: str) -> None:
    logger.info("Confirmation token for %s: %s", email, token)


@dataclass
class SignUpResult:
    """``session_token`` is ``None`` while the email awaits confirmation."""

    user: Profile
    session_token: Optional[str]
    confirmation_token: Optional[str] = None


class Subscription:
    def __init__(self, provider: "IdentityProvider", callback: AuthCallback):
        self._provider = provider
        self.callback = callback

    def unsubscribe(self) -> None:
        self._provider._subscribers = [s for s in self._provider._subscribers if s is not self]


class IdentityProvider:
    def __init__(
        self,
        store: Store,
        require_confirmation: bool = config.REQUIRE_EMAIL_CONFIRMATION,
        mailer: Callable[[str, str], None] = _log_confirmation,
    ):
        self.store = store
        self.require_confirmation = require_confirmation
        self.mailer = mailer
        self._subscribers: list[Subscription] = []

    # ==================== Notifications ====================

    def on_auth_state_change(self, callback: AuthCallback) -> Subscription:
        """Register ``callback(event, profile)`` for SIGNED_UP / SIGNED_IN / SIGNED_OUT."""
        subscription = Subscription(self, callback)
        self._subscribers.append(subscription)
        return subscription

    def _emit(self, event: str, profile: Optional[Profile]) -> None:
        for subscription in list(self._subscribers):
            subscription.callback(event, profile)

    # ==================== Accounts ====================

    def _credentials_for(self, email: str) -> Optional[dict]:
        rows = self.store.select("credentials", email=email.strip().lower())
        return rows[0] if rows else None

    def sign_up(self, email: str, password: str, full_name: str, role: str = "agent") -> SignUpResult:
        """Create an account and its profile."""

        email = email.strip().lower()
        if not email or "@" not in email:
            raise AuthError("Unable to validate email address: invalid format")
        if len(password) < config.PASSWORD_MIN_LENGTH:
            raise AuthError(f"Password should be at least {config.PASSWORD_MIN_LENGTH} characters")
        if role not in ROLES:
            raise AuthError(f"Invalid role '{role}'")
        if self._credentials_for(email) is not None or self.store.select("profiles", email=email):
            raise AuthError("User already registered")

        profile = Profile(id=secrets.token_hex(16), email=email, full_name=full_name.strip() or email, role=role)
        confirmation_token = secrets.token_urlsafe(24) if self.require_confirmation else None

        try:
            self.store.insert_many(
                [
                    (
                        "profiles",
                        {
                            "id": profile.id,
                            "email": profile.email,
                            "full_name": profile.full_name,
                            "role": profile.role,
                            "is_active": True,
                        },
                    ),
                    (
                        "credentials",
                        {
                            "id": profile.id,
                            "email": email,
                            "password_hash": generate_password_hash(password, method="pbkdf2:sha256"),
                            "confirmed": not self.require_confirmation,
                            "confirmation_token": confirmation_token,
                        },
                    ),
                ]
            )
        except StoreError as exc:
            logger.warning("Sign-up failed for %s: %s", email, exc)
            if "UNIQUE" in str(exc):
                raise AuthError("User already registered") from exc
            raise AuthError("Unable to create account") from exc
        logger.info("Signed up %s as %s", email, role)
        self._emit("SIGNED_UP", profile)

        if confirmation_token is not None:
            self.mailer(email, confirmation_token)
            return SignUpResult(user=profile, session_token=None, confirmation_token=confirmation_token)
        return SignUpResult(user=profile, session_token=self._start_session(profile))

    def resend_confirmation(self, email: str) -> str:
        """Issue a fresh confirmation token for an unconfirmed account."""

        credentials = self._credentials_for(email)
        if credentials is None:
            raise AuthError("User not found")
        if credentials["confirmed"]:
            raise AuthError("Email already confirmed")
        token = secrets.token_urlsafe(24)
        self.store.update("credentials", credentials["id"], {"confirmation_token": token})
        self.mailer(credentials["email"], token)
        return token

    def confirm_email(self, token: str) -> Profile:
        rows = self.store.select("credentials", confirmation_token=token) if token else []
        if not rows:
            raise AuthError("Confirmation link is invalid or has expired")
        credentials = rows[0]
        self.store.update("credentials", credentials["id"], {"confirmed": True, "confirmation_token": None})
        profile = self.store.profile(credentials["id"])
        logger.info("Confirmed email for %s", credentials["email"])
        return profile

    # ==================== Sessions ====================

    def _start_session(self, profile: Profile) -> str:
        token = secrets.token_urlsafe(32)
        self.store.insert("sessions", {"id": token, "user_id": profile.id})
        self._emit("SIGNED_IN", profile)
        return token

    def sign_in(self, email: str, password: str) -> str:
        """Return a session token or raise ``AuthError``."""

        credentials = self._credentials_for(email)
        if credentials is None or not check_password_hash(credentials["password_hash"], password):
            logger.warning("Sign-in failed for %s", email)
            raise AuthError(INVALID_CREDENTIALS)
        if not credentials["confirmed"]:
            raise AuthError(EMAIL_NOT_CONFIRMED)

        profile = self.store.profile(credentials["id"])
        return self._start_session(profile)

    def sign_out(self, token: Optional[str]) -> None:
        profile = self.get_current_user(token)
        if token:
            self.store.delete("sessions", token)
        self._emit("SIGNED_OUT", profile)

    def get_current_user(self, token: Optional[str]) -> Optional[Profile]:
        """Resolve a session token to its profile, or ``None``."""

        if not token:
            return None
        session = self.store.get("sessions", token)
        if session is None:
            return None
        return self.store.profile(session["user_id"])
