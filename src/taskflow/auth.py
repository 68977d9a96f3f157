"""
Login gate in front of the hosted authentication backend.

The controller owns everything the login screen needs to decide whether a
submission may go out: input checks, the per-email attempt window, the
captcha token and the cooldown after a failure. The backend itself is an
external collaborator reached through the AuthBackend protocol.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional, Protocol

from .ratelimit import AttemptTracker, Cooldown

logger = logging.getLogger(__name__)

Mode = Literal["sign_in", "sign_up"]

MISSING_CREDENTIALS = "Please enter both email and password"
RATE_LIMITED = "Too many attempts. Please wait a minute and try again."
CAPTCHA_REQUIRED = "Please complete the captcha verification"
CAPTCHA_FAILED = "Captcha verification failed. Please try again."
GENERIC_FAILURE = "An error occurred during authentication"
SIGNED_UP = "Account created successfully! You can now sign in."


# PUBLIC_INTERFACE
class AuthBackendError(Exception):
    """Raised by an auth backend; message is meant to be shown to the user."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class AuthSession:
    email: str
    access_token: Optional[str] = None


# PUBLIC_INTERFACE
class AuthBackend(Protocol):
    """Hosted sign-in/sign-up service."""

    async def sign_in(self, email: str, password: str, captcha_token: str) -> AuthSession:
        ...

    async def sign_up(self, email: str, password: str, captcha_token: str) -> None:
        ...


# PUBLIC_INTERFACE
class CaptchaSession:
    """
    Last known state of the captcha widget. Only a held token allows a
    submission; expiry, widget errors and resets all drop it.
    """

    def __init__(self) -> None:
        self.token: Optional[str] = None
        self.resets = 0

    @property
    def valid(self) -> bool:
        return self.token is not None

    def verify(self, token: str) -> None:
        self.token = token

    def expire(self) -> None:
        self.token = None

    def fail(self) -> None:
        self.token = None

    def reset(self) -> None:
        """Ask the widget for a fresh challenge."""
        self.token = None
        self.resets += 1


@dataclass(frozen=True)
class LoginOutcome:
    """
    Result of one submission.

    status is one of: blocked, invalid, rate_limited, captcha_required,
    error, signed_in, signed_up.
    """
    status: str
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in ("signed_in", "signed_up")


# PUBLIC_INTERFACE
class LoginController:
    """
    State behind the sign-in / sign-up form. Build one per session and keep
    passing the same instance around; the attempt window lives on it.
    """

    def __init__(
        self,
        backend: AuthBackend,
        tracker: Optional[AttemptTracker] = None,
        cooldown: Optional[Cooldown] = None,
    ) -> None:
        self.backend = backend
        self.tracker = tracker if tracker is not None else AttemptTracker()
        self.cooldown = cooldown if cooldown is not None else Cooldown()
        self.captcha = CaptchaSession()
        self.mode: Mode = "sign_in"
        self.show_form = True
        self.loading = False
        self.error: Optional[str] = None
        self.success_message: Optional[str] = None
        self.session: Optional[AuthSession] = None

    @property
    def submit_enabled(self) -> bool:
        return not self.loading and not self.cooldown.active and self.captcha.valid

    # -------------------- captcha signals --------------------
    def captcha_verified(self, token: str) -> None:
        self.captcha.verify(token)

    def captcha_expired(self) -> None:
        self.captcha.expire()

    def captcha_failed(self, detail: Optional[str] = None) -> None:
        logger.error("Captcha widget error: %s", detail)
        self.captcha.fail()
        self.error = CAPTCHA_FAILED

    # -------------------- form --------------------
    def reset_form(self) -> None:
        self.error = None
        self.success_message = None
        self.captcha.reset()

    def switch_mode(self, mode: Optional[Mode] = None) -> None:
        """Flip between sign-in and sign-up (or select one); the form is reset."""
        if mode is None:
            mode = "sign_up" if self.mode == "sign_in" else "sign_in"
        self.mode = mode
        self.reset_form()

    def cancel(self) -> None:
        self.show_form = False
        self.reset_form()

    def open_form(self) -> None:
        self.show_form = True

    # -------------------- submission --------------------
    async def submit(self, email: str, password: str) -> LoginOutcome:
        """
        Run one submission through the gate and, when it passes, the backend.

        Nothing is retried. A backend failure shows its message, locks the
        form for the cooldown and resets the captcha.
        """
        if self.loading or self.cooldown.active:
            return LoginOutcome("blocked", self.error)

        email = email.strip()
        if not email or not password:
            self.error = MISSING_CREDENTIALS
            return LoginOutcome("invalid", self.error)

        if not self.tracker.try_acquire(email):
            self.error = RATE_LIMITED
            self.cooldown.start()
            return LoginOutcome("rate_limited", self.error)

        token = self.captcha.token
        if token is None:
            self.error = CAPTCHA_REQUIRED
            return LoginOutcome("captcha_required", self.error)

        self.loading = True
        self.error = None
        self.success_message = None
        try:
            if self.mode == "sign_up":
                await self.backend.sign_up(email, password, token)
                self.mode = "sign_in"
                self.reset_form()
                self.success_message = SIGNED_UP
                logger.info("Sign-up succeeded")
                return LoginOutcome("signed_up", self.success_message)

            self.session = await self.backend.sign_in(email, password, token)
            self.captcha.reset()
            logger.info("Sign-in succeeded")
            return LoginOutcome("signed_in")
        except AuthBackendError as e:
            self.error = e.message or GENERIC_FAILURE
            logger.warning("Authentication failed (%s): %s", self.mode, self.error)
            self.cooldown.start()
            self.captcha.reset()
            return LoginOutcome("error", self.error)
        finally:
            self.loading = False
