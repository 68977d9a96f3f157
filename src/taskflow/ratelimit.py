from __future__ import annotations

import logging
import time
from collections import OrderedDict, deque
from typing import Callable, Deque

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def _key(email: str) -> str:
    return email.strip().lower()


# PUBLIC_INTERFACE
class AttemptTracker:
    """
    Per-email authentication attempt counter over a rolling window.

    An attempt is allowed (and recorded) while fewer than max_attempts
    attempts for that email fall inside the last window_seconds. Rejected
    attempts are not recorded, so the lockout ends exactly one window after
    the oldest recorded attempt.

    Emails are kept in order of their latest recorded attempt, so those whose
    whole history has left the window are dropped from the front.
    """

    def __init__(self, max_attempts: int = 5, window_seconds: float = 60.0, clock: Clock = time.monotonic) -> None:
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._attempts: OrderedDict[str, Deque[float]] = OrderedDict()

    def _evict_expired(self, now: float) -> None:
        while self._attempts:
            key, stamps = next(iter(self._attempts.items()))
            if now - stamps[-1] <= self.window_seconds:
                break
            del self._attempts[key]

    def _count(self, key: str, now: float) -> int:
        stamps = self._attempts.get(key)
        if stamps is None:
            return 0
        while stamps and now - stamps[0] > self.window_seconds:
            stamps.popleft()
        if not stamps:
            del self._attempts[key]
        return len(stamps)

    def try_acquire(self, email: str) -> bool:
        """Record an attempt for the email; False when it is over the limit."""
        key = _key(email)
        now = self._clock()
        self._evict_expired(now)
        count = self._count(key, now)
        if count >= self.max_attempts:
            logger.warning("Rate limit hit (%d attempts in %.0fs)", count, self.window_seconds)
            return False
        self._attempts.setdefault(key, deque()).append(now)
        self._attempts.move_to_end(key)
        return True

    def attempts(self, email: str) -> int:
        """Attempts currently counted against the email."""
        now = self._clock()
        self._evict_expired(now)
        return self._count(_key(email), now)

    def tracked_emails(self) -> int:
        """Number of emails with at least one attempt inside the window."""
        self._evict_expired(self._clock())
        return len(self._attempts)

    def reset(self, email: str) -> None:
        self._attempts.pop(_key(email), None)


# PUBLIC_INTERFACE
class Cooldown:
    """A lockout that re-enables itself a fixed number of seconds after start()."""

    def __init__(self, seconds: float = 3.0, clock: Clock = time.monotonic) -> None:
        self.seconds = seconds
        self._clock = clock
        self._until = 0.0

    def start(self) -> None:
        self._until = self._clock() + self.seconds

    @property
    def active(self) -> bool:
        return self._clock() < self._until

    def remaining(self) -> float:
        return max(0.0, self._until - self._clock())
