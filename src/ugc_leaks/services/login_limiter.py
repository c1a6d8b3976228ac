from __future__ import annotations

import logging
import time
from collections.abc import Callable

from ugc_leaks.domain.models import LoginAttemptRecord, RateLimitConfig, RateLimitDecision

logger = logging.getLogger(__name__)

_PURGE_INTERVAL_SECONDS = 5 * 60


def attempt_key(purpose: str, client_address: str) -> str:
    return f"{purpose}:{client_address}"


class LoginLimiter:
    """
    Per-key attempt counter with a fixed window and a lockout period.

    A block is sticky: while ``blocked_until`` lies in the future the key is
    denied, even if its counting window has already run out.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._records: dict[str, LoginAttemptRecord] = {}
        self._last_purge = clock()

    def check_rate_limit(self, key: str, config: RateLimitConfig) -> RateLimitDecision:
        now = self._clock()
        self._maybe_purge(now)

        record = self._records.get(key)
        if record is not None and record.blocked_until is not None:
            if now < record.blocked_until:
                return RateLimitDecision(
                    allowed=False, blocked=True, reset_in=record.blocked_until - now
                )
            # Block served, start over.
            record = None

        if record is None or now - record.window_start >= config.window_seconds:
            record = LoginAttemptRecord(
                count=0, window_start=now, window_seconds=config.window_seconds
            )
            self._records[key] = record

        if record.count < config.max_requests:
            record.count += 1
            return RateLimitDecision(
                allowed=True,
                blocked=False,
                reset_in=record.window_start + config.window_seconds - now,
                remaining=config.max_requests - record.count,
            )

        record.blocked_until = now + config.block_duration_seconds
        logger.warning(
            "Too many attempts for %s, blocking for %.0fs", key, config.block_duration_seconds
        )
        return RateLimitDecision(
            allowed=False, blocked=True, reset_in=config.block_duration_seconds
        )

    def clear_rate_limit(self, key: str) -> None:
        self._records.pop(key, None)

    def purge_expired(self) -> int:
        """Drops records whose window and block have both elapsed. Returns the count."""
        now = self._clock()
        expired = [
            key
            for key, record in self._records.items()
            if now - record.window_start >= record.window_seconds
            and (record.blocked_until is None or now >= record.blocked_until)
        ]
        for key in expired:
            del self._records[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._records)

    def _maybe_purge(self, now: float) -> None:
        if now - self._last_purge < _PURGE_INTERVAL_SECONDS:
            return
        self._last_purge = now
        self.purge_expired()
