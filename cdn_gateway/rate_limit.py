"""
Fixed-window rate limiting for mutating API calls.
"""

import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict

from fastapi import Request

from .logger import logger


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float  # Unix timestamp


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float  # Unix timestamp

    def retry_after(self, now: float) -> int:
        """Whole seconds until the window resets, at least 1."""
        return max(1, math.ceil(self.reset_at - now))


class RateLimiter(ABC):
    @abstractmethod
    def check(self, identifier: str) -> RateLimitResult:
        """Count one request for identifier and report whether it may proceed."""

    @abstractmethod
    def cleanup(self) -> int:
        """Drop elapsed windows, returning how many were removed."""


class FixedWindowRateLimiter(RateLimiter):
    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.time,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._limits: Dict[str, RateLimitEntry] = {}

    def __len__(self) -> int:
        return len(self._limits)

    def check(self, identifier: str) -> RateLimitResult:
        now = self._clock()
        entry = self._limits.get(identifier)

        # New identifier or elapsed window
        if entry is None or now >= entry.reset_at:
            entry = RateLimitEntry(count=0, reset_at=now + self.window_seconds)
            self._limits[identifier] = entry

        if entry.count >= self.max_requests:
            logger.warning(
                f"Rate limit exceeded for {identifier} ({entry.count} requests)"
            )
            return RateLimitResult(allowed=False, remaining=0, reset_at=entry.reset_at)

        entry.count += 1
        return RateLimitResult(
            allowed=True,
            remaining=self.max_requests - entry.count,
            reset_at=entry.reset_at,
        )

    def cleanup(self) -> int:
        now = self._clock()
        elapsed = [
            identifier
            for identifier, entry in self._limits.items()
            if now >= entry.reset_at
        ]
        for identifier in elapsed:
            del self._limits[identifier]

        if elapsed:
            logger.debug(f"Rate limit entries cleaned up: {len(elapsed)}")
        return len(elapsed)


def get_client_identifier(request: Request) -> str:
    """Client key for rate limiting, taken from proxy headers."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return "unknown"
