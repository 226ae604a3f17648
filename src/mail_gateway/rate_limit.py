# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Per-client cooldown rate limiter for the send routes.

A client may send one email per window (5 seconds by default). The limiter
keeps, for every client identity, the time of the last accepted request.
A request arriving inside the window is rejected and does not move the
stored timestamp, so a client hammering the endpoint is unblocked as soon as
the first window elapses.

Entries older than the window carry no information and are evicted by
:meth:`RateLimiter.sweep`, which the server runs periodically and which
:meth:`RateLimiter.check` also runs when the table grows past
``max_entries``.

Example:
    Gating a request::

        limiter = RateLimiter(window_seconds=5)
        identity = ClientIdentity(trust_forwarded_for=False)(request)
        if not await limiter.check(identity):
            raise RateLimitExceeded(limiter.window_seconds)
"""

import asyncio
import logging
import time
from collections.abc import Callable

from starlette.requests import Request

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


class ClientIdentity:
    """Extract the rate-limit key from a request.

    By default the key is the transport peer host. Behind a reverse proxy
    every client shares the proxy address, so ``trust_forwarded_for`` keys on
    the first address of ``X-Forwarded-For`` instead. Only enable it when
    the proxy overwrites that header.
    """

    def __init__(self, trust_forwarded_for: bool = False, header: str = "X-Forwarded-For"):
        self.trust_forwarded_for = trust_forwarded_for
        self.header = header

    def __call__(self, request: Request) -> str:
        if self.trust_forwarded_for:
            forwarded = request.headers.get(self.header, "")
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        if request.client and request.client.host:
            return request.client.host
        return UNKNOWN_CLIENT


class RateLimiter:
    """Cooldown limiter keyed by client identity.

    Attributes:
        window_seconds: Minimum interval between two accepted requests of the
            same client.
        max_entries: Table size above which ``check`` sweeps stale entries.
    """

    def __init__(
        self,
        window_seconds: float = 5,
        *,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize an empty limiter.

        Args:
            window_seconds: Cooldown window in seconds.
            max_entries: Soft bound on tracked clients.
            clock: Monotonic time source, replaceable in tests.
        """
        self.window_seconds = window_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._last_seen: dict[str, float] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._last_seen)

    async def check(self, identity: str) -> bool:
        """Return True and record the request if the client is outside its window.

        A rejected request leaves the stored timestamp untouched.
        """
        async with self._lock:
            now = self._clock()
            previous = self._last_seen.get(identity)
            if previous is not None and now - previous < self.window_seconds:
                logger.warning(
                    "Rate limit hit for %s: %.2fs since last send (window %ss)",
                    identity, now - previous, self.window_seconds,
                )
                return False
            self._last_seen[identity] = now
            if len(self._last_seen) > self.max_entries:
                self._evict(now)
        return True

    async def sweep(self) -> int:
        """Drop entries whose window has elapsed.

        Returns:
            Number of evicted entries.
        """
        async with self._lock:
            return self._evict(self._clock())

    def _evict(self, now: float) -> int:
        stale = [key for key, seen in self._last_seen.items() if now - seen >= self.window_seconds]
        for key in stale:
            del self._last_seen[key]
        if stale:
            logger.debug("Evicted %d stale rate-limit entries", len(stale))
        return len(stale)

    async def run_sweeper(self, interval: float) -> None:
        """Sweep forever every ``interval`` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            await self.sweep()
