# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Process-wide delivery counters served by ``/stats``."""

import asyncio
import time
from datetime import datetime, timezone

from .models import StatsResponse


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _with_fraction(whole: int, fraction: int, digits: int) -> str:
    text = str(fraction).rjust(digits, "0").rstrip("0")
    return f"{whole}.{text}" if text else str(whole)


def format_duration(seconds: float) -> str:
    """Render a duration the way Go's ``time.Duration`` prints it.

    Examples: ``0s``, ``750ms``, ``42.5s``, ``2m0s``, ``1h2m3.5s``.
    """
    nanos = round(seconds * 1_000_000_000)
    sign = "-" if nanos < 0 else ""
    nanos = abs(nanos)
    if nanos == 0:
        return "0s"
    if nanos < 1_000:
        return f"{sign}{nanos}ns"
    if nanos < 1_000_000:
        return f"{sign}{_with_fraction(nanos // 1_000, nanos % 1_000, 3)}µs"
    if nanos < 1_000_000_000:
        return f"{sign}{_with_fraction(nanos // 1_000_000, nanos % 1_000_000, 6)}ms"
    whole_seconds, fraction = divmod(nanos, 1_000_000_000)
    hours, rest = divmod(whole_seconds, 3600)
    minutes, secs = divmod(rest, 60)
    text = f"{_with_fraction(secs, fraction, 9)}s"
    if hours or minutes:
        text = f"{minutes}m{text}"
    if hours:
        text = f"{hours}h{text}"
    return sign + text


class StatsTracker:
    """Lock-protected counters of send attempts and outcomes.

    ``total`` is incremented as soon as a request passes validation, and
    exactly one of ``success``/``failed`` once the send completes, so
    ``success + failed <= total`` holds at every observation.
    """

    def __init__(self):
        self.start_time = _utc_now()
        self._start_monotonic = time.monotonic()
        self.total_emails = 0
        self.success_emails = 0
        self.failed_emails = 0
        self.last_email_time: datetime | None = None
        self._lock = asyncio.Lock()

    async def record_attempt(self) -> None:
        """Count an accepted request and stamp the last-email time."""
        async with self._lock:
            self.total_emails += 1
            self.last_email_time = _utc_now()

    async def record_success(self) -> None:
        async with self._lock:
            self.success_emails += 1

    async def record_failure(self) -> None:
        async with self._lock:
            self.failed_emails += 1

    def uptime_seconds(self) -> float:
        return time.monotonic() - self._start_monotonic

    async def snapshot(self) -> StatsResponse:
        """Return a consistent copy of the counters."""
        async with self._lock:
            uptime = self.uptime_seconds()
            return StatsResponse(
                total_emails_sent=self.total_emails,
                successful_emails=self.success_emails,
                failed_emails=self.failed_emails,
                last_email_sent=self.last_email_time,
                uptime=format_duration(uptime),
                uptime_seconds=round(uptime, 3),
            )
