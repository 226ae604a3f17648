# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Shared application state injected into the HTTP layer."""

from __future__ import annotations

from dataclasses import dataclass, field

from .config import Settings
from .handler import EmailHandler
from .prometheus import MailMetrics
from .rate_limit import ClientIdentity, RateLimiter
from .senders import MailSender, select_sender
from .stats import StatsTracker


@dataclass
class AppState:
    """Everything a request may read or mutate, built once at startup.

    Attributes:
        settings: Resolved service settings.
        sender: Mock or SMTP sender selected from ``settings.smtp``.
        stats: Delivery counters.
        rate_limiter: Cooldown table for the send routes.
        identity: Rate-limit key extraction strategy.
        metrics: Prometheus counters.
    """

    settings: Settings
    sender: MailSender
    stats: StatsTracker = field(default_factory=StatsTracker)
    rate_limiter: RateLimiter = field(default_factory=RateLimiter)
    identity: ClientIdentity = field(default_factory=ClientIdentity)
    metrics: MailMetrics = field(default_factory=MailMetrics)

    @classmethod
    def from_settings(cls, settings: Settings, sender: MailSender | None = None) -> AppState:
        """Build the state, selecting the sender unless one is given."""
        return cls(
            settings=settings,
            sender=sender or select_sender(settings.smtp, timeout=settings.smtp_timeout),
            rate_limiter=RateLimiter(window_seconds=settings.rate_limit_seconds),
            identity=ClientIdentity(trust_forwarded_for=settings.trust_forwarded_for),
        )

    @property
    def handler(self) -> EmailHandler:
        return EmailHandler(self.stats, self.sender, self.metrics)
