# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Prometheus metrics exposed by the mail gateway."""

from prometheus_client import CollectorRegistry, Counter, generate_latest

OUTCOMES = ("sent", "mock", "failed", "invalid", "rate_limited")


class MailMetrics:
    """Wrapper around a private Prometheus registry.

    A private registry keeps several app instances (as in tests) from
    colliding on the global default registry.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """Create the counters inside the provided registry."""
        self.registry = registry or CollectorRegistry()
        self.requests = Counter(
            "mail_gateway_requests_total",
            "Send requests by outcome",
            ["outcome"],
            registry=self.registry,
        )
        for outcome in OUTCOMES:
            self.requests.labels(outcome=outcome)

    def inc(self, outcome: str) -> None:
        """Increase the request counter for ``outcome``."""
        self.requests.labels(outcome=outcome).inc()

    def value(self, outcome: str) -> float:
        """Return the current count for ``outcome``."""
        return self.registry.get_sample_value("mail_gateway_requests_total", {"outcome": outcome}) or 0.0

    def generate_latest(self) -> bytes:
        """Return the latest metrics snapshot in Prometheus text format."""
        return generate_latest(self.registry)
