# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Python client for a running mail gateway.

Usage in REPL:
    >>> from mail_gateway.client import MailGatewayClient
    >>> gateway = MailGatewayClient("http://localhost:8080")
    >>> gateway.health()["status"]
    'healthy'
    >>> gateway.send_email("a@b.com", "Hi", "test")
    {'success': True, 'message': 'Mock email sent to a@b.com: Hi', 'id': 'email_...'}
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import requests

DEFAULT_URL = "http://localhost:8080"


class MailGatewayError(Exception):
    """Non-2xx answer from the gateway.

    Attributes:
        status_code: HTTP status of the response.
        error: ``error`` field of the JSON body, or the reason phrase.
        message: ``message`` field of the JSON body, if any.
    """

    def __init__(self, status_code: int, error: str, message: str = ""):
        super().__init__(f"{status_code} {error}" + (f": {message}" if message else ""))
        self.status_code = status_code
        self.error = error
        self.message = message

    @classmethod
    def from_response(cls, resp: requests.Response) -> MailGatewayError:
        try:
            data = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and "error" in data:
            return cls(resp.status_code, str(data["error"]), str(data.get("message", "")))
        return cls(resp.status_code, resp.reason or "HTTP error", resp.text[:200])


class MailGatewayClient:
    """Client for the gateway HTTP API.

    Args:
        url: Base URL of the gateway.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, url: str = DEFAULT_URL, timeout: float = 30):
        self.url = url.rstrip("/")
        self.timeout = timeout

    def _check(self, resp: requests.Response) -> Any:
        if not resp.ok:
            raise MailGatewayError.from_response(resp)
        return resp.json()

    def _get(self, path: str) -> Any:
        """Make a GET request."""
        resp = requests.get(f"{self.url}{path}", timeout=self.timeout)
        return self._check(resp)

    def _post(self, path: str, data: dict[str, Any]) -> Any:
        """Make a POST request."""
        resp = requests.post(
            f"{self.url}{path}",
            json=data,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )
        return self._check(resp)

    def send_email(self, to: str, subject: str, body: str) -> dict[str, Any]:
        """Submit one email.

        Raises:
            MailGatewayError: On validation (400), rate limit (429) or SMTP
                (500) errors.
        """
        return self._post("/send-email", {"to": to, "subject": subject, "body": body})

    def health(self) -> dict[str, Any]:
        """Get the liveness payload."""
        return self._get("/health")

    def stats(self) -> dict[str, Any]:
        """Get delivery counters."""
        return self._get("/stats")

    def is_healthy(self) -> bool:
        """Check if the gateway answers ``healthy``."""
        try:
            return self.health().get("status") == "healthy"
        except (requests.RequestException, MailGatewayError, ValueError):
            return False

    def backend_status(self) -> dict[str, Any]:
        """Fetch health and stats independently.

        A part that cannot be fetched is reported as ``None`` instead of
        failing the whole call.
        """
        parts: dict[str, Any] = {}
        for name, fetch in (("health", self.health), ("stats", self.stats)):
            try:
                parts[name] = fetch()
            except (requests.RequestException, MailGatewayError, ValueError):
                parts[name] = None
        return {
            **parts,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "backend_url": self.url,
        }

    def __repr__(self) -> str:
        return f"<MailGatewayClient '{self.url}'>"
