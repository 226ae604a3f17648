# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Exceptions raised by the request pipeline.

Each exception carries the HTTP status and the ``error``/``message`` pair of
the JSON error body it maps to. The API layer registers a single handler for
:class:`MailGatewayError` that renders them as :class:`ErrorResponse`.
"""

from __future__ import annotations


class MailGatewayError(RuntimeError):
    """Base class for errors that surface to the caller as JSON."""

    status_code = 500

    def __init__(self, error: str, message: str = ""):
        super().__init__(error)
        self.error = error
        self.message = message

    def to_dict(self) -> dict[str, object]:
        """Return the ``ErrorResponse`` payload for this error."""
        return {"error": self.error, "code": self.status_code, "message": self.message}


class InvalidRequestBody(MailGatewayError):
    """Raised when the payload is not a JSON object with string fields."""

    status_code = 400

    def __init__(self, message: str = "Failed to parse JSON"):
        super().__init__("Invalid request body", message)


class RequestValidationFailed(MailGatewayError):
    """Raised when a parsed request breaks a field rule."""

    status_code = 400

    def __init__(self, error: str):
        super().__init__(error, "Validation failed")


class RateLimitExceeded(MailGatewayError):
    """Raised when a client sends again inside the cooldown window."""

    status_code = 429

    def __init__(self, window_seconds: float = 5):
        super().__init__(
            "Rate limit exceeded",
            f"Please wait {window_seconds:g} seconds before sending another email",
        )
        self.window_seconds = window_seconds


class MailSendError(MailGatewayError):
    """Raised by a sender when the SMTP dialogue fails.

    ``detail`` holds the underlying transport, authentication or timeout
    error text and becomes the ``message`` field of the response.
    """

    status_code = 500

    def __init__(self, detail: str):
        super().__init__("Failed to send email", detail)
        self.detail = detail
