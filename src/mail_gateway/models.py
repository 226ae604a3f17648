# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic schemas for the HTTP surface of the mail gateway."""

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

MAX_BODY_LENGTH = 10_000


def _none_to_empty(value: Any) -> Any:
    """Treat an explicit JSON null as a missing string."""
    return "" if value is None else value


RequestStr = Annotated[str, BeforeValidator(_none_to_empty)]


class EmailRequest(BaseModel):
    """Payload accepted by the send routes.

    Missing fields default to the empty string so that the handler reports
    them with a field-specific message. Non-string values are rejected at
    parse time.
    """

    model_config = ConfigDict(strict=True)

    to: RequestStr = ""
    subject: RequestStr = ""
    body: RequestStr = ""


class EmailResponse(BaseModel):
    """Successful send (or simulated send)."""

    success: bool
    message: str
    id: str | None = None


class ErrorResponse(BaseModel):
    """JSON body of every 4xx/5xx response."""

    error: str
    code: int
    message: str


class HealthResponse(BaseModel):
    """Liveness payload returned by ``/health``."""

    status: str = "healthy"
    timestamp: datetime
    version: str
    services: dict[str, str] = Field(default_factory=dict)


class StatsResponse(BaseModel):
    """Snapshot of the delivery counters returned by ``/stats``."""

    total_emails_sent: int
    successful_emails: int
    failed_emails: int
    last_email_sent: datetime | None = None
    uptime: str
    uptime_seconds: float
