# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Send-request pipeline: parse, validate, count, dispatch.

:class:`EmailHandler` turns the raw body of a send request into an
:class:`EmailResponse` or raises a :class:`MailGatewayError` subclass that the
API layer renders as an :class:`ErrorResponse`:

1. Parse the body as a JSON object with string fields
   (:class:`InvalidRequestBody`, 400).
2. Validate ``to``, ``subject``, ``body`` and the body length, in this order
   (:class:`RequestValidationFailed`, 400).
3. Count the attempt and stamp the last-email time.
4. Dispatch through the sender chosen at startup. A
   :class:`MailSendError` is counted as a failure and re-raised (500).
"""

from __future__ import annotations

import json
import logging
import time

from pydantic import ValidationError

from .errors import InvalidRequestBody, MailSendError, RequestValidationFailed
from .models import MAX_BODY_LENGTH, EmailRequest, EmailResponse
from .prometheus import MailMetrics
from .senders import MailSender
from .stats import StatsTracker

logger = logging.getLogger(__name__)


def generate_email_id() -> str:
    """Return a process-unique identifier such as ``email_1718000000123456789``."""
    return f"email_{time.time_ns()}"


def parse_email_request(raw: bytes | str) -> EmailRequest:
    """Decode a request body into an :class:`EmailRequest`."""
    try:
        data = json.loads(raw)
        if data is None:
            # A bare null body is an empty request.
            data = {}
        return EmailRequest.model_validate(data)
    except (ValueError, ValidationError) as exc:
        logger.debug("Rejecting unparsable request body: %s", exc)
        raise InvalidRequestBody() from exc


def validate_email_request(request: EmailRequest) -> None:
    """Raise :class:`RequestValidationFailed` for the first broken field rule."""
    if not request.to:
        raise RequestValidationFailed("email address is required")
    if not request.subject:
        raise RequestValidationFailed("subject is required")
    if not request.body:
        raise RequestValidationFailed("message body is required")
    if len(request.body) > MAX_BODY_LENGTH:
        raise RequestValidationFailed(f"message body too long (max {MAX_BODY_LENGTH} characters)")


class EmailHandler:
    """Orchestrate a single send request against the shared state."""

    def __init__(self, stats: StatsTracker, sender: MailSender, metrics: MailMetrics | None = None):
        self.stats = stats
        self.sender = sender
        self.metrics = metrics or MailMetrics()

    async def handle(self, raw: bytes | str) -> EmailResponse:
        try:
            request = parse_email_request(raw)
            validate_email_request(request)
        except (InvalidRequestBody, RequestValidationFailed):
            self.metrics.inc("invalid")
            raise
        return await self.dispatch(request)

    async def dispatch(self, request: EmailRequest) -> EmailResponse:
        """Send an already validated request and record the outcome."""
        await self.stats.record_attempt()
        try:
            result = await self.sender.send(request)
        except MailSendError as exc:
            await self.stats.record_failure()
            self.metrics.inc("failed")
            logger.error("Error sending email to %s: %s", request.to, exc.detail)
            raise
        await self.stats.record_success()
        self.metrics.inc("mock" if result.mode == "mock" else "sent")
        return EmailResponse(success=True, message=result.message, id=generate_email_id())
