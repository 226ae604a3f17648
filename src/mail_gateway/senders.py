# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Mail sender implementations.

The gateway delivers through one of two senders, chosen once at startup by
:func:`select_sender`:

- :class:`SmtpSender` relays the message through the configured SMTP server
  with aiosmtplib. The whole dialogue (connect, TLS, AUTH, DATA, QUIT) is
  bounded by a timeout and attempted exactly once.
- :class:`MockSender` is used when the SMTP configuration is incomplete. It
  performs no network I/O and reports a simulated success.

Example:
    Sending through whichever sender the configuration allows::

        sender = select_sender(resolve_smtp_config(), timeout=30)
        result = await sender.send(EmailRequest(to="a@b.com", subject="Hi", body="test"))
        print(result.message)
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage

import aiosmtplib

from .config import DEFAULT_SMTP_TIMEOUT, SMTPConfig
from .errors import MailSendError
from .models import EmailRequest

logger = logging.getLogger(__name__)

IMPLICIT_TLS_PORT = 465


@dataclass
class SendResult:
    """Outcome of a successful send.

    Attributes:
        message: Human-readable confirmation returned to the caller.
        mode: ``"smtp"`` or ``"mock"``.
    """

    message: str
    mode: str


class MailSender(ABC):
    """Capability shared by the SMTP and mock senders."""

    mode: str = ""

    @abstractmethod
    async def send(self, request: EmailRequest) -> SendResult:
        """Deliver ``request`` or raise :class:`MailSendError`."""


class MockSender(MailSender):
    """Simulate delivery when no SMTP relay is configured."""

    mode = "mock"

    async def send(self, request: EmailRequest) -> SendResult:
        logger.info("Mock mode: not sending email to %s", request.to)
        return SendResult(message=f"Mock email sent to {request.to}: {request.subject}", mode=self.mode)


class SmtpSender(MailSender):
    """Relay messages through an SMTP server.

    Port 465 uses implicit TLS; any other port upgrades with STARTTLS when
    the server advertises it.
    """

    mode = "smtp"

    def __init__(self, config: SMTPConfig, timeout: float = DEFAULT_SMTP_TIMEOUT):
        self.config = config
        self.timeout = timeout

    def build_message(self, request: EmailRequest) -> EmailMessage:
        """Translate the request into a plain-text :class:`EmailMessage`."""
        msg = EmailMessage()
        msg["From"] = self.config.from_email
        msg["To"] = request.to
        msg["Subject"] = request.subject
        msg.set_content(request.body, subtype="plain")
        return msg

    def _client(self) -> aiosmtplib.SMTP:
        implicit_tls = self.config.port == IMPLICIT_TLS_PORT
        return aiosmtplib.SMTP(
            hostname=self.config.host,
            port=self.config.port,
            use_tls=implicit_tls,
            start_tls=False if implicit_tls else None,
            timeout=self.timeout,
        )

    async def _deliver(self, smtp: aiosmtplib.SMTP, msg: EmailMessage) -> None:
        await smtp.connect()
        await smtp.login(self.config.user, self.config.password)
        await smtp.send_message(msg)
        try:
            await smtp.quit()
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.debug("QUIT failed after delivery: %s", exc)

    async def send(self, request: EmailRequest) -> SendResult:
        smtp = self._client()
        try:
            # Header values with CR/LF raise ValueError here.
            msg = self.build_message(request)
            await asyncio.wait_for(self._deliver(smtp, msg), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise MailSendError(
                f"SMTP dialogue with {self.config.host}:{self.config.port} timed out after {self.timeout:g}s"
            ) from exc
        except (aiosmtplib.SMTPException, OSError, ValueError) as exc:
            raise MailSendError(str(exc) or exc.__class__.__name__) from exc
        finally:
            # Synchronous, so a stalled server cannot stretch the timeout.
            smtp.close()
        logger.info("Email sent to %s via %s:%s", request.to, self.config.host, self.config.port)
        return SendResult(message=f"Email sent successfully to {request.to}", mode=self.mode)


def select_sender(config: SMTPConfig, timeout: float = DEFAULT_SMTP_TIMEOUT) -> MailSender:
    """Return the SMTP sender for a valid config, the mock sender otherwise."""
    if config.is_valid():
        logger.info("SMTP relay configured: %s:%s as %s", config.host, config.port, config.user)
        return SmtpSender(config, timeout=timeout)
    logger.warning("Email configuration missing, using mock email service")
    return MockSender()
