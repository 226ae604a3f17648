"""Shared fixtures for the mail gateway test suite."""

import pytest

from mail_gateway.config import Settings
from mail_gateway.errors import MailSendError
from mail_gateway.rate_limit import RateLimiter
from mail_gateway.senders import MailSender, MockSender, SendResult
from mail_gateway.state import AppState


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class DummySender(MailSender):
    """Sender that records requests and fails on demand."""

    mode = "smtp"

    def __init__(self):
        self.sent = []
        self.fail_with = None

    async def send(self, request):
        if self.fail_with is not None:
            raise MailSendError(self.fail_with)
        self.sent.append(request)
        return SendResult(message=f"Email sent successfully to {request.to}", mode=self.mode)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def dummy_sender():
    return DummySender()


@pytest.fixture
def make_state(clock):
    def factory(sender=None, window=5, **settings_kwargs):
        settings = Settings(rate_limit_seconds=window, **settings_kwargs)
        state = AppState.from_settings(settings, sender=sender or MockSender())
        state.rate_limiter = RateLimiter(window_seconds=window, clock=clock)
        return state

    return factory
