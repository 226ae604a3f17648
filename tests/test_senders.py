"""Tests for the mock and SMTP senders."""

import asyncio
import socket
import time

import aiosmtplib
import pytest
import pytest_asyncio
from aiosmtpd.controller import Controller
from aiosmtpd.smtp import AuthResult

from mail_gateway.config import SMTPConfig
from mail_gateway.errors import MailSendError
from mail_gateway.models import EmailRequest
from mail_gateway.senders import MockSender, SmtpSender, select_sender

VALID_CONFIG = SMTPConfig(
    host="127.0.0.1",
    port=2525,
    user="mailer",
    password="secret",
    from_email="noreply@example.com",
)
REQUEST = EmailRequest(to="a@b.com", subject="Hi", body="test")


def get_free_port() -> int:
    """Find a free port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.listen(1)
        port = s.getsockname()[1]
    return port


class CapturingHandler:
    """SMTP handler that captures received messages."""

    def __init__(self):
        self.messages = []

    async def handle_DATA(self, server, session, envelope):
        self.messages.append({
            "from": envelope.mail_from,
            "to": envelope.rcpt_tos,
            "data": envelope.content.decode("utf-8", errors="replace"),
        })
        return "250 Message accepted for delivery"


def authenticator(server, session, envelope, mechanism, auth_data):
    ok = auth_data.login == b"mailer" and auth_data.password == b"secret"
    return AuthResult(success=ok)


@pytest.fixture
def smtp_server():
    handler = CapturingHandler()
    port = get_free_port()
    controller = Controller(
        handler,
        hostname="127.0.0.1",
        port=port,
        authenticator=authenticator,
        auth_require_tls=False,
    )
    controller.start()
    try:
        yield handler, port
    finally:
        controller.stop()


class DummySMTP:
    def __init__(self, hostname, port, use_tls=False, start_tls=None, timeout=None):
        self.hostname = hostname
        self.port = port
        self.use_tls = use_tls
        self.start_tls = start_tls
        self.timeout = timeout
        self.is_connected = False
        self.closed = False
        self.connect_delay = 0
        self.login_error = None
        self.sent = []

    async def connect(self):
        await asyncio.sleep(self.connect_delay)
        self.is_connected = True

    async def login(self, user, password):
        if self.login_error:
            raise self.login_error

    async def send_message(self, msg):
        self.sent.append(msg)

    async def quit(self):
        self.is_connected = False

    def close(self):
        self.closed = True
        self.is_connected = False


@pytest.fixture
def dummy_smtp(monkeypatch):
    created = []
    options = {}

    def factory(**kwargs):
        smtp = DummySMTP(**kwargs)
        for key, value in options.items():
            setattr(smtp, key, value)
        created.append(smtp)
        return smtp

    monkeypatch.setattr("mail_gateway.senders.aiosmtplib.SMTP", factory)
    return created, options


@pytest.mark.asyncio
async def test_mock_sender_makes_simulated_message():
    result = await MockSender().send(REQUEST)
    assert result.mode == "mock"
    assert result.message == "Mock email sent to a@b.com: Hi"


def test_select_sender_by_config_validity():
    assert isinstance(select_sender(SMTPConfig()), MockSender)
    sender = select_sender(VALID_CONFIG, timeout=12)
    assert isinstance(sender, SmtpSender)
    assert sender.timeout == 12


def test_build_message_headers_and_body():
    msg = SmtpSender(VALID_CONFIG).build_message(REQUEST)
    assert msg["From"] == "noreply@example.com"
    assert msg["To"] == "a@b.com"
    assert msg["Subject"] == "Hi"
    assert msg.get_content_type() == "text/plain"
    assert msg.get_content().strip() == "test"


@pytest.mark.asyncio
async def test_smtp_sender_dialogue(dummy_smtp):
    created, _ = dummy_smtp
    result = await SmtpSender(VALID_CONFIG, timeout=5).send(REQUEST)

    assert result.message == "Email sent successfully to a@b.com"
    smtp = created[0]
    assert smtp.hostname == "127.0.0.1"
    assert smtp.use_tls is False
    assert smtp.start_tls is None
    assert len(smtp.sent) == 1
    assert smtp.is_connected is False


@pytest.mark.asyncio
async def test_port_465_uses_implicit_tls(dummy_smtp):
    created, _ = dummy_smtp
    config = SMTPConfig("smtp.example.com", 465, "u", "p", "f@example.com")
    await SmtpSender(config).send(REQUEST)
    assert created[0].use_tls is True
    assert created[0].start_tls is False


@pytest.mark.asyncio
async def test_auth_failure_becomes_send_error(dummy_smtp):
    created, options = dummy_smtp
    options["login_error"] = aiosmtplib.SMTPAuthenticationError(535, "Authentication failed")

    with pytest.raises(MailSendError) as excinfo:
        await SmtpSender(VALID_CONFIG).send(REQUEST)

    assert "Authentication failed" in excinfo.value.detail
    assert excinfo.value.status_code == 500
    assert created[0].is_connected is False
    assert created[0].closed is True


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["to", "subject"])
async def test_header_injection_becomes_send_error(dummy_smtp, field):
    created, _ = dummy_smtp
    values = {"to": "a@b.com", "subject": "Hi", "body": "test"}
    values[field] = values[field] + "\r\nBcc: victim@example.com"

    with pytest.raises(MailSendError) as excinfo:
        await SmtpSender(VALID_CONFIG).send(EmailRequest(**values))

    assert excinfo.value.status_code == 500
    assert created[0].sent == []
    assert created[0].is_connected is False


@pytest.mark.asyncio
async def test_slow_server_hits_timeout(dummy_smtp):
    created, options = dummy_smtp
    options["connect_delay"] = 1

    with pytest.raises(MailSendError) as excinfo:
        await SmtpSender(VALID_CONFIG, timeout=0.05).send(REQUEST)

    assert "timed out" in excinfo.value.detail
    assert created[0].closed is True


@pytest_asyncio.fixture
async def stalled_smtp_server():
    """Server that accepts AUTH, then never answers MAIL FROM or QUIT."""

    async def handle(reader, writer):
        writer.write(b"220 localhost ready\r\n")
        await writer.drain()
        while True:
            line = await reader.readline()
            if not line:
                break
            verb = line.split(b" ", 1)[0].strip().upper()
            if verb in (b"EHLO", b"HELO"):
                writer.write(b"250-localhost\r\n250 AUTH PLAIN LOGIN\r\n")
            elif verb == b"AUTH":
                writer.write(b"235 Authentication successful\r\n")
            await writer.drain()
        writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        yield port
    finally:
        server.close()


@pytest.mark.asyncio
async def test_stalled_server_fails_within_timeout(stalled_smtp_server):
    config = SMTPConfig("127.0.0.1", stalled_smtp_server, "mailer", "secret", "noreply@example.com")
    timeout = 0.5

    started = time.monotonic()
    with pytest.raises(MailSendError) as excinfo:
        await SmtpSender(config, timeout=timeout).send(REQUEST)
    elapsed = time.monotonic() - started

    assert "timed out" in excinfo.value.detail.lower()
    assert elapsed < timeout + 0.4


@pytest.mark.asyncio
async def test_delivers_to_real_smtp_server(smtp_server):
    handler, port = smtp_server
    config = SMTPConfig("127.0.0.1", port, "mailer", "secret", "noreply@example.com")

    result = await SmtpSender(config, timeout=10).send(REQUEST)

    assert result.mode == "smtp"
    assert len(handler.messages) == 1
    received = handler.messages[0]
    assert received["from"] == "noreply@example.com"
    assert received["to"] == ["a@b.com"]
    assert "Subject: Hi" in received["data"]


@pytest.mark.asyncio
async def test_wrong_password_rejected_by_real_server(smtp_server):
    handler, port = smtp_server
    config = SMTPConfig("127.0.0.1", port, "mailer", "wrong", "noreply@example.com")

    with pytest.raises(MailSendError):
        await SmtpSender(config, timeout=10).send(REQUEST)

    assert handler.messages == []


@pytest.mark.asyncio
async def test_unreachable_server_becomes_send_error():
    config = SMTPConfig("127.0.0.1", get_free_port(), "mailer", "secret", "noreply@example.com")
    with pytest.raises(MailSendError):
        await SmtpSender(config, timeout=5).send(REQUEST)
