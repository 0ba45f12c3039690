from dataclasses import replace

import pytest

from shop_accounts.notify import email as email_mod
from shop_accounts.notify.email import ConsoleEmailSender, SmtpEmailSender, build_email_sender


class FakeSMTP:
    """Stands in for smtplib.SMTP and records every session opened."""

    sessions = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.calls = []
        self.messages = []
        FakeSMTP.sessions.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.calls.append("quit")
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, username, password):
        self.calls.append(("login", username, password))

    def send_message(self, msg):
        self.calls.append("send_message")
        self.messages.append(msg)


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.sessions = []
    monkeypatch.setattr(email_mod.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


# =============================================================================
# build_email_sender
# =============================================================================


def test_console_sender_without_smtp_host(cfg):
    assert isinstance(build_email_sender(cfg), ConsoleEmailSender)


def test_smtp_sender_from_config(cfg):
    smtp_cfg = replace(
        cfg,
        SMTP_HOST="smtp.example.com",
        SMTP_PORT=2525,
        SMTP_USERNAME="mailer",
        SMTP_PASSWORD="secret",
        SMTP_USE_TLS=False,
        SMTP_TIMEOUT_SECONDS=3.0,
        EMAIL_FROM="shop@example.com",
    )

    sender = build_email_sender(smtp_cfg)

    assert isinstance(sender, SmtpEmailSender)
    assert sender.host == "smtp.example.com"
    assert sender.port == 2525
    assert sender.sender == "shop@example.com"
    assert sender.username == "mailer"
    assert sender.use_tls is False
    assert sender.timeout == 3.0


# =============================================================================
# SmtpEmailSender.send
# =============================================================================


def test_smtp_send_with_tls_and_login(fake_smtp):
    sender = SmtpEmailSender(
        host="smtp.example.com",
        port=587,
        sender="shop@example.com",
        username="mailer",
        password="secret",
        timeout=5.0,
    )

    sender.send("ann@x.com", "Reset your password", "Use this link: http://x/verify/abc")

    [session] = fake_smtp.sessions
    assert (session.host, session.port, session.timeout) == ("smtp.example.com", 587, 5.0)
    assert session.calls == ["starttls", ("login", "mailer", "secret"), "send_message", "quit"]

    [msg] = session.messages
    assert msg["From"] == "shop@example.com"
    assert msg["To"] == "ann@x.com"
    assert msg["Subject"] == "Reset your password"
    assert "http://x/verify/abc" in msg.get_content()


def test_smtp_send_plain_without_credentials(fake_smtp):
    sender = SmtpEmailSender(host="localhost", port=25, sender="shop@example.com", use_tls=False)

    sender.send("ann@x.com", "Hi", "body")

    [session] = fake_smtp.sessions
    assert session.calls == ["send_message", "quit"]


def test_smtp_send_error_propagates(monkeypatch):
    class RefusingSMTP(FakeSMTP):
        def send_message(self, msg):
            raise email_mod.smtplib.SMTPRecipientsRefused({"ann@x.com": (550, b"no such user")})

    monkeypatch.setattr(email_mod.smtplib, "SMTP", RefusingSMTP)
    sender = SmtpEmailSender(host="localhost", port=25, sender="shop@example.com", use_tls=False)

    with pytest.raises(email_mod.smtplib.SMTPRecipientsRefused):
        sender.send("ann@x.com", "Hi", "body")
