"""Outbound email.

Only the password-reset flow sends mail. In development (no SMTP_HOST) the
message is printed instead of delivered.
"""

from __future__ import annotations

import smtplib
from email.message import EmailMessage
from typing import Protocol

from shop_accounts.config import Config


def _debug(msg: str) -> None:
    print(f"[email] {msg}")


class EmailSender(Protocol):
    def send(self, to: str, subject: str, body: str) -> None:
        ...


class SmtpEmailSender:
    def __init__(
        self,
        *,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = int(port)
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, to: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)
        _debug(f"Sent '{subject}' to {to}")


class ConsoleEmailSender:
    def send(self, to: str, subject: str, body: str) -> None:
        _debug(f"SMTP not configured; to={to} subject={subject!r}\n{body}")


def build_email_sender(cfg: Config) -> EmailSender:
    if not cfg.SMTP_HOST:
        return ConsoleEmailSender()
    return SmtpEmailSender(
        host=cfg.SMTP_HOST,
        port=cfg.SMTP_PORT,
        sender=cfg.EMAIL_FROM,
        username=cfg.SMTP_USERNAME,
        password=cfg.SMTP_PASSWORD,
        use_tls=cfg.SMTP_USE_TLS,
        timeout=cfg.SMTP_TIMEOUT_SECONDS,
    )
