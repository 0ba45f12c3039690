"""
Shared pytest fixtures.

- cfg: a Config pointing at a throwaway SQLite file
- mailer: records outbound email instead of sending it
- accounts: an AccountService over that DB
- app / client: the FastAPI app and a TestClient (https, so Secure cookies round-trip)
"""

from datetime import datetime, timedelta, timezone
from typing import List, Tuple

import pytest
from fastapi.testclient import TestClient

from shop_accounts.api.server import create_app
from shop_accounts.auth.security import PasswordHasher, SessionTokenService
from shop_accounts.auth.service import AccountService
from shop_accounts.config import Config
from shop_accounts.db import init_db


TEST_SECRET = "test-signing-secret-0123456789abcdef0123456789abcdef"
# Low work factor keeps the suite fast; production default is much higher.
TEST_ROUNDS = 1000
API = "/api/v1/users"


class RecordingEmailSender:
    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str]] = []

    def send(self, to: str, subject: str, body: str) -> None:
        self.sent.append((to, subject, body))


class FailingEmailSender:
    def send(self, to: str, subject: str, body: str) -> None:
        raise ConnectionRefusedError("smtp down")


class FakeClock:
    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def cfg(tmp_path) -> Config:
    return Config(
        DB_DSN=str(tmp_path / "accounts.sqlite"),
        API_PREFIX=API,
        AUTH_JWT_SECRET=TEST_SECRET,
        AUTH_TOKEN_EXPIRE_MINUTES=1440,
        AUTH_PASSWORD_ROUNDS=TEST_ROUNDS,
        AUTH_COOKIE_NAME="token",
        AUTH_ROLE_COOKIE_NAME="role",
        AUTH_COOKIE_DOMAIN=None,
        AUTH_COOKIE_PATH="/",
        AUTH_COOKIE_SAMESITE="none",
        AUTH_COOKIE_SECURE=True,
        AUTH_BOOTSTRAP_ADMIN_EMAIL="",
        AUTH_BOOTSTRAP_ADMIN_PASSWORD="",
        AUTH_BOOTSTRAP_ADMIN_MOBILE="",
        RESET_LINK_BASE_URL="http://localhost:3000/api/v1/users/verify",
        SMTP_HOST=None,
        CORS_ALLOW_ORIGINS="",
    )


@pytest.fixture
def mailer() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def tokens() -> SessionTokenService:
    return SessionTokenService(secret=TEST_SECRET)


@pytest.fixture
def accounts(cfg, mailer, tokens) -> AccountService:
    init_db(cfg.DB_DSN)
    return AccountService(
        cfg,
        hasher=PasswordHasher(rounds=TEST_ROUNDS),
        tokens=tokens,
        mailer=mailer,
    )


@pytest.fixture
def app(cfg, mailer):
    return create_app(cfg, mailer=mailer)


@pytest.fixture
def client(app):
    with TestClient(app, base_url="https://testserver") as c:
        yield c


def register_payload(name="Ann", email="ann@x.com", password="pw123", mobile="5551234", role="customer"):
    return {"name": name, "email": email, "password": password, "mobile": mobile, "role": role}
