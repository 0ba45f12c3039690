import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load a local .env file if present (no-op otherwise).
load_dotenv()


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    IMPORTANT: Provide secrets via environment variables or a .env file.
    Do not hardcode secrets in source code.
    """

    # -----------------
    # Core
    # -----------------
    # Preferred: set SHOP_DATABASE_URL (or DATABASE_URL) to use Postgres.
    # Fallback: SHOP_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("SHOP_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("SHOP_DB_PATH", "./shop_accounts.sqlite")
    )

    # All user routes are mounted under this prefix.
    API_PREFIX: str = os.environ.get("API_PREFIX", "/api/v1/users")

    # -----------------
    # Auth (JWT sessions)
    # -----------------
    # NOTE: In dev, this defaults to a fixed string so you can get started.
    # In production, you MUST set AUTH_JWT_SECRET to a strong random value.
    AUTH_JWT_SECRET: str = os.environ.get("AUTH_JWT_SECRET", "dev_change_me_to_a_long_random_value")
    AUTH_TOKEN_EXPIRE_MINUTES: int = int(os.environ.get("AUTH_TOKEN_EXPIRE_MINUTES", "1440"))  # 24 hours

    # pbkdf2_sha256 work factor. Lower only for tests.
    AUTH_PASSWORD_ROUNDS: int = int(os.environ.get("AUTH_PASSWORD_ROUNDS", "29000"))

    # Session cookies
    # - `token` carries the signed session (httpOnly)
    # - `role` is a convenience hint for the frontend; never used for authorization
    AUTH_COOKIE_NAME: str = os.environ.get("AUTH_COOKIE_NAME", "token")
    AUTH_ROLE_COOKIE_NAME: str = os.environ.get("AUTH_ROLE_COOKIE_NAME", "role")
    AUTH_COOKIE_DOMAIN: str | None = (os.environ.get("AUTH_COOKIE_DOMAIN") or "").strip() or None
    AUTH_COOKIE_PATH: str = os.environ.get("AUTH_COOKIE_PATH", "/")
    AUTH_COOKIE_SAMESITE: str = os.environ.get("AUTH_COOKIE_SAMESITE", "none")  # lax|strict|none
    # NOTE: Browsers require Secure when SameSite=None.
    AUTH_COOKIE_SECURE: bool = _env_bool("AUTH_COOKIE_SECURE", True) is True

    # Bootstrap a first admin at startup when no admin exists.
    # Left blank by default: nothing is created unless all three are set.
    AUTH_BOOTSTRAP_ADMIN_NAME: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_NAME", "Administrator")
    AUTH_BOOTSTRAP_ADMIN_EMAIL: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_EMAIL", "")
    AUTH_BOOTSTRAP_ADMIN_PASSWORD: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_PASSWORD", "")
    AUTH_BOOTSTRAP_ADMIN_MOBILE: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_MOBILE", "")

    # -----------------
    # Password reset email
    # -----------------
    # The reset token is appended to this URL: <base>/<token>
    RESET_LINK_BASE_URL: str = os.environ.get(
        "RESET_LINK_BASE_URL",
        "http://localhost:3000/api/v1/users/verify",
    )

    # When SMTP_HOST is unset, reset emails are only logged (dev mode).
    SMTP_HOST: str | None = (os.environ.get("SMTP_HOST") or "").strip() or None
    SMTP_PORT: int = int(os.environ.get("SMTP_PORT", "587"))
    SMTP_USERNAME: str | None = os.environ.get("SMTP_USERNAME")
    SMTP_PASSWORD: str | None = os.environ.get("SMTP_PASSWORD")
    SMTP_USE_TLS: bool = _env_bool("SMTP_USE_TLS", True) is True
    SMTP_TIMEOUT_SECONDS: float = float(os.environ.get("SMTP_TIMEOUT_SECONDS", "10"))
    EMAIL_FROM: str = os.environ.get("EMAIL_FROM", "no-reply@localhost")

    # -----------------
    # CORS (development)
    # -----------------
    # The storefront frontend runs on Vite (:5173) in development and sends cookies.
    CORS_ALLOW_ORIGINS: str = os.environ.get("CORS_ALLOW_ORIGINS", "http://localhost:5173")


def load_config() -> Config:
    return Config()
