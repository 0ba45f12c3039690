from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict

import jwt
from passlib.context import CryptContext

from shop_accounts.errors import ExpiredTokenError, HashingError, InvalidTokenError, ValidationError
from shop_accounts.models import IssuedToken
from shop_accounts.util.time import utcnow


_JWT_ALG = "HS256"
DEFAULT_SESSION_TTL = timedelta(hours=24)
DEFAULT_PASSWORD_ROUNDS = 29000


class PasswordHasher:
    """Salted pbkdf2_sha256 hashing with a tunable work factor."""

    def __init__(self, rounds: int = DEFAULT_PASSWORD_ROUNDS) -> None:
        self._ctx = CryptContext(
            schemes=["pbkdf2_sha256"],
            deprecated="auto",
            pbkdf2_sha256__rounds=max(1, int(rounds)),
        )

    def hash(self, password: str) -> str:
        if not password:
            raise ValidationError("Password must not be blank", detail="password_blank")
        try:
            return self._ctx.hash(password)
        except Exception as e:
            raise HashingError() from e

    def verify(self, password: str, password_hash: str) -> bool:
        if not password or not password_hash:
            return False
        try:
            return self._ctx.verify(password, password_hash)
        except (ValueError, TypeError):
            # Malformed or unknown hash format.
            return False


class SessionTokenService:
    """Issues and verifies signed, time-limited session tokens.

    The signing secret is injected at construction and never changes for the
    lifetime of the instance. Validity is purely signature + expiry: there is
    no server-side session store and therefore no revocation before expiry.

    `clock` must return an aware UTC datetime; tests pass a controllable one.
    """

    def __init__(
        self,
        *,
        secret: str,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if not secret:
            raise ValueError("jwt_secret_blank")
        self._secret = secret
        self._ttl = ttl
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, subject_id: str) -> IssuedToken:
        if not subject_id:
            raise ValueError("subject_blank")

        now = int(self._clock().timestamp())
        exp = now + max(1, int(self._ttl.total_seconds()))
        payload: Dict[str, Any] = {
            "sub": str(subject_id),
            "iat": now,
            "exp": exp,
        }
        token = jwt.encode(payload, self._secret, algorithm=_JWT_ALG)
        return IssuedToken(token=token, expires_at=datetime.fromtimestamp(exp, tz=timezone.utc))

    def verify(self, token: str) -> str:
        if not token:
            raise InvalidTokenError("Token is blank", detail="token_blank")

        # Expiry is checked against our own clock below, not PyJWT's.
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_JWT_ALG],
                options={
                    "require": ["sub", "iat", "exp"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError() from e

        try:
            exp = int(payload["exp"])
        except (TypeError, ValueError) as e:
            raise InvalidTokenError("Token expiry is malformed") from e

        if int(self._clock().timestamp()) >= exp:
            raise ExpiredTokenError()

        sub = str(payload.get("sub") or "")
        if not sub:
            raise InvalidTokenError("Token has no subject", detail="token_missing_sub")
        return sub


def generate_reset_token() -> str:
    """Random single-use token for password resets (256 bits, hex)."""
    return secrets.token_hex(32)
