from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from shop_accounts.errors import AuthenticationError, ForbiddenError, MissingCredentialError, TokenError, UserNotFoundError
from shop_accounts.models import SELLER_ROLES, Role

from .crud import public_user


_bearer = HTTPBearer(auto_error=False)


def _state(request: Request, name: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=500, detail="server_config_missing")
    return value


def extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials] = None) -> Optional[str]:
    """Bearer header first, then the session cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    cfg = _state(request, "cfg")
    return request.cookies.get(cfg.AUTH_COOKIE_NAME) or None


def authenticate(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> str:
    """Authenticate a request and return its subject id.

    Supports both:
      - Authorization: Bearer <jwt>
      - Cookie-based sessions (httpOnly cookie set by /login)

    No DB access here; routes that need the full record load it themselves.
    """
    token = extract_token(request, credentials)
    if not token:
        raise MissingCredentialError()

    tokens = _state(request, "tokens")
    try:
        subject_id = tokens.verify(token)
    except TokenError as e:
        raise AuthenticationError(e.message, detail=e.detail) from e

    request.state.subject_id = subject_id
    return subject_id


# Policy name for routes that only need a valid session.
require_authenticated = authenticate


def _load_identity(request: Request, subject_id: str) -> Dict[str, Any]:
    # Always a fresh read: the role may have changed since the token was issued.
    row = _state(request, "accounts").get_identity(subject_id)
    if row is None:
        raise UserNotFoundError()
    return public_user(row)


def require_vendor_or_admin(request: Request, subject_id: str = Depends(authenticate)) -> Dict[str, Any]:
    user = _load_identity(request, subject_id)
    if user.get("role") not in {r.value for r in SELLER_ROLES}:
        raise ForbiddenError()
    return user


def require_admin(request: Request, subject_id: str = Depends(authenticate)) -> Dict[str, Any]:
    user = _load_identity(request, subject_id)
    if user.get("role") != Role.ADMIN.value:
        raise ForbiddenError()
    return user


def no_store(response: Response) -> None:
    response.headers["Cache-Control"] = "no-store"
