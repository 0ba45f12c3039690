from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from shop_accounts.auth.deps import extract_token, no_store, require_admin, require_authenticated
from shop_accounts.auth.service import AccountService
from shop_accounts.config import Config
from shop_accounts.errors import AuthenticationError, TokenError
from shop_accounts.models import IssuedToken, Role


router = APIRouter()


def _accounts(request: Request) -> AccountService:
    return request.app.state.accounts


def _cfg(request: Request) -> Config:
    return request.app.state.cfg


# -----------------------------
# Cookies
# -----------------------------


def _cookie_secure(cfg: Config) -> bool:
    """Return whether auth cookies should be marked Secure."""
    # Browsers require Secure when SameSite=None
    if (cfg.AUTH_COOKIE_SAMESITE or "").lower() == "none":
        return True
    return bool(cfg.AUTH_COOKIE_SECURE)


def _set_auth_cookies(response: Response, *, issued: IssuedToken, role: str, cfg: Config) -> None:
    """Set the session cookie and the role hint cookie."""
    common: Dict[str, Any] = dict(
        httponly=True,
        samesite=(cfg.AUTH_COOKIE_SAMESITE or "lax").lower(),
        secure=_cookie_secure(cfg),
        max_age=int(cfg.AUTH_TOKEN_EXPIRE_MINUTES) * 60,
        expires=issued.expires_at,
        path=cfg.AUTH_COOKIE_PATH or "/",
        domain=cfg.AUTH_COOKIE_DOMAIN,
    )
    response.set_cookie(key=cfg.AUTH_COOKIE_NAME, value=issued.token, **common)
    # Convenience for the frontend only; authorization never reads it.
    response.set_cookie(key=cfg.AUTH_ROLE_COOKIE_NAME, value=role, **common)


def _clear_auth_cookies(response: Response, cfg: Config) -> None:
    common: Dict[str, Any] = dict(
        httponly=True,
        samesite=(cfg.AUTH_COOKIE_SAMESITE or "lax").lower(),
        secure=_cookie_secure(cfg),
        path=cfg.AUTH_COOKIE_PATH or "/",
        domain=cfg.AUTH_COOKIE_DOMAIN,
    )
    response.delete_cookie(key=cfg.AUTH_COOKIE_NAME, **common)
    response.delete_cookie(key=cfg.AUTH_ROLE_COOKIE_NAME, **common)


# -----------------------------
# Request bodies
# -----------------------------


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str
    mobile: str
    # No default: every account is created with an explicit role.
    role: Role


class LoginRequest(BaseModel):
    email: str
    password: str


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    email: str
    password: str


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None


# -----------------------------
# Public
# -----------------------------


@router.get("/checkAuth")
def check_auth(request: Request) -> Dict[str, Any]:
    """Report whether the caller holds a valid session, plus its role hint."""
    cfg = _cfg(request)
    token = extract_token(request)
    if not token:
        raise AuthenticationError("Access Denied", detail="missing_token")
    try:
        request.app.state.tokens.verify(token)
    except TokenError as e:
        raise AuthenticationError(e.message, detail=e.detail) from e

    return {
        "message": "Authentication successful",
        "role": request.cookies.get(cfg.AUTH_ROLE_COOKIE_NAME),
    }


@router.post("/", status_code=201)
def register(payload: RegisterRequest, request: Request) -> Dict[str, Any]:
    user = _accounts(request).register(
        name=payload.name,
        email=payload.email,
        password=payload.password,
        mobile=payload.mobile,
        role=payload.role,
    )
    return {"message": "Your account has been created successfully.", "user": user}


@router.post("/login")
def login(payload: LoginRequest, request: Request, response: Response) -> Dict[str, Any]:
    issued, user = _accounts(request).login(email=payload.email, password=payload.password)
    _set_auth_cookies(response, issued=issued, role=str(user["role"]), cfg=_cfg(request))
    return {
        "message": "Login successful",
        "access_token": issued.token,
        "token_type": "bearer",
        "expires_at": issued.expires_at.isoformat(),
        "user": user,
    }


@router.post("/forgot")
def forgot_password(payload: ForgotPasswordRequest, request: Request) -> Dict[str, Any]:
    _accounts(request).request_password_reset(payload.email)
    return {"message": "Password reset link has been sent to your email address"}


@router.get("/verify/{token}")
def verify_reset_token(token: str, request: Request) -> Dict[str, Any]:
    email = _accounts(request).verify_reset_token(token)
    return {"message": "Reset token verified successfully", "email": email}


@router.post("/reset")
def reset_password(payload: ResetPasswordRequest, request: Request) -> Dict[str, Any]:
    _accounts(request).reset_password(email=payload.email, password=payload.password)
    return {"message": "Password reset successfully"}


# -----------------------------
# Authenticated
# -----------------------------


@router.get("/logout", dependencies=[Depends(no_store)])
def logout(
    request: Request,
    response: Response,
    subject_id: str = Depends(require_authenticated),
) -> Dict[str, Any]:
    _accounts(request).logout(subject_id)
    _clear_auth_cookies(response, _cfg(request))
    return {"message": "Logged out successfully"}


@router.get("/")
def get_profile(request: Request, subject_id: str = Depends(require_authenticated)) -> Dict[str, Any]:
    return {"user": _accounts(request).get_profile(subject_id)}


# Admin: list every non-admin account. Declared before /{user_id} routes for clarity.
@router.get("/admin")
def list_accounts(request: Request, _admin: Dict[str, Any] = Depends(require_admin)) -> Dict[str, Any]:
    return {"users": _accounts(request).list_non_admin_accounts()}


@router.put("/{user_id}")
def update_profile(
    user_id: str,
    payload: UpdateProfileRequest,
    request: Request,
    _subject_id: str = Depends(require_authenticated),
) -> Dict[str, Any]:
    user = _accounts(request).update_profile(
        user_id,
        name=payload.name,
        email=payload.email,
        mobile=payload.mobile,
    )
    return {"message": "User profile updated successfully", "user": user}


@router.delete("/{user_id}")
def delete_account(
    user_id: str,
    request: Request,
    response: Response,
    _subject_id: str = Depends(require_authenticated),
) -> Dict[str, Any]:
    _accounts(request).delete_account(user_id)
    _clear_auth_cookies(response, _cfg(request))
    return {"message": "User deleted successfully"}
