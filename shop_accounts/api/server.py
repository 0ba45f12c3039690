from __future__ import annotations

import time
from datetime import timedelta
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from shop_accounts import __version__
from shop_accounts.auth.security import PasswordHasher, SessionTokenService
from shop_accounts.auth.service import AccountService
from shop_accounts.config import Config, load_config
from shop_accounts.db import init_db
from shop_accounts.errors import AccountError, AuthenticationError
from shop_accounts.notify.email import EmailSender, build_email_sender

from .routes import router


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One line per request: method, path, status, elapsed ms."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            _debug(f"{request.method} {request.url.path} {status_code} {elapsed_ms:.1f} ms")


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AccountError)
    async def _account_error(request: Request, exc: AccountError) -> JSONResponse:
        headers = None
        if isinstance(exc, AuthenticationError) and exc.status_code == 401:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "message": exc.message},
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> Response:
        # Unknown endpoint: no route matched, or the path exists but not for this method.
        unmatched = (exc.status_code == 404 and exc.detail == "Not Found") or (
            exc.status_code == 405 and exc.detail == "Method Not Allowed"
        )
        if unmatched:
            return JSONResponse(status_code=404, content={"error": "Kindly verify the endpoint."})
        return await http_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        _debug(f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"detail": "internal_error", "message": str(exc) or type(exc).__name__},
        )


def create_app(cfg: Optional[Config] = None, *, mailer: Optional[EmailSender] = None) -> FastAPI:
    cfg = cfg or load_config()

    app = FastAPI(title="Storefront Accounts API", version=__version__)

    tokens = SessionTokenService(
        secret=cfg.AUTH_JWT_SECRET,
        ttl=timedelta(minutes=max(1, int(cfg.AUTH_TOKEN_EXPIRE_MINUTES))),
    )
    hasher = PasswordHasher(rounds=cfg.AUTH_PASSWORD_ROUNDS)

    # Shared, read-only after startup. Deps and routes read these from app.state.
    app.state.cfg = cfg
    app.state.tokens = tokens
    app.state.accounts = AccountService(
        cfg,
        hasher=hasher,
        tokens=tokens,
        mailer=mailer or build_email_sender(cfg),
    )

    # CORS is mainly needed for local development (Vite on :5173 -> API on :8000).
    cors_origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.add_middleware(RequestLogMiddleware)

    _install_error_handlers(app)

    @app.on_event("startup")
    def _on_startup() -> None:
        init_db(cfg.DB_DSN)

        boot = app.state.accounts.bootstrap_admin_if_needed()
        if boot:
            _debug(f"Bootstrapped initial admin user: email={boot.get('email')} role={boot.get('role')}")

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok"}

    app.include_router(router, prefix=cfg.API_PREFIX)
    return app


app = create_app()
