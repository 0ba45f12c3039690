"""Authentication / authorization.

- Users table (email/mobile + password hash + role)
- Stateless JWT session tokens (24h), no server-side session store

The API accepts the session token from either:

- `Authorization: Bearer <token>` (useful for scripts / API clients)
- The httpOnly `token` cookie set by `/login`

Authorization tiers are FastAPI dependencies layered on `authenticate`:
`require_authenticated`, `require_vendor_or_admin`, `require_admin`. Role
checks always re-read the user row; the `role` cookie is a UI hint only.
"""

from .deps import authenticate, require_admin, require_authenticated, require_vendor_or_admin
from .security import PasswordHasher, SessionTokenService, generate_reset_token
from .service import AccountService

__all__ = [
    "AccountService",
    "PasswordHasher",
    "SessionTokenService",
    "authenticate",
    "generate_reset_token",
    "require_admin",
    "require_authenticated",
    "require_vendor_or_admin",
]
