"""Storefront user accounts - Backend.

REST service for registration, login/logout, password reset, profile
management and role-gated admin listing.

Core concepts:
- Sessions are stateless signed tokens carried in an httpOnly cookie
  (or an Authorization: Bearer header).
- Roles are customer | vendor | admin and are always re-read server-side
  for authorization decisions.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
