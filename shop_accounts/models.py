from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    ADMIN = "admin"


# Roles allowed through require_vendor_or_admin.
SELLER_ROLES = frozenset({Role.VENDOR, Role.ADMIN})


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime
