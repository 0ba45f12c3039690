from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from shop_accounts.models import Role
from shop_accounts.util.time import utcnow_iso


# Columns that may be looked up / updated by name. Keeps dynamic SQL safe.
_LOOKUP_FIELDS = ("user_id", "email", "mobile", "reset_token")
_UPDATABLE_FIELDS = ("name", "email", "mobile", "password_hash", "role", "is_prime", "reset_token")

# Never leave the service boundary.
_SECRET_FIELDS = ("password_hash", "reset_token")
# Internal bookkeeping, hidden from profile reads.
_INTERNAL_FIELDS = ("created_at", "updated_at")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def normalize_mobile(mobile: str) -> str:
    return (mobile or "").strip()


def public_user(row: Any | Dict[str, Any], *, include_internal: bool = False) -> Dict[str, Any]:
    d = dict(row)
    for k in _SECRET_FIELDS:
        d.pop(k, None)
    if not include_internal:
        for k in _INTERNAL_FIELDS:
            d.pop(k, None)
    d["is_prime"] = bool(d.get("is_prime") or 0)
    return d


def get_user_by_field(conn: Any, field: str, value: str) -> Optional[Any]:
    if field not in _LOOKUP_FIELDS:
        raise ValueError(f"unsupported_lookup_field: {field}")
    if not value:
        return None
    return conn.execute(
        f"SELECT * FROM users WHERE {field}=?",
        (value,),
    ).fetchone()


def get_user_by_id(conn: Any, user_id: str) -> Optional[Any]:
    return get_user_by_field(conn, "user_id", str(user_id or ""))


def get_user_by_email(conn: Any, email: str) -> Optional[Any]:
    return get_user_by_field(conn, "email", normalize_email(email))


def get_user_by_reset_token(conn: Any, token: str) -> Optional[Any]:
    return get_user_by_field(conn, "reset_token", (token or "").strip())


def user_exists(conn: Any, field: str, value: str, *, exclude_user_id: str | None = None) -> bool:
    if field not in _LOOKUP_FIELDS:
        raise ValueError(f"unsupported_lookup_field: {field}")
    if exclude_user_id is None:
        row = conn.execute(f"SELECT 1 FROM users WHERE {field}=?", (value,)).fetchone()
    else:
        row = conn.execute(
            f"SELECT 1 FROM users WHERE {field}=? AND user_id<>?",
            (value, str(exclude_user_id)),
        ).fetchone()
    return row is not None


def insert_user(
    conn: Any,
    *,
    name: str,
    email: str,
    mobile: str,
    password_hash: str,
    role: Role,
) -> Optional[Any]:
    """Insert a user row.

    Returns the new row, or None when a UNIQUE constraint (email/mobile)
    rejected it. `ON CONFLICT DO NOTHING` keeps this engine-agnostic (no
    sqlite3/psycopg2 IntegrityError handling).
    """
    now = utcnow_iso()
    rows = conn.execute(
        """
        INSERT INTO users (user_id, name, email, mobile, password_hash, role, is_prime, reset_token, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, 0, NULL, ?, ?)
        ON CONFLICT DO NOTHING
        RETURNING *
        """,
        (
            uuid.uuid4().hex,
            name,
            normalize_email(email),
            normalize_mobile(mobile),
            password_hash,
            Role(role).value,
            now,
            now,
        ),
    ).fetchall()
    return rows[0] if rows else None


def update_user(conn: Any, user_id: str, **changes: Any) -> None:
    """Update only the provided fields (None means "set NULL", omit to leave as is)."""
    fields: list[tuple[str, Any]] = []
    for k, v in changes.items():
        if k not in _UPDATABLE_FIELDS:
            raise ValueError(f"unsupported_update_field: {k}")
        if k == "role" and v is not None:
            v = Role(v).value
        if k == "is_prime" and v is not None:
            v = 1 if v else 0
        fields.append((k, v))

    if not fields:
        return

    fields.append(("updated_at", utcnow_iso()))
    sets = ", ".join([f"{k}=?" for k, _ in fields])
    params = [v for _, v in fields] + [str(user_id)]
    conn.execute(f"UPDATE users SET {sets} WHERE user_id=?", params)


def delete_user(conn: Any, user_id: str) -> bool:
    cur = conn.execute("DELETE FROM users WHERE user_id=?", (str(user_id),))
    return int(cur.rowcount or 0) > 0


def list_users_except_role(conn: Any, role: Role) -> List[Any]:
    return conn.execute(
        "SELECT * FROM users WHERE role<>? ORDER BY created_at, email",
        (Role(role).value,),
    ).fetchall()


def count_users_with_role(conn: Any, role: Role) -> int:
    row = conn.execute("SELECT COUNT(*) AS n FROM users WHERE role=?", (Role(role).value,)).fetchone()
    return int(row["n"])
