"""Database schema for the account service.

Timestamps are ISO-8601 TEXT (UTC, with 'Z') for portability across engines.

Uniqueness of email and mobile is enforced here by UNIQUE constraints. The
application-level existence checks in the account service are only a fast
path for friendlier errors; these indexes are the actual guarantee.

NOTE: The Postgres schema is generated from the SQLite schema with a small set of
transformations.
"""

from __future__ import annotations



SCHEMA_SQLITE = r"""
PRAGMA foreign_keys = ON;

-- Users / Auth
-- We use JWTs for stateless sessions and store only password hashes.
-- reset_token is NULL unless a password reset is pending.
CREATE TABLE IF NOT EXISTS users (
    user_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    mobile TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    role TEXT NOT NULL CHECK (role IN ('customer','vendor','admin')),
    is_prime INTEGER NOT NULL DEFAULT 0,
    reset_token TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_users_role ON users (role);
CREATE INDEX IF NOT EXISTS idx_users_reset_token ON users (reset_token);
"""


def _sqlite_to_postgres(ddl: str) -> str:
    # Remove SQLite pragmas
    lines: list[str] = []
    for line in ddl.splitlines():
        if line.strip().upper().startswith("PRAGMA "):
            continue
        lines.append(line)
    return "\n".join(lines)


SCHEMA_POSTGRES = _sqlite_to_postgres(SCHEMA_SQLITE)


def get_schema_sql(dialect: str) -> str:
    d = (dialect or "").lower()
    if d.startswith("post"):
        return SCHEMA_POSTGRES
    return SCHEMA_SQLITE
