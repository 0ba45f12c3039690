"""Create a user account directly in the DB.

Usage:
  python scripts/create_user.py --name Ann --email ann@example.com \
      --mobile 5551234 --password '...' --role admin

NOTE: This is intended for local/dev (e.g. creating the first admin).
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from shop_accounts.auth.security import PasswordHasher, SessionTokenService
from shop_accounts.auth.service import AccountService
from shop_accounts.config import load_config
from shop_accounts.db import init_db
from shop_accounts.models import Role
from shop_accounts.notify.email import ConsoleEmailSender


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--name", required=True)
    ap.add_argument("--email", required=True)
    ap.add_argument("--mobile", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--role", required=True, choices=[r.value for r in Role])
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    accounts = AccountService(
        cfg,
        hasher=PasswordHasher(rounds=cfg.AUTH_PASSWORD_ROUNDS),
        tokens=SessionTokenService(secret=cfg.AUTH_JWT_SECRET),
        mailer=ConsoleEmailSender(),
    )
    u = accounts.register(
        name=args.name,
        email=args.email,
        password=args.password,
        mobile=args.mobile,
        role=Role(args.role),
    )

    print("Created user:")
    print(u)


if __name__ == "__main__":
    main()
