from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

from shop_accounts.config import Config
from shop_accounts.db import connect
from shop_accounts.errors import (
    DuplicateEmailError,
    DuplicateMobileError,
    InvalidCredentialError,
    InvalidResetTokenError,
    UnauthenticatedError,
    UserNotFoundError,
    ValidationError,
)
from shop_accounts.models import IssuedToken, Role
from shop_accounts.notify.email import EmailSender

from . import crud
from .security import PasswordHasher, SessionTokenService, generate_reset_token


def _debug(msg: str) -> None:
    print(f"[accounts] {msg}")


RESET_EMAIL_SUBJECT = "Reset Password"


class AccountService:
    """Account operations: register, login/logout, password reset, profiles.

    Each public method is one unit of work on its own DB connection.

    NOTE: the email/mobile existence checks are not atomic with the insert.
    The UNIQUE indexes in the schema are the real guarantee; the checks only
    give callers a precise error in the common case.
    """

    def __init__(
        self,
        cfg: Config,
        *,
        hasher: PasswordHasher,
        tokens: SessionTokenService,
        mailer: EmailSender,
        reset_token_factory: Callable[[], str] = generate_reset_token,
    ) -> None:
        self.cfg = cfg
        self.hasher = hasher
        self.tokens = tokens
        self.mailer = mailer
        self._new_reset_token = reset_token_factory

    # -----------------------------
    # Registration / sessions
    # -----------------------------

    def register(self, *, name: str, email: str, password: str, mobile: str, role: Role) -> Dict[str, Any]:
        name = (name or "").strip()
        email = crud.normalize_email(email)
        mobile = crud.normalize_mobile(mobile)
        if not name:
            raise ValidationError("Name is required", detail="name_blank")
        if not email:
            raise ValidationError("Email is required", detail="email_blank")
        if not mobile:
            raise ValidationError("Mobile number is required", detail="mobile_blank")
        try:
            role = Role(role)
        except ValueError as e:
            raise ValidationError(f"Invalid role: {role}", detail="invalid_role") from e

        with connect(self.cfg.DB_DSN) as conn:
            self._check_unique(conn, email=email, mobile=mobile)

            row = crud.insert_user(
                conn,
                name=name,
                email=email,
                mobile=mobile,
                password_hash=self.hasher.hash(password),
                role=role,
            )
            if row is None:
                # Lost a race with a concurrent registration; report which field collided.
                self._check_unique(conn, email=email, mobile=mobile)
                raise ValidationError("Account could not be created", detail="unique_violation")

        _debug(f"Registered user_id={row['user_id']} role={role.value}")
        return crud.public_user(row, include_internal=True)

    def login(self, *, email: str, password: str) -> Tuple[IssuedToken, Dict[str, Any]]:
        with connect(self.cfg.DB_DSN) as conn:
            row = crud.get_user_by_email(conn, email)
        if row is None:
            raise UserNotFoundError()
        if not self.hasher.verify(password, str(row["password_hash"])):
            raise InvalidCredentialError()

        issued = self.tokens.issue(str(row["user_id"]))
        _debug(f"Login user_id={row['user_id']}")
        return issued, crud.public_user(row, include_internal=True)

    def logout(self, subject_id: Optional[str]) -> None:
        """Nothing to revoke server-side: sessions are stateless tokens.

        The transport is responsible for discarding the session cookies.
        """
        if not subject_id:
            raise UnauthenticatedError()
        _debug(f"Logout user_id={subject_id}")

    # -----------------------------
    # Password reset
    # -----------------------------

    def request_password_reset(self, email: str) -> None:
        token = self._new_reset_token()
        with connect(self.cfg.DB_DSN) as conn:
            row = crud.get_user_by_email(conn, email)
            if row is None:
                raise UserNotFoundError("User with this email does not exist")
            crud.update_user(conn, str(row["user_id"]), reset_token=token)
            to = str(row["email"])

        link = f"{self.cfg.RESET_LINK_BASE_URL.rstrip('/')}/{token}"
        body = f"Click here to reset your password: {link}"

        # Delivery failures are reported to the log only; callers always see success.
        try:
            self.mailer.send(to, RESET_EMAIL_SUBJECT, body)
        except Exception as e:
            _debug(f"Reset email to {to} failed: {type(e).__name__}: {e}")

    def verify_reset_token(self, token: str) -> str:
        with connect(self.cfg.DB_DSN) as conn:
            row = crud.get_user_by_reset_token(conn, token)
        if row is None:
            raise InvalidResetTokenError()
        return str(row["email"])

    def reset_password(self, *, email: str, password: str) -> None:
        # NOTE: matches on email only; a pending reset token is cleared but not required.
        password_hash = self.hasher.hash(password)
        with connect(self.cfg.DB_DSN) as conn:
            row = crud.get_user_by_email(conn, email)
            if row is None:
                raise UserNotFoundError("User with this email does not exist")
            crud.update_user(conn, str(row["user_id"]), password_hash=password_hash, reset_token=None)
        _debug(f"Password reset user_id={row['user_id']}")

    # -----------------------------
    # Profiles / admin
    # -----------------------------

    def get_identity(self, user_id: str) -> Optional[Any]:
        with connect(self.cfg.DB_DSN) as conn:
            return crud.get_user_by_id(conn, user_id)

    def get_profile(self, user_id: str) -> Dict[str, Any]:
        row = self.get_identity(user_id)
        if row is None:
            raise UserNotFoundError()
        return crud.public_user(row)

    def update_profile(
        self,
        user_id: str,
        *,
        name: Optional[str] = None,
        email: Optional[str] = None,
        mobile: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Overwrite only the fields given as non-empty values."""
        with connect(self.cfg.DB_DSN) as conn:
            row = crud.get_user_by_id(conn, user_id)
            if row is None:
                raise UserNotFoundError()

            changes: Dict[str, Any] = {}
            if name and name.strip():
                changes["name"] = name.strip()
            if email and crud.normalize_email(email):
                changes["email"] = crud.normalize_email(email)
            if mobile and crud.normalize_mobile(mobile):
                changes["mobile"] = crud.normalize_mobile(mobile)

            self._check_unique(
                conn,
                email=changes.get("email"),
                mobile=changes.get("mobile"),
                exclude_user_id=str(row["user_id"]),
            )
            crud.update_user(conn, str(row["user_id"]), **changes)
            updated = crud.get_user_by_id(conn, str(row["user_id"]))

        return crud.public_user(updated)

    def delete_account(self, user_id: str) -> None:
        with connect(self.cfg.DB_DSN) as conn:
            deleted = crud.delete_user(conn, user_id)
        if not deleted:
            raise UserNotFoundError()
        _debug(f"Deleted user_id={user_id}")

    def list_non_admin_accounts(self) -> List[Dict[str, Any]]:
        with connect(self.cfg.DB_DSN) as conn:
            rows = crud.list_users_except_role(conn, Role.ADMIN)
        return [crud.public_user(r, include_internal=True) for r in rows]

    # -----------------------------
    # Bootstrap
    # -----------------------------

    def bootstrap_admin_if_needed(self) -> Optional[Dict[str, Any]]:
        """Create the first admin from AUTH_BOOTSTRAP_ADMIN_* if no admin exists.

        Does nothing unless email, password and mobile are all configured. If
        the configured email or mobile already belongs to another account the
        bootstrap is skipped and startup continues.
        """
        email = crud.normalize_email(self.cfg.AUTH_BOOTSTRAP_ADMIN_EMAIL)
        password = self.cfg.AUTH_BOOTSTRAP_ADMIN_PASSWORD
        mobile = crud.normalize_mobile(self.cfg.AUTH_BOOTSTRAP_ADMIN_MOBILE)
        if not email or not password or not mobile:
            return None

        with connect(self.cfg.DB_DSN) as conn:
            if crud.count_users_with_role(conn, Role.ADMIN) > 0:
                return None

        try:
            return self.register(
                name=self.cfg.AUTH_BOOTSTRAP_ADMIN_NAME or "Administrator",
                email=email,
                password=password,
                mobile=mobile,
                role=Role.ADMIN,
            )
        except ValidationError as e:
            _debug(f"Skipping admin bootstrap: {e.message}")
            return None

    # -----------------------------
    # Internals
    # -----------------------------

    @staticmethod
    def _check_unique(
        conn: Any,
        *,
        email: Optional[str],
        mobile: Optional[str],
        exclude_user_id: Optional[str] = None,
    ) -> None:
        if email and crud.user_exists(conn, "email", email, exclude_user_id=exclude_user_id):
            raise DuplicateEmailError()
        if mobile and crud.user_exists(conn, "mobile", mobile, exclude_user_id=exclude_user_id):
            raise DuplicateMobileError()
