from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from shop_accounts.auth import crud
from shop_accounts.auth.deps import require_admin, require_authenticated, require_vendor_or_admin
from shop_accounts.auth.security import SessionTokenService
from shop_accounts.db import connect
from tests.conftest import API, TEST_SECRET, register_payload


@pytest.fixture
def gated_client(app):
    """The real app plus gated routes for each authorization tier."""

    @app.get("/gated/authenticated")
    def _gated_auth(subject_id: str = Depends(require_authenticated)) -> Dict[str, Any]:
        return {"subject_id": subject_id}

    @app.get("/gated/seller")
    def _gated_seller(user: Dict[str, Any] = Depends(require_vendor_or_admin)) -> Dict[str, Any]:
        return {"role": user["role"]}

    @app.get("/gated/admin")
    def _gated_admin(user: Dict[str, Any] = Depends(require_admin)) -> Dict[str, Any]:
        return {"role": user["role"]}

    with TestClient(app, base_url="https://testserver") as c:
        yield c


def _bearer_for(client, role: str, n: int) -> Dict[str, str]:
    res = client.post(
        f"{API}/",
        json=register_payload(name=role, email=f"{role}{n}@x.com", mobile=f"555{n:04d}", role=role),
    )
    assert res.status_code == 201, res.text
    token = client.app.state.tokens.issue(res.json()["user"]["user_id"]).token
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# AuthenticationGate
# =============================================================================


def test_missing_credential_is_403(gated_client):
    res = gated_client.get("/gated/authenticated")
    assert res.status_code == 403
    assert res.json()["detail"] == "missing_token"


def test_invalid_token_is_401(gated_client):
    res = gated_client.get("/gated/authenticated", headers={"Authorization": "Bearer not.a.jwt"})
    assert res.status_code == 401
    assert res.json()["detail"] == "token_invalid"
    assert res.headers.get("www-authenticate") == "Bearer"


def test_expired_token_is_401(gated_client):
    yesterday = datetime.now(timezone.utc) - timedelta(days=2)
    stale = SessionTokenService(secret=TEST_SECRET, clock=lambda: yesterday).issue("user-1").token

    res = gated_client.get("/gated/authenticated", headers={"Authorization": f"Bearer {stale}"})

    assert res.status_code == 401
    assert res.json()["detail"] == "token_expired"


def test_valid_token_from_cookie(gated_client):
    token = gated_client.app.state.tokens.issue("user-1").token
    gated_client.cookies.set("token", token)

    res = gated_client.get("/gated/authenticated")

    assert res.status_code == 200
    assert res.json() == {"subject_id": "user-1"}


def test_bearer_header_wins_over_cookie(gated_client):
    gated_client.cookies.set("token", "garbage")
    token = gated_client.app.state.tokens.issue("user-2").token

    res = gated_client.get("/gated/authenticated", headers={"Authorization": f"Bearer {token}"})

    assert res.json() == {"subject_id": "user-2"}


# =============================================================================
# AuthorizationGate
# =============================================================================


@pytest.mark.parametrize(
    "role,seller_status,admin_status",
    [
        ("customer", 401, 401),
        ("vendor", 200, 401),
        ("admin", 200, 200),
    ],
)
def test_role_tiers(gated_client, role, seller_status, admin_status):
    headers = _bearer_for(gated_client, role, 1)

    assert gated_client.get("/gated/seller", headers=headers).status_code == seller_status
    assert gated_client.get("/gated/admin", headers=headers).status_code == admin_status


def test_forbidden_body(gated_client):
    headers = _bearer_for(gated_client, "customer", 1)
    res = gated_client.get("/gated/admin", headers=headers)
    assert res.json() == {"detail": "not_authorized", "message": "You are not authorized."}


def test_role_cookie_is_not_trusted(gated_client):
    headers = _bearer_for(gated_client, "customer", 1)
    gated_client.cookies.set("role", "admin")

    assert gated_client.get("/gated/admin", headers=headers).status_code == 401


def test_role_is_reread_every_request(gated_client, cfg):
    headers = _bearer_for(gated_client, "customer", 1)
    assert gated_client.get("/gated/seller", headers=headers).status_code == 401

    with connect(cfg.DB_DSN) as conn:
        row = crud.get_user_by_email(conn, "customer1@x.com")
        crud.update_user(conn, row["user_id"], role="vendor")

    assert gated_client.get("/gated/seller", headers=headers).status_code == 200


def test_valid_token_for_deleted_user_is_404(gated_client):
    token = gated_client.app.state.tokens.issue("no-such-user").token
    headers = {"Authorization": f"Bearer {token}"}

    # Authentication alone does not touch the DB.
    assert gated_client.get("/gated/authenticated", headers=headers).status_code == 200
    assert gated_client.get("/gated/seller", headers=headers).status_code == 404
    assert gated_client.get("/gated/admin", headers=headers).status_code == 404
