from datetime import datetime, timedelta, timezone

import pytest

from storefront.tokens import TokenService
from storefront.users import UserDirectory


def test_missing_header_is_unauthenticated(client):
    response = client.get("/payment/tx1")

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Unauthorized Access"}


@pytest.mark.parametrize(
    "header",
    ["Bearer not-a-token", "Bearer", "Token abc.def.ghi", "Bearer a b"],
)
def test_bad_credentials_are_forbidden(client, header):
    response = client.get("/payment/tx1", headers={"Authorization": header})

    assert response.status_code == 403
    assert response.json() == {"success": False, "message": "Forbidden Access"}


def test_expired_token_is_forbidden(client, settings):
    issued = datetime.now(timezone.utc) - timedelta(hours=25)
    token = TokenService(settings.token_secret, clock=lambda: issued).issue({"email": "a@example.com"})

    response = client.get("/payment/tx1", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403


def test_session_requires_email(client):
    assert client.post("/session", json={"name": "No Email"}).status_code == 422


def test_session_token_carries_profile(client, tokens):
    response = client.post("/session", json={"email": "a@example.com", "name": "Alice"})

    assert tokens.verify(response.json()["token"]) == {"email": "a@example.com", "name": "Alice"}


def test_admin_check_only_for_self(client, user_headers):
    response = client.get("/users/b@example.com", headers=user_headers)

    assert response.status_code == 403


def test_admin_check_reads_role_fresh(client, user_headers):
    assert client.get("/users/a@example.com", headers=user_headers).json() == {"admin": False}

    with client.app.state.database.scope() as s:
        users = UserDirectory(s)
        users.promote(users.get_by_email("a@example.com").id)

    # same token, new role
    assert client.get("/users/a@example.com", headers=user_headers).json() == {"admin": True}


def test_admin_routes_reject_standard_users(client, user_headers):
    assert client.get("/payment", headers=user_headers).status_code == 403
    assert client.get("/users", headers=user_headers).status_code == 403
    assert client.patch("/users/whatever", headers=user_headers).status_code == 403


def test_token_for_unregistered_user_is_not_admin(client, login):
    headers = login("ghost@example.com")

    assert client.get("/payment", headers=headers).status_code == 403
    assert client.get("/users/ghost@example.com", headers=headers).json() == {"admin": False}


def test_admin_promotes_user(client, admin_headers):
    user_id = client.post("/users", json={"email": "b@example.com"}).json()["insertedId"]

    response = client.patch(f"/users/{user_id}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"matchedCount": 1, "modifiedCount": 1}


def test_promote_unknown_user(client, admin_headers):
    response = client.patch("/users/missing", headers=admin_headers)

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "User not found"}


def test_admin_lists_and_deletes_users(client, admin_headers):
    user_id = client.post("/users", json={"email": "b@example.com"}).json()["insertedId"]

    listed = client.get("/users", headers=admin_headers).json()
    assert {u["email"] for u in listed} == {"root@example.com", "b@example.com"}

    assert client.delete(f"/users/{user_id}", headers=admin_headers).json() == {"deletedCount": 1}
    assert client.delete(f"/users/{user_id}", headers=admin_headers).status_code == 404


def test_profile_with_registered_claim_names_can_log_in(client):
    client.post("/users", json={"email": "a@example.com"})
    token = client.post("/session", json={"email": "a@example.com", "aud": "web", "sub": 42}).json()["token"]

    response = client.get("/users/a@example.com", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json() == {"admin": False}
