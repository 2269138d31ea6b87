"""API tests for authentication, role management and user administration."""
from __future__ import annotations

from uuid import uuid4

from drms.core.config import settings
from drms.core.enums import RoleName

from conftest import API


async def test_login_returns_tokens_and_sets_cookie(client, make_user) -> None:
    user = await make_user(RoleName.ASSESSOR)

    resp = await client.post(f"{API}/auth/login", json={"username": user.username, "password": user.password})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["token_type"] == "Bearer"
    assert body["data"]["user"]["roles"] == ["ASSESSOR"]
    assert body["meta"]["version"] == settings.api_version
    assert f"{settings.session_cookie_name}=" in resp.headers["set-cookie"]


async def test_login_accepts_email(client, make_user) -> None:
    user = await make_user(RoleName.DONOR)

    resp = await client.post(f"{API}/auth/login", json={"username": "USER1@example.org", "password": user.password})

    assert resp.status_code == 200
    assert resp.json()["data"]["user"]["username"] == user.username


async def test_session_cookie_authenticates(client, make_user) -> None:
    user = await make_user(RoleName.RESPONDER)
    login = await client.post(f"{API}/auth/login", json={"username": user.username, "password": user.password})
    token = login.json()["data"]["access_token"]
    client.cookies.clear()

    resp = await client.get(
        f"{API}/auth/me",
        headers={"Cookie": f"{settings.session_cookie_name}={token}"},
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["id"] == str(user.id)


async def test_wrong_password_and_lockout(client, make_user) -> None:
    user = await make_user(RoleName.ASSESSOR)

    for _ in range(settings.max_failed_login_attempts):
        resp = await client.post(f"{API}/auth/login", json={"username": user.username, "password": "Wrong12345"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "AU4001"

    resp = await client.post(f"{API}/auth/login", json={"username": user.username, "password": user.password})

    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "AU4002"


async def test_unlock_restores_login(client, make_user) -> None:
    admin = await make_user(RoleName.ADMIN)
    user = await make_user(RoleName.ASSESSOR)
    for _ in range(settings.max_failed_login_attempts):
        await client.post(f"{API}/auth/login", json={"username": user.username, "password": "Wrong12345"})

    resp = await client.post(f"{API}/users/{user.id}/unlock", headers=admin.headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["is_locked"] is False

    resp = await client.post(f"{API}/auth/login", json={"username": user.username, "password": user.password})
    assert resp.status_code == 200


async def test_missing_and_invalid_token(client) -> None:
    resp = await client.get(f"{API}/auth/me")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "AU4001"
    assert resp.headers["www-authenticate"] == "Bearer"

    resp = await client.get(f"{API}/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401


async def test_refresh_token(client, make_user) -> None:
    user = await make_user(RoleName.COORDINATOR)
    login = await client.post(f"{API}/auth/login", json={"username": user.username, "password": user.password})
    refresh_token = login.json()["data"]["refresh_token"]

    resp = await client.post(f"{API}/auth/refresh", json={"refresh_token": refresh_token})
    assert resp.status_code == 200
    assert resp.json()["data"]["access_token"]

    # an access token is not a refresh token
    access_token = login.json()["data"]["access_token"]
    resp = await client.post(f"{API}/auth/refresh", json={"refresh_token": access_token})
    assert resp.status_code == 401


async def test_logout_clears_cookie(client, make_user) -> None:
    user = await make_user(RoleName.ASSESSOR)

    resp = await client.post(f"{API}/auth/logout", headers=user.headers)

    assert resp.status_code == 200
    assert resp.json()["data"] == {"logged_out": True}
    assert f'{settings.session_cookie_name}=""' in resp.headers["set-cookie"]


async def test_validation_error_envelope(client) -> None:
    resp = await client.post(f"{API}/auth/login", json={"password": "x"}, headers={"X-Request-ID": "req-42"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert {"field": "body.username", "message": "Field required"} in body["error"]["details"]
    assert body["meta"]["requestId"] == "req-42"
    assert resp.headers["x-request-id"] == "req-42"


async def test_role_management_requires_admin(client, make_user) -> None:
    coordinator = await make_user(RoleName.COORDINATOR)

    resp = await client.get(f"{API}/auth/roles", headers=coordinator.headers)

    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "AU4003"


async def test_grant_and_revoke_role(client, make_user) -> None:
    admin = await make_user(RoleName.ADMIN)
    user = await make_user(RoleName.ASSESSOR)

    resp = await client.get(f"{API}/auth/roles", headers=admin.headers)
    assert {r["code"] for r in resp.json()["data"]} == {r.value for r in RoleName}

    resp = await client.post(f"{API}/auth/users/{user.id}/roles", json={"role": "RESPONDER"}, headers=admin.headers)
    assert resp.status_code == 201
    assert sorted(resp.json()["data"]["roles"]) == ["ASSESSOR", "RESPONDER"]

    resp = await client.post(f"{API}/auth/users/{user.id}/roles", json={"role": "RESPONDER"}, headers=admin.headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "AU4091"

    resp = await client.delete(f"{API}/auth/users/{user.id}/roles/ASSESSOR", headers=admin.headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["roles"] == ["RESPONDER"]


async def test_admin_creates_and_lists_users(client, make_user) -> None:
    admin = await make_user(RoleName.ADMIN)
    payload = {
        "email": "Field.Agent@Example.org",
        "username": "fieldagent",
        "password": "Secur3pass",
        "name": "Field Agent",
        "roles": ["ASSESSOR", "RESPONDER"],
    }

    resp = await client.post(f"{API}/users", json=payload, headers=admin.headers)
    assert resp.status_code == 201
    created = resp.json()["data"]
    assert created["email"] == "field.agent@example.org"
    assert sorted(created["roles"]) == ["ASSESSOR", "RESPONDER"]

    resp = await client.post(f"{API}/users", json=payload, headers=admin.headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "US4091"

    resp = await client.get(f"{API}/users", params={"role": "RESPONDER"}, headers=admin.headers)
    assert resp.status_code == 200
    page = resp.json()["data"]
    assert page["total"] == 1
    assert page["items"][0]["username"] == "fieldagent"


async def test_weak_password_rejected(client, make_user) -> None:
    admin = await make_user(RoleName.ADMIN)
    payload = {"email": "a@example.org", "username": "weakling", "password": "onlyletters", "name": "Weak"}

    resp = await client.post(f"{API}/users", json=payload, headers=admin.headers)

    assert resp.status_code == 400
    assert resp.json()["error"]["details"][0]["field"] == "password"


async def test_deactivated_user_cannot_log_in(client, make_user) -> None:
    admin = await make_user(RoleName.ADMIN)
    user = await make_user(RoleName.ASSESSOR)

    resp = await client.post(f"{API}/users/{user.id}/deactivate", headers=admin.headers)
    assert resp.json()["data"]["is_active"] is False

    resp = await client.post(f"{API}/auth/login", json={"username": user.username, "password": user.password})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "AU4002"


async def test_change_password(client, make_user) -> None:
    user = await make_user(RoleName.ASSESSOR)

    resp = await client.put(
        f"{API}/users/me/password",
        json={"old_password": "Wrong12345", "new_password": "N3wpassword"},
        headers=user.headers,
    )
    assert resp.status_code == 400

    resp = await client.put(
        f"{API}/users/me/password",
        json={"old_password": user.password, "new_password": "N3wpassword"},
        headers=user.headers,
    )
    assert resp.status_code == 200

    resp = await client.post(f"{API}/auth/login", json={"username": user.username, "password": "N3wpassword"})
    assert resp.status_code == 200


async def test_unknown_user_is_404(client, make_user) -> None:
    admin = await make_user(RoleName.ADMIN)

    resp = await client.get(f"{API}/users/{uuid4()}", headers=admin.headers)

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "USER_NOT_FOUND"


async def test_audit_log_records_user_creation(client, make_user) -> None:
    coordinator = await make_user(RoleName.COORDINATOR)
    user = await make_user(RoleName.ASSESSOR)

    resp = await client.get(
        f"{API}/verification/audit-logs",
        params={"resource": "user", "resource_id": str(user.id)},
        headers=coordinator.headers,
    )

    assert resp.status_code == 200
    actions = [log["action"] for log in resp.json()["data"]["items"]]
    assert actions == ["CREATE_USER"]


async def test_deactivated_user_token_is_refused(client, make_user) -> None:
    admin = await make_user(RoleName.ADMIN)
    user = await make_user(RoleName.ASSESSOR)
    assert (await client.get(f"{API}/auth/me", headers=user.headers)).status_code == 200

    await client.post(f"{API}/users/{user.id}/deactivate", headers=admin.headers)

    resp = await client.get(f"{API}/auth/me", headers=user.headers)
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "AU4002"


async def test_revoked_role_applies_to_issued_token(client, make_user) -> None:
    admin = await make_user(RoleName.ADMIN)
    other = await make_user(RoleName.ADMIN)
    assert (await client.get(f"{API}/users", headers=other.headers)).status_code == 200

    resp = await client.delete(f"{API}/auth/users/{other.id}/roles/ADMIN", headers=admin.headers)
    assert resp.status_code == 200

    resp = await client.get(f"{API}/users", headers=other.headers)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "AU4003"
