"""Health and Auth Context — probes and cookie-based user resolution.

Tests:
    - Liveness and readiness need no cookie
    - Protected endpoints answer 401 UNAUTHORIZED without a valid session
    - Expired, revoked and inactive-user sessions are rejected
    - A valid request touches last_used_at
    - Role guards answer 403 FORBIDDEN
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from erp.models.auth_session import AuthSession
from erp.services.auth_context import hash_session_token, resolve_user_from_token


async def test_health_is_public(client):
    res = await client.get("/api/v1/health/")
    assert res.status_code == 200
    assert res.json() == {"ok": True, "status": "healthy", "service": "gep-erp-api"}


async def test_ready_checks_database(client):
    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 200
    assert res.json()["ok"] is True


async def test_missing_cookie_is_unauthorized(client):
    res = await client.get("/api/v1/trainers")
    assert res.status_code == 401
    body = res.json()
    assert body["ok"] is False
    assert body["error_code"] == "UNAUTHORIZED"


async def test_unknown_token_is_unauthorized(client):
    client.headers["Cookie"] = "erp_session=not-a-real-token"
    res = await client.get("/api/v1/trainers")
    assert res.status_code == 401


async def test_valid_cookie_touches_last_used(client, test_db, login):
    user = await login("comercial")
    res = await client.get("/api/v1/trainers")
    assert res.status_code == 200

    result = await test_db.execute(
        select(AuthSession).where(AuthSession.user_id == user.id),
    )
    auth_session = result.scalar_one()
    await test_db.refresh(auth_session)
    assert auth_session.last_used_at is not None


async def test_expired_session_resolves_to_none(test_db, user_token):
    _, token = await user_token(
        "admin", expires_in=timedelta(minutes=-1),
    )
    assert await resolve_user_from_token(test_db, token) is None


async def test_revoked_session_resolves_to_none(test_db, user_token):
    user, token = await user_token("admin")
    result = await test_db.execute(
        select(AuthSession).where(AuthSession.token_hash == hash_session_token(token)),
    )
    result.scalar_one().revoked_at = datetime.now(timezone.utc)
    await test_db.commit()
    assert await resolve_user_from_token(test_db, token) is None


async def test_inactive_user_resolves_to_none(test_db, user_token):
    _, token = await user_token("admin", active=False)
    assert await resolve_user_from_token(test_db, token) is None


async def test_active_user_resolves(test_db, user_token):
    user, token = await user_token("logistica")
    resolved = await resolve_user_from_token(test_db, f"  {token} ")
    assert resolved.id == user.id


async def test_role_without_permission_is_forbidden(client, login):
    await login("comercial")
    res = await client.get("/api/v1/users")
    assert res.status_code == 403
    assert res.json()["error_code"] == "FORBIDDEN"
