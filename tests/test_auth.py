import pytest
from unittest.mock import patch

from conftest import ADMIN_CREDENTIALS, DEFAULT_PASSWORD


@pytest.mark.asyncio
async def test_admin_login_returns_token_and_grantee(client):
    res = await client.post("/api/auth/admin/login", json=ADMIN_CREDENTIALS)
    assert res.status_code == 200

    body = res.json()
    assert body["success"] is True
    assert body["data"]["token_type"] == "bearer"
    assert body["data"]["grantee_kind"] == "admin"
    assert body["data"]["user"]["username"] == "superadmin"


@pytest.mark.asyncio
async def test_admin_login_accepts_email(client):
    res = await client.post(
        "/api/auth/admin/login",
        json={"username": "superadmin@example.com", "password": ADMIN_CREDENTIALS["password"]},
    )
    assert res.status_code == 200


@pytest.mark.asyncio
async def test_wrong_password_is_401(client):
    res = await client.post("/api/auth/admin/login", json={"username": "superadmin", "password": "nope"})
    assert res.status_code == 401
    assert res.json() == {"success": False, "message": "Invalid credentials"}


@pytest.mark.asyncio
async def test_admin_cannot_use_user_login(client):
    res = await client.post("/api/auth/user/login", json=ADMIN_CREDENTIALS)
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_me_requires_token(client):
    res = await client.get("/api/auth/me")
    assert res.status_code == 401
    assert res.json()["success"] is False


@pytest.mark.asyncio
async def test_invalid_token_is_401(client):
    res = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_me_returns_current_user(client, admin_headers):
    res = await client.get("/api/auth/me", headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["user"]["email"] == "superadmin@example.com"
    assert res.json()["data"]["grantee_kind"] == "admin"


@pytest.mark.asyncio
async def test_disabled_user_cannot_login_or_use_token(client, admin_headers, make_department, make_user):
    dept = await make_department()
    user, headers = await make_user(dept["id"], "Rep", username="disabled1")

    res = await client.patch(f"/api/users/{user['id']}/status", headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["is_active"] is False

    login = await client.post("/api/auth/user/login", json={"username": "disabled1", "password": DEFAULT_PASSWORD})
    assert login.status_code == 401
    assert login.json()["message"] == "Account is disabled"

    me = await client.get("/api/auth/me", headers=headers)
    assert me.status_code == 401


# -------------------------------------------------------------------
# PASSWORD RESET
# -------------------------------------------------------------------
@pytest.mark.asyncio
async def test_forgot_password_unknown_email_is_404(client):
    res = await client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
    assert res.status_code == 404


@pytest.mark.asyncio
@patch("app.api.endpoints.auth.send_otp_email")
async def test_only_latest_otp_is_accepted(mock_send, client):
    email = "superadmin@example.com"

    with patch("app.services.auth_service.random.SystemRandom") as mock_random:
        mock_random.return_value.randint.side_effect = [111111, 222222]

        first = await client.post("/api/auth/forgot-password", json={"email": email})
        second = await client.post("/api/auth/forgot-password", json={"email": email})

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["data"]["resend_after_seconds"] == 120

    # e-mail sent once per request, each with its own code
    sent_codes = [call.args[1] for call in mock_send.call_args_list]
    assert sent_codes == ["111111", "222222"]

    stale = await client.post("/api/auth/verify-otp", json={"email": email, "otp": "111111"})
    assert stale.status_code == 400

    fresh = await client.post("/api/auth/verify-otp", json={"email": email, "otp": "222222"})
    assert fresh.status_code == 200

    reset = await client.post(
        "/api/auth/reset-password",
        json={"email": email, "otp": "222222", "new_password": "BrandNew123"},
    )
    assert reset.status_code == 200

    # OTP is single use
    reused = await client.post("/api/auth/verify-otp", json={"email": email, "otp": "222222"})
    assert reused.status_code == 400

    login = await client.post("/api/auth/admin/login", json={"username": "superadmin", "password": "BrandNew123"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_expired_otp_is_rejected(db_session):
    from datetime import datetime, timedelta, timezone

    from app.services.auth_service import request_password_reset, verify_reset_otp

    user, otp = await request_password_reset(db_session, "superadmin@example.com")
    user.otp_expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
    await db_session.commit()

    assert await verify_reset_otp(db_session, "superadmin@example.com", otp) is False
