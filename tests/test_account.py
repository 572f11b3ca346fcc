import pytest

from conftest import DEFAULT_PASSWORD


@pytest.mark.asyncio
async def test_change_password(client, make_department, make_user):
    dept = await make_department()
    _, headers = await make_user(dept["id"], "Rep", username="pwdchanger")

    res = await client.post(
        "/api/account/change-password",
        json={"old_password": DEFAULT_PASSWORD, "new_password": "newpassword456"},
        headers=headers,
    )
    assert res.status_code == 200
    assert res.json()["message"] == "Password changed successfully"

    # Old password fails
    old = await client.post("/api/auth/user/login", json={"username": "pwdchanger", "password": DEFAULT_PASSWORD})
    assert old.status_code == 401

    # New password works
    new = await client.post("/api/auth/user/login", json={"username": "pwdchanger", "password": "newpassword456"})
    assert new.status_code == 200


@pytest.mark.asyncio
async def test_change_password_wrong_old_password(client, admin_headers):
    res = await client.post(
        "/api/account/change-password",
        json={"old_password": "wrong-one", "new_password": "newpassword456"},
        headers=admin_headers,
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Old password incorrect"
