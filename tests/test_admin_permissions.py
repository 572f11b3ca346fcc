import pytest

from app.core.seeding_logic import seed_all
from app.services.activity_service import get_activity_by_name
from app.services.auth_service import get_user_by_username
from app.services.permission_service import list_admin_permissions, update_admin_permission


async def _register_admin(client, headers, username="opsadmin"):
    res = await client.post(
        "/api/admins/register",
        json={
            "firstname": "Ops",
            "lastname": "Admin",
            "username": username,
            "email": f"{username}@example.com",
            "password": "Password123",
        },
        headers=headers,
    )
    assert res.status_code == 201, res.text
    login = await client.post("/api/auth/admin/login", json={"username": username, "password": "Password123"})
    assert login.status_code == 200
    return res.json()["data"], {"Authorization": f"Bearer {login.json()['data']['access_token']}"}


@pytest.mark.asyncio
async def test_new_admin_starts_without_rights(client, admin_headers):
    _, headers = await _register_admin(client, admin_headers)

    res = await client.get("/api/departments/", headers=headers)
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_initialize_grants_everything(client, admin_headers, activity_ids):
    admin, headers = await _register_admin(client, admin_headers)

    res = await client.post(f"/api/admin-permissions/initialize/{admin['id']}", headers=admin_headers)
    assert res.status_code == 200
    assert len(res.json()["data"]) == len(activity_ids)

    assert (await client.get("/api/departments/", headers=headers)).status_code == 200


@pytest.mark.asyncio
async def test_assign_and_replace_admin_rights(client, admin_headers, activity_ids):
    admin, headers = await _register_admin(client, admin_headers)
    dept_id = str(activity_ids["Department Management"])

    created = await client.post(
        "/api/admin-permissions/add",
        json={"admin_id": admin["id"], "hasAccessTo": {dept_id: ["view"]}},
        headers=admin_headers,
    )
    assert created.status_code == 201
    row_id = created.json()["data"][0]["id"]

    assert (await client.get("/api/departments/", headers=headers)).status_code == 200
    denied = await client.post(
        "/api/departments/", json={"department_name": "Ops", "subroles": ["Lead"]}, headers=headers
    )
    assert denied.status_code == 403

    mine = await client.get(f"/api/admin-permissions/admin/{admin['id']}", headers=admin_headers)
    assert [r["id"] for r in mine.json()["data"]] == [row_id]

    await client.put(f"/api/admin-permissions/{row_id}", json={"hasAccessTo": []}, headers=admin_headers)
    assert (await client.get("/api/departments/", headers=headers)).status_code == 403


@pytest.mark.asyncio
async def test_admin_rights_require_admin_account(client, admin_headers, make_department, make_user, activity_ids):
    dept = await make_department()
    user, _ = await make_user(dept["id"], "Rep")

    res = await client.post(
        "/api/admin-permissions/add",
        json={"admin_id": user["id"], "hasAccessTo": {str(activity_ids["Dashboard"]): ["view"]}},
        headers=admin_headers,
    )
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_reseeding_keeps_revoked_admin_rights(db_session):
    admin = await get_user_by_username(db_session, "superadmin")
    dashboard = await get_activity_by_name(db_session, "Dashboard")

    rows = await list_admin_permissions(db_session, admin.id)
    row = next(r for r in rows if r.activity_id == dashboard.id)
    await update_admin_permission(db_session, row.id, [])

    await seed_all(db_session)

    rows = await list_admin_permissions(db_session, admin.id)
    row = next(r for r in rows if r.activity_id == dashboard.id)
    assert (row.can_view, row.can_add, row.can_edit, row.can_delete) == (False, False, False, False)
