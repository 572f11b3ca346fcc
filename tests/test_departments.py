import pytest


@pytest.mark.asyncio
async def test_create_and_get_department(client, admin_headers, make_department):
    dept = await make_department("Sales", ["Rep", "Manager"], is_sales_team=True)
    assert dept["subroles"] == ["Rep", "Manager"]
    assert dept["status"] == "active"
    assert dept["sequence_number"] == 1

    res = await client.get(f"/api/departments/{dept['id']}", headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["department_name"] == "Sales"


@pytest.mark.asyncio
async def test_duplicate_department_name_is_conflict(client, admin_headers, make_department):
    await make_department("Sales")
    res = await client.post(
        "/api/departments/", json={"department_name": "sales", "subroles": ["Rep"]}, headers=admin_headers
    )
    assert res.status_code == 409


@pytest.mark.asyncio
async def test_only_one_sales_team(client, admin_headers, make_department):
    await make_department("Sales", is_sales_team=True)
    res = await client.post(
        "/api/departments/",
        json={"department_name": "Inside Sales", "subroles": ["Rep"], "is_sales_team": True},
        headers=admin_headers,
    )
    assert res.status_code == 409


@pytest.mark.asyncio
async def test_duplicate_subroles_are_rejected(client, admin_headers):
    res = await client.post(
        "/api/departments/", json={"department_name": "Sales", "subroles": ["Rep", "rep"]}, headers=admin_headers
    )
    assert res.status_code == 422


@pytest.mark.asyncio
async def test_deactivation_keeps_permission_rows(client, admin_headers, make_department, activity_ids):
    dept = await make_department("Sales")
    created = await client.post(
        "/api/role-permissions/add",
        json={"dept_id": dept["id"], "subrole": "Rep", "hasAccessTo": {str(activity_ids["Lead Management"]): ["view"]}},
        headers=admin_headers,
    )
    row_id = created.json()["data"][0]["id"]

    toggled = await client.patch(f"/api/departments/{dept['id']}/status", headers=admin_headers)
    assert toggled.status_code == 200
    assert toggled.json()["data"]["status"] == "inactive"

    # Gone from the default (dropdown) listing
    listed = await client.get("/api/departments/", headers=admin_headers)
    assert dept["id"] not in [d["id"] for d in listed.json()["data"]]

    everything = await client.get("/api/departments/?include_inactive=true", headers=admin_headers)
    assert dept["id"] in [d["id"] for d in everything.json()["data"]]

    # Permission row still reachable by id
    row = await client.get(f"/api/role-permissions/{row_id}", headers=admin_headers)
    assert row.status_code == 200
    assert row.json()["data"]["can_view"] is True


@pytest.mark.asyncio
async def test_cannot_remove_subrole_in_use(client, admin_headers, make_department, make_user):
    dept = await make_department("Sales", ["Rep", "Manager"])
    await make_user(dept["id"], "Rep")

    res = await client.put(f"/api/departments/{dept['id']}", json={"subroles": ["Manager"]}, headers=admin_headers)
    assert res.status_code == 409

    ok = await client.put(f"/api/departments/{dept['id']}", json={"subroles": ["Rep"]}, headers=admin_headers)
    assert ok.status_code == 200
    assert ok.json()["data"]["subroles"] == ["Rep"]


@pytest.mark.asyncio
async def test_reorder_departments(client, admin_headers, make_department):
    first = await make_department("Sales")
    second = await make_department("Marketing")

    res = await client.put(
        "/api/departments/reorder", json={"order": [second["id"], first["id"]]}, headers=admin_headers
    )
    assert res.status_code == 200
    assert [d["id"] for d in res.json()["data"]] == [second["id"], first["id"]]

    bad = await client.put("/api/departments/reorder", json={"order": [first["id"], 9999]}, headers=admin_headers)
    assert bad.status_code == 404


@pytest.mark.asyncio
async def test_users_cannot_join_inactive_department(client, admin_headers, make_department):
    dept = await make_department("Sales")
    await client.patch(f"/api/departments/{dept['id']}/status", headers=admin_headers)

    res = await client.post(
        "/api/users/",
        json={
            "firstname": "Late",
            "lastname": "Joiner",
            "username": "latejoiner",
            "email": "late@example.com",
            "password": "Password123",
            "department_id": dept["id"],
            "subrole": "Rep",
        },
        headers=admin_headers,
    )
    assert res.status_code == 400
