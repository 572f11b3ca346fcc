import pytest


@pytest.mark.asyncio
async def test_special_user_uses_only_special_rows(client, admin_headers, make_department, make_user, activity_ids):
    sales = await make_department("Sales", ["Rep"])
    leads_id = activity_ids["Lead Management"]
    packages_id = activity_ids["Package Management"]

    # Rows exist for the nominal department/subrole...
    await client.post(
        "/api/role-permissions/add",
        json={"dept_id": sales["id"], "subrole": "Rep", "hasAccessTo": {str(leads_id): ["view", "add", "edit"]}},
        headers=admin_headers,
    )

    special, special_headers = await make_user(sales["id"], "Rep", is_special=True, username="specialist")

    # ...but the special user's access comes from their own rows only
    res = await client.post(
        f"/api/special-user-permission/create/{special['id']}",
        json={"hasAccessTo": {str(packages_id): ["view"]}},
        headers=admin_headers,
    )
    assert res.status_code == 201

    me = await client.get("/api/permissions/me", headers=special_headers)
    assert me.json()["data"]["grantee_kind"] == "special_user"
    entries = {e["activity_name"]: e for e in me.json()["data"]["permissions"]}
    assert entries["Lead Management"]["can_view"] is False
    assert entries["Package Management"]["can_view"] is True

    assert (await client.get("/api/leads/", headers=special_headers)).status_code == 403
    assert (await client.get("/api/packages/", headers=special_headers)).status_code == 200


@pytest.mark.asyncio
async def test_special_user_without_rows_has_no_access(client, admin_headers, make_department, make_user, activity_ids):
    sales = await make_department("Sales", ["Rep"])
    await client.post(
        "/api/role-permissions/add",
        json={"dept_id": sales["id"], "subrole": "Rep", "hasAccessTo": {str(activity_ids["Lead Management"]): ["view"]}},
        headers=admin_headers,
    )
    _, special_headers = await make_user(sales["id"], "Rep", is_special=True)

    assert (await client.get("/api/leads/", headers=special_headers)).status_code == 403


@pytest.mark.asyncio
async def test_special_rows_require_special_user(client, admin_headers, make_department, make_user, activity_ids):
    sales = await make_department("Sales", ["Rep"])
    regular, _ = await make_user(sales["id"], "Rep")

    res = await client.post(
        f"/api/special-user-permission/create/{regular['id']}",
        json={"hasAccessTo": {str(activity_ids["Lead Management"]): ["view"]}},
        headers=admin_headers,
    )
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_special_rows_listing_and_update(client, admin_headers, make_department, make_user, activity_ids):
    sales = await make_department("Sales", ["Rep"])
    special, _ = await make_user(sales["id"], "Rep", is_special=True)

    created = await client.post(
        f"/api/special-user-permission/create/{special['id']}",
        json={"hasAccessTo": {str(activity_ids["Dashboard"]): ["view", "edit"]}},
        headers=admin_headers,
    )
    row_id = created.json()["data"][0]["id"]

    listed = await client.get(f"/api/special-user-permission/{special['id']}", headers=admin_headers)
    assert [r["id"] for r in listed.json()["data"]] == [row_id]

    updated = await client.put(
        f"/api/special-user-permission/{row_id}", json={"hasAccessTo": ["view"]}, headers=admin_headers
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["can_edit"] is False
