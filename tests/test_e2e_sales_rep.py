import pytest

from app.services.permission_resolver import check_permission


VALID_LEAD = {
    "first_name": "Jane",
    "last_name": "Doe",
    "contact_numbers": ["+919876543210"],
    "emails": ["jane.doe@example.com"],
    "primary_email": "jane.doe@example.com",
    "technology": ["Python"],
    "country": "India",
    "country_code": "IN",
    "visa_status": "H1B",
    "lead_source": "LinkedIn",
}


@pytest.mark.asyncio
async def test_sales_rep_view_add_only(client, admin_headers, make_department, make_user, activity_ids):
    sales = await make_department("Sales", ["Rep"], is_sales_team=True)
    leads_id = activity_ids["Lead Management"]

    res = await client.post(
        "/api/role-permissions/add",
        json={"dept_id": sales["id"], "subrole": "Rep", "hasAccessTo": {str(leads_id): ["view", "add"]}},
        headers=admin_headers,
    )
    assert res.status_code == 201

    _, rep_headers = await make_user(sales["id"], "Rep", username="salesrep")

    # Resolved matrix for the caller
    me = await client.get("/api/permissions/me", headers=rep_headers)
    assert me.status_code == 200
    assert me.json()["data"]["grantee_kind"] == "department_role"
    entries = {e["activity_name"]: e for e in me.json()["data"]["permissions"]}
    assert entries["Lead Management"]["can_view"] is True
    assert entries["Lead Management"]["can_add"] is True
    assert entries["Lead Management"]["can_edit"] is False
    assert entries["Package Management"]["can_view"] is False

    # Server-side gate
    listed = await client.get("/api/leads/", headers=rep_headers)
    assert listed.status_code == 200

    created = await client.post("/api/leads/", json=VALID_LEAD, headers=rep_headers)
    assert created.status_code == 201
    lead_id = created.json()["data"]["id"]

    edit = await client.put(f"/api/leads/{lead_id}", json={"country": "USA"}, headers=rep_headers)
    assert edit.status_code == 403

    packages = await client.get("/api/packages/", headers=rep_headers)
    assert packages.status_code == 403


@pytest.mark.asyncio
async def test_gate_decision_on_resolved_matrix(db_session):
    from app.core.grantee import DepartmentRoleGrantee
    from app.services.activity_service import get_activity_by_name
    from app.services.department_service import create_department
    from app.services.permission_resolver import resolve_permissions
    from app.services.permission_service import assign_role_permissions

    sales = await create_department(db_session, "Sales", ["Rep"], is_sales_team=True)
    leads = await get_activity_by_name(db_session, "Lead Management")
    await assign_role_permissions(db_session, sales.id, "Rep", {leads.id: ["view", "add"]})

    matrix = await resolve_permissions(db_session, DepartmentRoleGrantee(sales.id, "Rep"))
    assert check_permission(matrix, "Lead Management", "edit") is False
    assert check_permission(matrix, "Lead Management", "view") is True


@pytest.mark.asyncio
async def test_revoked_rights_apply_on_next_request(client, admin_headers, make_department, make_user, activity_ids):
    sales = await make_department("Sales", ["Rep"])
    leads_id = str(activity_ids["Lead Management"])

    created = await client.post(
        "/api/role-permissions/add",
        json={"dept_id": sales["id"], "subrole": "Rep", "hasAccessTo": {leads_id: ["view"]}},
        headers=admin_headers,
    )
    row_id = created.json()["data"][0]["id"]
    _, rep_headers = await make_user(sales["id"], "Rep")

    assert (await client.get("/api/leads/", headers=rep_headers)).status_code == 200

    await client.put(f"/api/role-permissions/{row_id}", json={"hasAccessTo": []}, headers=admin_headers)

    # Same token, no re-login: the gate re-resolves every request
    assert (await client.get("/api/leads/", headers=rep_headers)).status_code == 403
