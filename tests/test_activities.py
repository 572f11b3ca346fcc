import pytest

from app.core.activities import ACTIVITY_REGISTRY


@pytest.mark.asyncio
async def test_registry_is_seeded(client, admin_headers):
    res = await client.get("/api/activity/all", headers=admin_headers)
    assert res.status_code == 200
    names = {a["name"] for a in res.json()["data"]}
    assert names == {entry["name"] for entry in ACTIVITY_REGISTRY}


@pytest.mark.asyncio
async def test_registry_requires_login(client):
    res = await client.get("/api/activity/all")
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_lookup_by_id_and_name(client, admin_headers, activity_ids):
    leads_id = activity_ids["Lead Management"]

    by_id = await client.get(f"/api/activity/{leads_id}", headers=admin_headers)
    assert by_id.json()["data"]["name"] == "Lead Management"

    by_name = await client.get("/api/activity/name/Lead Management", headers=admin_headers)
    assert by_name.json()["data"]["id"] == leads_id

    missing = await client.get("/api/activity/name/Nope", headers=admin_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_add_and_rename_activity(client, admin_headers):
    res = await client.post(
        "/api/activity/add",
        json={"name": "Reports", "category": "General", "description": "Monthly reports"},
        headers=admin_headers,
    )
    assert res.status_code == 201
    activity_id = res.json()["data"]["id"]

    dup = await client.post(
        "/api/activity/add", json={"name": "reports", "category": "General"}, headers=admin_headers
    )
    assert dup.status_code == 409

    renamed = await client.put(f"/api/activity/{activity_id}", json={"name": "Reporting"}, headers=admin_headers)
    assert renamed.json()["data"]["name"] == "Reporting"


@pytest.mark.asyncio
async def test_inactive_activity_denies_access(client, admin_headers, activity_ids):
    assert (await client.get("/api/metrics/dashboard-stats", headers=admin_headers)).status_code == 200

    toggled = await client.patch(f"/api/activity/{activity_ids['Dashboard']}/status", headers=admin_headers)
    assert toggled.json()["data"]["status"] == "inactive"

    assert (await client.get("/api/metrics/dashboard-stats", headers=admin_headers)).status_code == 403

    active = await client.get("/api/activity/all", headers=admin_headers)
    assert "Dashboard" not in {a["name"] for a in active.json()["data"]}

    everything = await client.get("/api/activity/all?include_all=true", headers=admin_headers)
    assert "Dashboard" in {a["name"] for a in everything.json()["data"]}
