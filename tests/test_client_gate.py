import json

import httpx
import pytest
from httpx import ASGITransport

from app.client.api import APIError, AuthenticationError, CRMClient, NetworkError
from app.client.gate import ERROR, LOADING, READY, PermissionGate
from app.client.password_reset import PasswordResetFlow
from app.client.session import Session
from app.main import app
from conftest import ADMIN_CREDENTIALS

MATRIX = {
    "success": True,
    "data": {
        "grantee_kind": "department_role",
        "permissions": [
            {"activity_id": 7, "activity_name": "Lead Management", "category": "Leads",
             "can_view": True, "can_add": True, "can_edit": False, "can_delete": False},
            {"activity_id": 8, "activity_name": "Package Management", "category": "Sales",
             "can_view": False, "can_add": False, "can_edit": False, "can_delete": False},
        ],
    },
}


def _client(handler, token="token-123"):
    session = Session(token=token, user={"id": 1})
    return CRMClient("http://crm.test", session, transport=httpx.MockTransport(handler)), session


@pytest.mark.asyncio
async def test_gate_denies_until_ready():
    client, _ = _client(lambda request: httpx.Response(200, json=MATRIX))
    gate = PermissionGate(client)

    assert gate.state == LOADING
    assert gate.check_permission("Lead Management", "view") is False

    assert await gate.load() == READY
    assert gate.check_permission("Lead Management", "view") is True
    assert gate.check_permission("Lead Management", "edit") is False
    assert gate.check_permission("Unknown", "view") is False
    await client.aclose()


@pytest.mark.asyncio
async def test_gate_routes_and_actions():
    client, _ = _client(lambda request: httpx.Response(200, json=MATRIX))
    gate = PermissionGate(client, fallback_route="/home")
    await gate.load()

    assert gate.visible_actions("Lead Management") == ["view", "add"]
    assert gate.visible_actions("Package Management") == []
    assert gate.guard_route("Lead Management", "/leads") == "/leads"
    assert gate.guard_route("Package Management", "/packages") == "/home"
    await client.aclose()


@pytest.mark.asyncio
async def test_gate_error_state_denies_everything():
    client, _ = _client(lambda request: httpx.Response(500, json={"success": False, "message": "boom"}))
    gate = PermissionGate(client)

    assert await gate.load() == ERROR
    assert gate.check_permission("Lead Management", "view") is False
    assert gate.guard_route("Lead Management", "/leads") == "/dashboard"
    await client.aclose()


@pytest.mark.asyncio
async def test_network_failure_denies_everything():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    client, _ = _client(handler)
    gate = PermissionGate(client)

    assert await gate.load() == ERROR
    assert gate.check_permission("Lead Management", "view") is False

    with pytest.raises(NetworkError):
        await client.get("/api/leads/")
    await client.aclose()


@pytest.mark.asyncio
async def test_401_clears_session():
    client, session = _client(lambda request: httpx.Response(401, json={"success": False, "message": "Token has expired"}))
    gate = PermissionGate(client)

    with pytest.raises(AuthenticationError):
        await gate.load()

    assert gate.state == ERROR
    assert session.is_authenticated is False
    assert session.user == {}
    await client.aclose()


@pytest.mark.asyncio
async def test_field_errors_are_exposed():
    body = {"success": False, "message": "Unknown activity in hasAccessTo",
            "errors": [{"field": "hasAccessTo.99", "message": "Activity 99 does not exist"}]}
    client, _ = _client(lambda request: httpx.Response(400, json=body))

    with pytest.raises(APIError) as exc_info:
        await client.post("/api/role-permissions/add", json={})

    assert exc_info.value.status_code == 400
    assert exc_info.value.field_errors() == {"hasAccessTo.99": "Activity 99 does not exist"}
    await client.aclose()


@pytest.mark.asyncio
async def test_non_object_body_raises_api_error():
    client, _ = _client(lambda request: httpx.Response(502, json=["upstream", "unavailable"]))

    with pytest.raises(APIError) as exc_info:
        await client.get("/api/leads/")

    assert exc_info.value.status_code == 502
    assert "upstream" in exc_info.value.message
    await client.aclose()


@pytest.mark.asyncio
async def test_bearer_token_is_sent():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json=MATRIX)

    client, _ = _client(handler)
    await client.my_permissions()
    assert seen["auth"] == "Bearer token-123"
    await client.aclose()


# -------------------------------------------------------------------
# Password reset countdown
# -------------------------------------------------------------------
@pytest.mark.asyncio
async def test_resend_countdown_restarts_on_each_request():
    now = {"t": 1000.0}
    requests = []

    def handler(request):
        requests.append(json.loads(request.content))
        return httpx.Response(200, json={"success": True, "data": {"resend_after_seconds": 120}})

    client, _ = _client(handler, token=None)
    flow = PasswordResetFlow(client, clock=lambda: now["t"])

    assert flow.can_resend() is True
    assert await flow.request_otp("riya@example.com") == 120

    now["t"] += 90
    assert flow.seconds_remaining() == 30
    assert flow.can_resend() is False

    assert await flow.request_otp("riya@example.com") == 120
    now["t"] += 120
    assert flow.can_resend() is True
    assert len(requests) == 2
    await client.aclose()


@pytest.mark.asyncio
async def test_reset_requires_verified_otp():
    client, _ = _client(lambda request: httpx.Response(200, json={"success": True, "data": None}), token=None)
    flow = PasswordResetFlow(client)

    with pytest.raises(RuntimeError):
        await flow.reset("NewPassword1")
    await client.aclose()


# -------------------------------------------------------------------
# Against the real app
# -------------------------------------------------------------------
@pytest.mark.asyncio
async def test_gate_against_live_app(reset_db):
    session = Session()
    async with CRMClient("http://testserver", session, transport=ASGITransport(app=app)) as client:
        await client.login(ADMIN_CREDENTIALS["username"], ADMIN_CREDENTIALS["password"], admin=True)
        assert session.is_authenticated
        assert session.grantee_kind == "admin"

        gate = PermissionGate(client)
        assert await gate.load() == READY
        assert gate.check_permission("Role Management", "edit") is True
        assert gate.grantee_kind == "admin"
