from types import SimpleNamespace

import pytest

from app.core.grantee import AdminGrantee, DepartmentRoleGrantee, SpecialUserGrantee
from app.models.enums import RecordStatus, UserRole
from app.services.activity_service import get_activity_by_name
from app.services.auth_service import create_user
from app.services.department_service import create_department
from app.services.permission_resolver import (
    DENY_ALL,
    PermissionMatrix,
    Rights,
    check_permission,
    resolve_permissions,
)
from app.services.permission_service import assign_role_permissions


def _activity(id, name, status=RecordStatus.active):
    return SimpleNamespace(id=id, name=name, category="Test", status=status)


# -------------------------------------------------------------------
# Pure pieces
# -------------------------------------------------------------------
def test_rights_from_tokens():
    rights = Rights.from_tokens(["view", "edit"])
    assert rights == Rights(can_view=True, can_edit=True)
    assert rights.to_tokens() == ["view", "edit"]


def test_rights_reject_unknown_token():
    with pytest.raises(ValueError):
        Rights.from_tokens(["view", "approve"])


def test_rights_unknown_action_is_denied():
    assert Rights(can_view=True).allows("approve") is False


def test_matrix_defaults_to_deny_for_missing_rows():
    matrix = PermissionMatrix(
        [_activity(1, "Leads"), _activity(2, "Packages")],
        {1: Rights(can_view=True)},
    )
    assert matrix.check("Leads", "view") is True
    for action in ("view", "add", "edit", "delete"):
        assert matrix.check("Packages", action) is False
    assert matrix.rights_for(99) == DENY_ALL
    assert matrix.check("Does Not Exist", "view") is False


def test_inactive_activity_denies_even_with_row():
    matrix = PermissionMatrix(
        [_activity(1, "Leads", status=RecordStatus.inactive)],
        {1: Rights(True, True, True, True)},
    )
    assert matrix.check("Leads", "view") is False


def test_gate_without_matrix_denies():
    assert check_permission(None, "Leads", "view") is False


def test_matrix_as_list_covers_every_activity():
    matrix = PermissionMatrix([_activity(1, "Leads"), _activity(2, "Packages")], {2: Rights(can_add=True)})
    entries = matrix.as_list()
    assert [e["activity_name"] for e in entries] == ["Leads", "Packages"]
    assert entries[0]["can_view"] is False
    assert entries[1]["can_add"] is True


# -------------------------------------------------------------------
# Resolution against the store
# -------------------------------------------------------------------
@pytest.mark.asyncio
async def test_department_role_resolution_is_exact(db_session):
    dept = await create_department(db_session, "Sales", ["Rep", "Manager"])
    leads = await get_activity_by_name(db_session, "Lead Management")

    await assign_role_permissions(db_session, dept.id, "Rep", {leads.id: ["view"]})

    matrix = await resolve_permissions(db_session, DepartmentRoleGrantee(dept.id, "Rep"))
    assert matrix.rights_for(leads.id) == Rights(can_view=True)
    for entry in matrix.as_list():
        if entry["activity_id"] != leads.id:
            assert not any(entry[f"can_{a}"] for a in ("view", "add", "edit", "delete"))


@pytest.mark.asyncio
async def test_reassignment_replaces_rights(db_session):
    dept = await create_department(db_session, "Sales", ["Rep"])
    leads = await get_activity_by_name(db_session, "Lead Management")

    await assign_role_permissions(db_session, dept.id, "Rep", {leads.id: ["view", "add", "delete"]})
    await assign_role_permissions(db_session, dept.id, "Rep", {leads.id: ["edit"]})

    matrix = await resolve_permissions(db_session, DepartmentRoleGrantee(dept.id, "Rep"))
    assert matrix.rights_for(leads.id) == Rights(can_edit=True)


@pytest.mark.asyncio
async def test_department_without_subrole_unions_rights(db_session):
    dept = await create_department(db_session, "Sales", ["Rep", "Manager"])
    leads = await get_activity_by_name(db_session, "Lead Management")

    await assign_role_permissions(db_session, dept.id, "Rep", {leads.id: ["view"]})
    await assign_role_permissions(db_session, dept.id, "Manager", {leads.id: ["edit"]})

    matrix = await resolve_permissions(db_session, DepartmentRoleGrantee(dept.id))
    assert matrix.rights_for(leads.id) == Rights(can_view=True, can_edit=True)


@pytest.mark.asyncio
async def test_admin_resolution_never_reads_role_rows(db_session):
    dept = await create_department(db_session, "Sales", ["Rep"])
    leads = await get_activity_by_name(db_session, "Lead Management")
    await assign_role_permissions(db_session, dept.id, "Rep", {leads.id: ["view", "add", "edit", "delete"]})

    admin = await create_user(
        db_session,
        firstname="Fresh",
        lastname="Admin",
        username="freshadmin",
        email="fresh@example.com",
        password="Password123",
        role=UserRole.admin,
    )

    matrix = await resolve_permissions(db_session, AdminGrantee(admin.id))
    assert matrix.rights_for(leads.id) == DENY_ALL


@pytest.mark.asyncio
async def test_nonexistent_grantees_resolve_to_all_deny(db_session):
    for grantee in (AdminGrantee(9999), SpecialUserGrantee(9999), DepartmentRoleGrantee(9999, "Rep")):
        matrix = await resolve_permissions(db_session, grantee)
        assert len(matrix) > 0
        assert matrix.granted_activities() == []


@pytest.mark.asyncio
async def test_bootstrap_admin_has_full_rights(db_session):
    from app.services.auth_service import get_user_by_username

    admin = await get_user_by_username(db_session, "superadmin")
    matrix = await resolve_permissions(db_session, AdminGrantee(admin.id))
    for entry in matrix.as_list():
        assert entry["can_view"] and entry["can_add"] and entry["can_edit"] and entry["can_delete"]
