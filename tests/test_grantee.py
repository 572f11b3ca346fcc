from types import SimpleNamespace

import pytest

from app.core.grantee import (
    AdminGrantee,
    ConflictingGranteeError,
    DepartmentRoleGrantee,
    GranteeError,
    SpecialUserGrantee,
    classify_grantee,
)
from app.models.enums import UserRole
from app.services.auth_service import create_user


def _user(**overrides):
    data = {"id": 5, "role": UserRole.user, "is_special": False, "department_id": 2, "subrole": "Rep"}
    data.update(overrides)
    return SimpleNamespace(**data)


def test_admin_is_admin_grantee():
    grantee = classify_grantee(_user(role=UserRole.admin, department_id=None, subrole=None))
    assert grantee == AdminGrantee(admin_id=5)
    assert grantee.kind == "admin"


def test_special_user_ignores_department():
    grantee = classify_grantee(_user(is_special=True))
    assert grantee == SpecialUserGrantee(user_id=5)


def test_regular_user_is_department_role():
    grantee = classify_grantee(_user())
    assert grantee == DepartmentRoleGrantee(department_id=2, subrole="Rep")


def test_admin_and_special_is_rejected():
    with pytest.raises(ConflictingGranteeError):
        classify_grantee(_user(role=UserRole.admin, is_special=True))


def test_user_without_department_cannot_be_classified():
    with pytest.raises(GranteeError):
        classify_grantee(_user(department_id=None))


@pytest.mark.asyncio
async def test_service_rejects_admin_special(db_session):
    with pytest.raises(ConflictingGranteeError):
        await create_user(
            db_session,
            firstname="Both",
            lastname="Kinds",
            username="bothkinds",
            email="both@example.com",
            password="Password123",
            role=UserRole.admin,
            is_special=True,
        )


@pytest.mark.asyncio
async def test_api_rejects_admin_special_registration(client, admin_headers):
    res = await client.post(
        "/api/admins/register",
        json={
            "firstname": "Both",
            "lastname": "Kinds",
            "username": "bothkinds",
            "email": "both@example.com",
            "password": "Password123",
            "is_special": True,
        },
        headers=admin_headers,
    )
    assert res.status_code == 422
    assert res.json()["success"] is False


@pytest.mark.asyncio
async def test_api_rejects_making_admin_special(client, admin_headers):
    admin = await client.post(
        "/api/admins/register",
        json={
            "firstname": "Second",
            "lastname": "Admin",
            "username": "secondadmin",
            "email": "second@example.com",
            "password": "Password123",
        },
        headers=admin_headers,
    )
    assert admin.status_code == 201

    res = await client.put(
        f"/api/admins/{admin.json()['data']['id']}", json={"is_special": True}, headers=admin_headers
    )
    assert res.status_code == 400
