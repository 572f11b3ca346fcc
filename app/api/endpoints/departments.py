# app/api/endpoints/departments.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import get_db_session
from app.core.activities import DEPARTMENT_MANAGEMENT
from app.core.errors import http_error
from app.core.rbac import RequirePermission
from app.models.user import User
from app.schemas.common import APIResponse, ok
from app.schemas.department import DepartmentCreate, DepartmentRead, DepartmentReorder, DepartmentUpdate
from app.services.department_service import (
    create_department,
    get_department,
    list_departments,
    reorder_departments,
    toggle_department_status,
    update_department,
)

router = APIRouter(prefix="/api/departments", tags=["Departments"])


# ----------------------------------------------------------
# CREATE
# ----------------------------------------------------------
@router.post("/", response_model=APIResponse[DepartmentRead], status_code=status.HTTP_201_CREATED)
async def create_new_department(
    data: DepartmentCreate,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(DEPARTMENT_MANAGEMENT, "add")),
):
    try:
        department = await create_department(
            session,
            department_name=data.department_name,
            subroles=data.subroles,
            is_sales_team=data.is_sales_team,
        )
    except ValueError as e:
        raise http_error(e)
    return ok(department, "Department created successfully")


# ----------------------------------------------------------
# READ
# ----------------------------------------------------------
@router.get("/", response_model=APIResponse[List[DepartmentRead]])
async def list_all_departments(
    include_inactive: bool = Query(default=False),
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(DEPARTMENT_MANAGEMENT, "view")),
):
    return ok(await list_departments(session, include_inactive=include_inactive))


@router.get("/{department_id}", response_model=APIResponse[DepartmentRead])
async def get_department_details(
    department_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(DEPARTMENT_MANAGEMENT, "view")),
):
    department = await get_department(session, department_id)
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")
    return ok(department)


# ----------------------------------------------------------
# UPDATE
# ----------------------------------------------------------
@router.put("/reorder", response_model=APIResponse[List[DepartmentRead]])
async def reorder(
    data: DepartmentReorder,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(DEPARTMENT_MANAGEMENT, "edit")),
):
    try:
        departments = await reorder_departments(session, data.order)
    except ValueError as e:
        raise http_error(e)
    return ok(departments, "Departments reordered")


@router.put("/{department_id}", response_model=APIResponse[DepartmentRead])
async def update_existing_department(
    department_id: int,
    data: DepartmentUpdate,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(DEPARTMENT_MANAGEMENT, "edit")),
):
    try:
        department = await update_department(session, department_id, **data.model_dump(exclude_unset=True))
    except ValueError as e:
        raise http_error(e)
    return ok(department, "Department updated successfully")


@router.patch("/{department_id}/status", response_model=APIResponse[DepartmentRead])
async def toggle_status(
    department_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(DEPARTMENT_MANAGEMENT, "edit")),
):
    """Deactivation hides the department from listings; its permission rows are kept."""
    try:
        department = await toggle_department_status(session, department_id)
    except ValueError as e:
        raise http_error(e)
    return ok(department, f"Department is now {department.status.value}")
