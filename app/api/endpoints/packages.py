# app/api/endpoints/packages.py

from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import get_db_session
from app.core.activities import PACKAGE_MANAGEMENT
from app.core.errors import http_error
from app.core.rbac import RequirePermission
from app.models.user import User
from app.schemas.common import APIResponse, ok
from app.schemas.package import DiscountIn, PackageCreate, PackageRead, PackageUpdate, SendPackageRequest
from app.services.email_service import send_package_details_email
from app.services.package_service import (
    add_discount,
    cleanup_expired_discounts,
    create_package,
    get_package,
    list_packages,
    prune_expired_discounts,
    toggle_package_status,
    update_package,
)

router = APIRouter(prefix="/api/packages", tags=["Packages"])


# -------------------------------------------------------------------
# CRUD
# -------------------------------------------------------------------
@router.post("/", response_model=APIResponse[PackageRead], status_code=status.HTTP_201_CREATED)
async def create_new_package(
    data: PackageCreate,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(PACKAGE_MANAGEMENT, "add")),
):
    try:
        package = await create_package(session, data, actor_id=current_user.id)
    except ValueError as e:
        raise http_error(e)
    return ok(package, "Package created successfully")


@router.get("/", response_model=APIResponse[List[PackageRead]])
async def list_all_packages(
    include_inactive: bool = Query(default=False),
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(PACKAGE_MANAGEMENT, "view")),
):
    return ok(await list_packages(session, include_inactive=include_inactive))


@router.get("/{package_id}", response_model=APIResponse[PackageRead])
async def get_package_details(
    package_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(PACKAGE_MANAGEMENT, "view")),
):
    try:
        package = await get_package(session, package_id)
    except ValueError as e:
        raise http_error(e)

    if prune_expired_discounts(package):
        await session.commit()
        await session.refresh(package)
    return ok(package)


@router.put("/{package_id}", response_model=APIResponse[PackageRead])
async def update_existing_package(
    package_id: int,
    data: PackageUpdate,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(PACKAGE_MANAGEMENT, "edit")),
):
    try:
        package = await update_package(
            session, package_id, data.model_dump(exclude_unset=True), actor_id=current_user.id
        )
    except ValueError as e:
        raise http_error(e)
    return ok(package, "Package updated successfully")


@router.patch("/{package_id}/status", response_model=APIResponse[PackageRead])
async def toggle_status(
    package_id: int,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(PACKAGE_MANAGEMENT, "edit")),
):
    try:
        package = await toggle_package_status(session, package_id, actor_id=current_user.id)
    except ValueError as e:
        raise http_error(e)
    return ok(package, f"Package is now {package.status.value}")


# -------------------------------------------------------------------
# DISCOUNTS
# -------------------------------------------------------------------
@router.post("/{package_id}/discounts", response_model=APIResponse[PackageRead])
async def add_package_discount(
    package_id: int,
    data: DiscountIn,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(RequirePermission(PACKAGE_MANAGEMENT, "edit")),
):
    try:
        package = await add_discount(session, package_id, data, actor_id=current_user.id)
    except ValueError as e:
        raise http_error(e)
    return ok(package, "Discount added")


@router.post("/{package_id}/discounts/cleanup", response_model=APIResponse[PackageRead])
async def cleanup_discounts(
    package_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(PACKAGE_MANAGEMENT, "edit")),
):
    try:
        package, removed = await cleanup_expired_discounts(session, package_id)
    except ValueError as e:
        raise http_error(e)
    return ok(package, f"Removed {removed} expired discount(s)")


# -------------------------------------------------------------------
# SEND
# -------------------------------------------------------------------
@router.post("/{package_id}/send", response_model=APIResponse)
async def send_package(
    package_id: int,
    data: SendPackageRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(RequirePermission(PACKAGE_MANAGEMENT, "view")),
):
    try:
        package = await get_package(session, package_id)
    except ValueError as e:
        raise http_error(e)

    details = PackageRead.model_validate(package).model_dump(mode="json")
    background_tasks.add_task(send_package_details_email, data.email, details, data.name)
    return ok(message=f"Package details sent to {data.email}")
