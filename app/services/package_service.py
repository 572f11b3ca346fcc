# app/services/package_service.py

from datetime import datetime, timezone
from decimal import Decimal

from loguru import logger
from sqlmodel import select
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, NotFoundError
from app.models.enums import RecordStatus
from app.models.package import Package
from app.models.user import utcnow
from app.schemas.package import DiscountIn, PackageCreate

TWO_PLACES = Decimal("0.01")


# ------------------------------------------------------------
# Discounts
# ------------------------------------------------------------
def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _serialize_discount(discount: DiscountIn) -> dict:
    return {
        "name": discount.name.strip(),
        "percentage": float(discount.percentage),
        "start": _utc(discount.start).isoformat(),
        "end": _utc(discount.end).isoformat(),
    }


def _discount_end(discount: dict) -> datetime:
    return _utc(datetime.fromisoformat(discount["end"]))


def compute_discounted_price(enrollment_charge, discounts: list[dict]) -> Decimal | None:
    """
    Enrollment charge reduced by the summed percentage of the given
    discounts, floored at zero. None when there is no discount.
    """
    if not discounts:
        return None
    charge = Decimal(str(enrollment_charge))
    total_pct = sum(Decimal(str(d["percentage"])) for d in discounts)
    price = charge - (charge * total_pct / Decimal(100))
    return max(Decimal(0), price).quantize(TWO_PLACES)


def prune_expired_discounts(package: Package, now: datetime | None = None) -> int:
    """Drop discounts whose end has passed and recompute the price. Returns the number removed."""
    now = now or datetime.now(timezone.utc)
    remaining = [d for d in package.discounts if _discount_end(d) > now]
    removed = len(package.discounts) - len(remaining)
    if removed:
        package.discounts = remaining
        package.discounted_price = compute_discounted_price(package.enrollment_charge, remaining)
    return removed


def _check_pricing(package: Package):
    if Decimal(str(package.initial_price)) < Decimal(str(package.enrollment_charge)):
        raise ValueError("Initial price must be greater than or equal to enrollment charge")
    has_pct = package.first_year_salary_percentage is not None
    has_fixed = package.first_year_fixed_price is not None
    if has_pct == has_fixed:
        raise ValueError(
            "Provide exactly one of first_year_salary_percentage or first_year_fixed_price"
        )


async def _ensure_unique_plan(session: AsyncSession, plan_name: str, exclude_id: int | None = None):
    query = select(Package).where(func.lower(Package.plan_name) == plan_name.strip().lower())
    if exclude_id is not None:
        query = query.where(Package.id != exclude_id)
    if (await session.execute(query)).scalar_one_or_none():
        raise ConflictError(f"Package '{plan_name}' already exists")


def _money(value) -> Decimal | None:
    return None if value is None else Decimal(str(value)).quantize(TWO_PLACES)


# ============================================================================
# CRUD
# ============================================================================
async def create_package(session: AsyncSession, data: PackageCreate, actor_id: int | None) -> Package:
    await _ensure_unique_plan(session, data.plan_name)

    discounts = [_serialize_discount(d) for d in data.discounts]
    package = Package(
        plan_name=data.plan_name.strip(),
        initial_price=_money(data.initial_price),
        enrollment_charge=_money(data.enrollment_charge),
        offer_letter_charge=_money(data.offer_letter_charge),
        first_year_salary_percentage=_money(data.first_year_salary_percentage),
        first_year_fixed_price=_money(data.first_year_fixed_price),
        features=[f.strip() for f in data.features if f.strip()],
        discounts=discounts,
        created_by=actor_id,
        updated_by=actor_id,
    )
    prune_expired_discounts(package)
    package.discounted_price = compute_discounted_price(package.enrollment_charge, package.discounts)

    session.add(package)
    await session.commit()
    await session.refresh(package)
    logger.info(f"📦 Package '{package.plan_name}' created")
    return package


async def get_package(session: AsyncSession, package_id: int) -> Package:
    package = await session.get(Package, package_id)
    if not package:
        raise NotFoundError("Package not found")
    return package


async def list_packages(session: AsyncSession, include_inactive: bool = False) -> list[Package]:
    """Expired discounts are pruned (and persisted) on read."""
    query = select(Package)
    if not include_inactive:
        query = query.where(Package.status == RecordStatus.active)
    result = await session.execute(query.order_by(Package.id))
    packages = list(result.scalars().all())

    pruned = sum(prune_expired_discounts(p) for p in packages)
    if pruned:
        await session.commit()
        logger.info(f"🧹 Removed {pruned} expired discount(s)")
    return packages


async def update_package(session: AsyncSession, package_id: int, changes: dict, actor_id: int | None) -> Package:
    package = await get_package(session, package_id)

    if changes.get("plan_name"):
        await _ensure_unique_plan(session, changes["plan_name"], exclude_id=package_id)
        package.plan_name = changes["plan_name"].strip()

    for field in ("initial_price", "enrollment_charge", "offer_letter_charge"):
        if changes.get(field) is not None:
            setattr(package, field, _money(changes[field]))

    # Setting one first-year pricing mode clears the other
    if changes.get("first_year_salary_percentage") is not None:
        package.first_year_salary_percentage = _money(changes["first_year_salary_percentage"])
        package.first_year_fixed_price = None
    elif changes.get("first_year_fixed_price") is not None:
        package.first_year_fixed_price = _money(changes["first_year_fixed_price"])
        package.first_year_salary_percentage = None

    if changes.get("features") is not None:
        package.features = [f.strip() for f in changes["features"] if f.strip()]

    _check_pricing(package)
    prune_expired_discounts(package)
    package.discounted_price = compute_discounted_price(package.enrollment_charge, package.discounts)
    package.updated_by = actor_id
    package.updated_at = utcnow()

    await session.commit()
    await session.refresh(package)
    return package


async def toggle_package_status(session: AsyncSession, package_id: int, actor_id: int | None) -> Package:
    package = await get_package(session, package_id)
    package.status = (
        RecordStatus.inactive if package.status == RecordStatus.active else RecordStatus.active
    )
    package.updated_by = actor_id
    package.updated_at = utcnow()
    await session.commit()
    await session.refresh(package)
    return package


async def add_discount(session: AsyncSession, package_id: int, discount: DiscountIn, actor_id: int | None) -> Package:
    package = await get_package(session, package_id)

    if _utc(discount.end) <= datetime.now(timezone.utc):
        raise ValueError("Discount has already expired")
    if any(d["name"].lower() == discount.name.strip().lower() for d in package.discounts):
        raise ConflictError(f"Discount '{discount.name}' already exists on this package")

    package.discounts = [*package.discounts, _serialize_discount(discount)]
    prune_expired_discounts(package)
    package.discounted_price = compute_discounted_price(package.enrollment_charge, package.discounts)
    package.updated_by = actor_id
    package.updated_at = utcnow()

    await session.commit()
    await session.refresh(package)
    return package


async def cleanup_expired_discounts(session: AsyncSession, package_id: int) -> tuple[Package, int]:
    package = await get_package(session, package_id)
    removed = prune_expired_discounts(package)
    if removed:
        package.updated_at = utcnow()
        await session.commit()
        await session.refresh(package)
    return package, removed
