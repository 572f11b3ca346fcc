# app/services/auth_service.py

from sqlmodel import select
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
import random
from datetime import datetime, timedelta, timezone

from loguru import logger

from app.core.config import settings
from app.core.errors import ConflictError, NotFoundError
from app.core.grantee import ConflictingGranteeError, GranteeError, classify_grantee
from app.core.security import (
    hash_password,
    verify_password,
    create_access_token,
)
from app.models.department import Department
from app.models.enums import RecordStatus, UserRole
from app.models.user import User, utcnow
from app.schemas.auth import TokenWithUser
from app.schemas.user import UserRead


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; stored values are always UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============================================================================
# FETCH USER
# ============================================================================
async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_user_by_username(session: AsyncSession, username: str) -> User | None:
    result = await session.execute(select(User).where(User.username == username.strip()))
    return result.scalar_one_or_none()


async def get_user_by_id(session: AsyncSession, user_id: int) -> User | None:
    return await session.get(User, user_id)


async def get_user_by_login(session: AsyncSession, identifier: str) -> User | None:
    """Login accepts either the username or the e-mail address."""
    identifier = identifier.strip()
    result = await session.execute(
        select(User).where(
            or_(User.username == identifier, func.lower(User.email) == identifier.lower())
        )
    )
    return result.scalars().first()


# ============================================================================
# VALIDATION
# ============================================================================
async def _validate_membership(
    session: AsyncSession,
    role: UserRole,
    is_special: bool,
    department_id: int | None,
    subrole: str | None,
):
    if role == UserRole.admin and is_special:
        raise ConflictingGranteeError("An account cannot be both admin and special user")

    if role == UserRole.admin:
        return

    # Regular and special users both keep a nominal department/subrole
    if department_id is None or not subrole:
        raise ValueError("Users must be assigned to a department and subrole")

    department = await session.get(Department, department_id)
    if not department:
        raise NotFoundError("Department not found")
    if department.status != RecordStatus.active:
        raise ValueError(f"Department '{department.department_name}' is inactive")
    if subrole not in department.subroles:
        raise ValueError(
            f"Subrole '{subrole}' is not defined for department '{department.department_name}'"
        )


async def _ensure_unique_identity(
    session: AsyncSession,
    username: str | None,
    email: str | None,
    exclude_id: int | None = None,
):
    if username:
        existing = await get_user_by_username(session, username)
        if existing and existing.id != exclude_id:
            raise ConflictError("Username already taken")
    if email:
        existing = await get_user_by_email(session, email)
        if existing and existing.id != exclude_id:
            raise ConflictError("Email already registered")


# ============================================================================
# CREATE USER / ADMIN
# ============================================================================
async def create_user(
    session: AsyncSession,
    firstname: str,
    lastname: str,
    username: str,
    email: str,
    password: str,
    role: UserRole = UserRole.user,
    department_id: int | None = None,
    subrole: str | None = None,
    designation: str | None = None,
    is_special: bool = False,
    mobile_number: str | None = None,
) -> User:

    await _validate_membership(session, role, is_special, department_id, subrole)
    await _ensure_unique_identity(session, username, email)

    if role == UserRole.admin:
        department_id, subrole = None, None

    user = User(
        firstname=firstname.strip(),
        lastname=lastname.strip(),
        username=username.strip(),
        email=email.strip().lower(),
        mobile_number=mobile_number,
        password_hash=hash_password(password),
        role=role,
        department_id=department_id,
        subrole=subrole,
        designation=designation,
        is_special=is_special,
    )

    session.add(user)

    try:
        await session.commit()
        await session.refresh(user)
    except IntegrityError:
        await session.rollback()
        raise ConflictError("User with this username or email already exists")

    logger.info(f"👤 Created {role.value} account '{user.username}' (id={user.id})")
    return user


# ============================================================================
# AUTHENTICATE
# ============================================================================
async def authenticate_user(session: AsyncSession, identifier: str, password: str) -> User | None:
    user = await get_user_by_login(session, identifier)
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user


# ============================================================================
# CREATE LOGIN RESPONSE
# ============================================================================
async def create_login_response(user: User, session: AsyncSession) -> TokenWithUser:
    try:
        grantee_kind = classify_grantee(user).kind
    except GranteeError:
        grantee_kind = None

    department_name = None
    if user.department_id:
        result = await session.execute(
            select(Department.department_name).where(Department.id == user.department_id)
        )
        department_name = result.scalar_one_or_none()

    # role / department claims are informational; the gate re-reads the user row
    token = create_access_token(
        subject=str(user.id),
        data={
            "role": UserRole(user.role).value,
            "department_id": user.department_id,
            "subrole": user.subrole,
        },
    )

    return TokenWithUser(
        access_token=token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserRead.model_validate(user),
        grantee_kind=grantee_kind,
        department_name=department_name,
    )


# ============================================================================
# FORGOT PASSWORD LOGIC
# ============================================================================
async def request_password_reset(session: AsyncSession, email: str) -> tuple[User, str]:
    """
    Issues a new OTP. Any previously issued OTP is overwritten, so only the
    most recent one can be verified.
    """
    user = await get_user_by_email(session, email)
    if not user:
        raise NotFoundError("User with this email does not exist")
    if not user.is_active:
        raise ValueError("Account is disabled")

    otp = f"{random.SystemRandom().randint(100000, 999999)}"
    user.otp_code = otp
    user.otp_expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)

    session.add(user)
    await session.commit()
    logger.info(f"🔑 Password reset OTP issued for user {user.id}")
    return user, otp


async def verify_reset_otp(session: AsyncSession, email: str, otp: str) -> bool:
    """
    Checks if the provided OTP is the current one and not expired.
    """
    user = await get_user_by_email(session, email)
    if not user or not user.otp_code or user.otp_code != otp:
        return False

    expires_at = _as_utc(user.otp_expires_at)
    if expires_at is None or expires_at < datetime.now(timezone.utc):
        return False

    return True


async def finalize_password_reset(session: AsyncSession, email: str, otp: str, new_password: str):
    """
    Verifies OTP one last time, updates password, and clears OTP fields.
    """
    user = await get_user_by_email(session, email)
    if not user or not user.otp_code or user.otp_code != otp:
        raise ValueError("Invalid or expired OTP")

    expires_at = _as_utc(user.otp_expires_at)
    if expires_at is None or expires_at < datetime.now(timezone.utc):
        raise ValueError("OTP has expired")

    user.password_hash = hash_password(new_password)

    # Clear OTP fields after successful reset
    user.otp_code = None
    user.otp_expires_at = None
    user.updated_at = utcnow()

    session.add(user)
    await session.commit()
    logger.info(f"🔑 Password reset completed for user {user.id}")
    return True


async def change_password(session: AsyncSession, user: User, old_password: str, new_password: str):
    if not verify_password(old_password, user.password_hash):
        raise ValueError("Old password incorrect")

    if old_password == new_password:
        raise ValueError("New password must be different")

    user.password_hash = hash_password(new_password)
    user.updated_at = utcnow()
    session.add(user)
    await session.commit()


# ============================================================================
# LIST USERS
# ============================================================================
async def list_users(
    session: AsyncSession,
    role: UserRole | None = None,
    department_id: int | None = None,
    is_active: bool | None = None,
) -> list[User]:
    query = select(User)
    if role is not None:
        query = query.where(User.role == role)
    if department_id is not None:
        query = query.where(User.department_id == department_id)
    if is_active is not None:
        query = query.where(User.is_active == is_active)

    result = await session.execute(query.order_by(User.id))
    return list(result.scalars().all())


# ============================================================================
# UPDATE USER
# ============================================================================
async def update_user(session: AsyncSession, user_id: int, **changes) -> User:
    user = await get_user_by_id(session, user_id)
    if not user:
        raise NotFoundError("User not found")

    await _ensure_unique_identity(session, None, changes.get("email"), exclude_id=user_id)

    role = changes.get("role") or UserRole(user.role)
    is_special = changes["is_special"] if changes.get("is_special") is not None else user.is_special
    department_id = changes.get("department_id", user.department_id)
    subrole = changes.get("subrole", user.subrole)

    if role == UserRole.admin:
        department_id, subrole = None, None

    # Validate the resulting state, not just the delta
    await _validate_membership(session, role, is_special, department_id, subrole)

    for field in ("firstname", "lastname", "mobile_number", "designation"):
        if changes.get(field) is not None:
            setattr(user, field, changes[field])
    if changes.get("email"):
        user.email = changes["email"].strip().lower()

    user.role = role
    user.is_special = is_special
    user.department_id = department_id
    user.subrole = subrole
    user.updated_at = utcnow()

    try:
        await session.commit()
        await session.refresh(user)
    except IntegrityError:
        await session.rollback()
        raise ConflictError("Failed to update user")

    return user


async def toggle_user_status(session: AsyncSession, user_id: int, actor: User | None = None) -> User:
    user = await get_user_by_id(session, user_id)
    if not user:
        raise NotFoundError("User not found")

    if actor is not None and actor.id == user.id:
        raise ValueError("You cannot disable your own account")

    user.is_active = not user.is_active
    user.updated_at = utcnow()
    await session.commit()
    await session.refresh(user)

    logger.info(f"Account {user.id} is now {'active' if user.is_active else 'disabled'}")
    return user
