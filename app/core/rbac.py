# app/core/rbac.py

from fastapi import Depends, HTTPException, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db_session
from app.core.grantee import GranteeError, classify_grantee
from app.models.user import User
from app.services.activity_service import list_activities
from app.services.permission_resolver import ACTIONS, PermissionMatrix, check_permission, resolve_permissions


async def resolve_for_user(session: AsyncSession, user: User) -> PermissionMatrix:
    """Matrix for an authenticated user; unclassifiable users get all-deny."""
    try:
        grantee = classify_grantee(user)
    except GranteeError as e:
        logger.warning(f"Cannot classify user {user.id}: {e}")
        return PermissionMatrix.deny_all(await list_activities(session, status=None))
    return await resolve_permissions(session, grantee)


def RequirePermission(activity_name: str, action: str):
    """
    Server-side Enforcement Gate.

    Re-resolves the caller's rights on every request (no caching) and raises
    403 unless `action` is allowed on `activity_name`. Returns the user so
    endpoints can use it as their `current_user` dependency.
    """
    if action not in ACTIONS:
        raise ValueError(f"Unknown action '{action}'")

    async def permission_checker(
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_db_session),
    ) -> User:
        matrix = await resolve_for_user(session, current_user)

        if not check_permission(matrix, activity_name, action):
            logger.debug(f"Denied {action} on '{activity_name}' for user {current_user.id}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to perform this action",
            )

        return current_user

    return permission_checker
