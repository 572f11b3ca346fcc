# app/api/endpoints/permissions.py

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import get_current_user, get_db_session
from app.core.grantee import GranteeError, classify_grantee
from app.core.rbac import resolve_for_user
from app.models.user import User
from app.schemas.common import APIResponse, ok
from app.schemas.permission import ResolvedPermissions

router = APIRouter(prefix="/api/permissions", tags=["Permissions"])


@router.get("/me", response_model=APIResponse[ResolvedPermissions])
async def my_permissions(
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
):
    """
    Resolved matrix for the caller, one entry per registered activity.
    Clients use it to drive their own permission gate.
    """
    try:
        grantee_kind = classify_grantee(current_user).kind
    except GranteeError:
        grantee_kind = None

    matrix = await resolve_for_user(session, current_user)
    return ok({"grantee_kind": grantee_kind, "permissions": matrix.as_list()})
