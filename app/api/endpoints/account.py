# app/api/endpoints/account.py
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import get_current_user, get_db_session
from app.models.user import User
from app.schemas.auth import ChangePasswordRequest
from app.schemas.common import APIResponse, ok
from app.services.auth_service import change_password as change_password_service

router = APIRouter(prefix="/api/account", tags=["Account"])


@router.post("/change-password", response_model=APIResponse)
async def change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    try:
        await change_password_service(session, current_user, payload.old_password, payload.new_password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ok(message="Password changed successfully")
