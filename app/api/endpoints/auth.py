# app/api/endpoints/auth.py

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api.deps import get_current_user, get_db_session
from app.core.config import settings
from app.core.errors import http_error
from app.core.grantee import GranteeError, classify_grantee
from app.core.rate_limiter import LOGIN_LIMIT, OTP_LIMIT, limiter
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    TokenWithUser,
    VerifyOTPRequest,
)
from app.schemas.common import APIResponse, ok
from app.schemas.user import UserRead
from app.services.auth_service import (
    authenticate_user,
    create_login_response,
    finalize_password_reset,
    request_password_reset,
    verify_reset_otp,
)
from app.services.email_service import send_otp_email

router = APIRouter(prefix="/api/auth", tags=["Auth"])


async def _login(session: AsyncSession, payload: LoginRequest, expected_role: UserRole) -> dict:
    user = await authenticate_user(session, payload.username, payload.password)

    if not user or UserRole(user.role) != expected_role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is disabled")

    return ok(await create_login_response(user, session), "Login successful")


# -------------------------------------------------------------------
# LOGIN
# -------------------------------------------------------------------
@router.post("/admin/login", response_model=APIResponse[TokenWithUser])
@limiter.limit(LOGIN_LIMIT)
async def admin_login(
    request: Request,
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
):
    return await _login(session, payload, UserRole.admin)


@router.post("/user/login", response_model=APIResponse[TokenWithUser])
@limiter.limit(LOGIN_LIMIT)
async def user_login(
    request: Request,
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
):
    return await _login(session, payload, UserRole.user)


# -------------------------------------------------------------------
# CURRENT USER
# -------------------------------------------------------------------
@router.get("/me", response_model=APIResponse[dict])
async def me(current_user: User = Depends(get_current_user)):
    try:
        grantee_kind = classify_grantee(current_user).kind
    except GranteeError:
        grantee_kind = None

    return ok({
        "user": UserRead.model_validate(current_user).model_dump(mode="json"),
        "grantee_kind": grantee_kind,
    })


# -------------------------------------------------------------------
# PUBLIC FORGOT PASSWORD ENDPOINTS
# -------------------------------------------------------------------
@router.post("/forgot-password", tags=["Password Reset"], response_model=APIResponse)
@limiter.limit(OTP_LIMIT)
async def forgot_password(
    request: Request,
    payload: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Issues a fresh OTP. Any earlier OTP for the account stops being valid.
    """
    try:
        user, otp = await request_password_reset(session, payload.email)
    except ValueError as e:
        # unknown e-mail -> 404, disabled account -> 400
        raise http_error(e)

    background_tasks.add_task(send_otp_email, user.email, otp, user.full_name)
    return ok(
        {"resend_after_seconds": settings.OTP_RESEND_SECONDS},
        "OTP sent successfully. Please check your mail.",
    )


@router.post("/verify-otp", tags=["Password Reset"], response_model=APIResponse)
@limiter.limit(OTP_LIMIT)
async def verify_otp(
    request: Request,
    payload: VerifyOTPRequest,
    session: AsyncSession = Depends(get_db_session),
):
    if not await verify_reset_otp(session, payload.email, payload.otp):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired OTP")
    return ok(message="OTP verified successfully")


@router.post("/reset-password", tags=["Password Reset"], response_model=APIResponse)
async def reset_password(
    payload: ResetPasswordRequest,
    session: AsyncSession = Depends(get_db_session),
):
    try:
        await finalize_password_reset(session, payload.email, payload.otp, payload.new_password)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ok(message="Password updated successfully")
