from pydantic import BaseModel, EmailStr, Field
from typing import Optional

from app.schemas.user import UserRead


# -------------------------------------------------------------------
# LOGIN REQUEST
# -------------------------------------------------------------------
class LoginRequest(BaseModel):
    # username or e-mail address
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)

    class Config:
        json_schema_extra = {
            "examples": [
                {"username": "superadmin", "password": "password123"},
                {"username": "rep@example.com", "password": "password123"},
            ]
        }


# -------------------------------------------------------------------
# TOKEN + USER DETAILS (Used for login response)
# -------------------------------------------------------------------
class TokenWithUser(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user: UserRead
    # admin | special_user | department_role
    grantee_kind: Optional[str] = None
    department_name: Optional[str] = None


# -------------------------------------------------------------------
# PASSWORD RESET
# -------------------------------------------------------------------
class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class VerifyOTPRequest(BaseModel):
    email: EmailStr
    otp: str = Field(min_length=6, max_length=6)


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    otp: str = Field(min_length=6, max_length=6)
    new_password: str = Field(min_length=6)


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str = Field(min_length=6)
