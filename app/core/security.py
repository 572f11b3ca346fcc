# app/core/security.py
import hashlib
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

import jwt
from passlib.context import CryptContext
from app.core.config import settings

# 1. Configuration
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)
ALGORITHM = "HS256"

# 2. Password Handling
def _pre_hash_password(password: str) -> str:
    """
    Handle the 'bcrypt 72-byte limit' safely.
    If a password is longer than 72 bytes, we hash it first using SHA-256.
    This ensures the entire password matters, regardless of length.
    """
    if len(password.encode('utf-8')) <= 72:
        return password

    # SHA-256 hexdigest is 64 chars, which fits safely inside 72 bytes.
    return hashlib.sha256(password.encode('utf-8')).hexdigest()

def hash_password(password: str) -> str:
    safe_password = _pre_hash_password(password)
    return pwd_context.hash(safe_password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    safe_password = _pre_hash_password(plain_password)
    return pwd_context.verify(safe_password, hashed_password)

# 3. Token Creation
def create_access_token(
    subject: Union[str, Any],
    expires_delta: Optional[timedelta] = None,
    data: Optional[dict] = None
) -> str:

    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": str(subject),
        "exp": expire,
        "iat": now,
        "nbf": now,
    }

    # Extra claims (role, department) are informational only;
    # authorization always re-reads the user row.
    if data:
        to_encode.update(data)

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)

# 4. Decoding
def decode_token(token: str) -> dict:
    """
    Raises jwt.ExpiredSignatureError / jwt.InvalidTokenError to the caller.
    """
    return jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[ALGORITHM],
        options={"verify_exp": True, "require": ["exp", "sub"]},
    )
