from slowapi import Limiter
from slowapi.util import get_remote_address
from app.core.config import settings
from loguru import logger


# ----------------------------------------------------------------
# 1. CLIENT IP IDENTIFICATION
# ----------------------------------------------------------------
def get_real_ip(request):
    """
    Client IP behind proxies: X-Forwarded-For (leftmost), then X-Real-IP,
    then the socket peer.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return get_remote_address(request)


# ----------------------------------------------------------------
# 2. REDIS CONNECTION STRING (TLS in production)
# ----------------------------------------------------------------
storage_uri = settings.REDIS_URL

if storage_uri and storage_uri.startswith("redis://") and settings.ENV == "prod":
    # Managed Redis requires rediss:// in production
    storage_uri = storage_uri.replace("redis://", "rediss://", 1)


# ----------------------------------------------------------------
# 3. LIMITER (Redis when configured, in-memory otherwise)
# ----------------------------------------------------------------
if storage_uri:
    logger.info("⚡ Initializing Rate Limiter with Redis Storage")
    limiter = Limiter(
        key_func=get_real_ip,
        storage_uri=storage_uri,
        strategy="fixed-window",
        storage_options={"socket_connect_timeout": 5, "retry_on_timeout": True},
        enabled=settings.RATE_LIMIT_ENABLED,
    )
else:
    logger.info("REDIS_URL not set. Using in-memory rate limiting.")
    limiter = Limiter(key_func=get_real_ip, enabled=settings.RATE_LIMIT_ENABLED)


# Per-route limits for unauthenticated endpoints
LOGIN_LIMIT = "10/minute"
OTP_LIMIT = "5/minute"
