# app/main.py

import sys
import time

import psutil
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.database import init_db, test_connection
from app.core.errors import register_exception_handlers
from app.core.rate_limiter import limiter
from app.core.seeding_logic import seed_all
from app.services.search_service import close_es_client

# Routers
from app.api.endpoints import (
    account as account_router,
    activities as activities_router,
    admin_permissions as admin_permissions_router,
    admins as admins_router,
    auth as auth_router,
    departments as departments_router,
    leads as leads_router,
    metrics as metrics_router,
    packages as packages_router,
    permissions as permissions_router,
    role_permissions as role_permissions_router,
    search as search_router,
    special_user_permissions as special_user_permissions_router,
    users as users_router,
)

# ------------------------------------------------------------
# LOGURU CONFIGURATION
# ------------------------------------------------------------
logger.remove()
logger.add(
    sys.stdout,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
           "<level>{level}</level> | "
           "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
           "<level>{message}</level>",
    colorize=True,
    backtrace=True,
    diagnose=settings.ENV != "prod",
)

# ------------------------------------------------------------
# FASTAPI APP INIT
# ------------------------------------------------------------
app = FastAPI(
    title="CRM Bench Sales Backend",
    version="1.0.0",
    description="Role-based access control backend for the bench sales CRM.",
)

START_TIME = time.time()
DB_STATUS = "Connecting..."

# ------------------------------------------------------------
# RATE LIMITING & ERROR ENVELOPE
# ------------------------------------------------------------
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_exception_handlers(app)


# ------------------------------------------------------------
# METRICS API
# ------------------------------------------------------------
@app.get("/api/metrics", tags=["System"])
async def metrics():
    uptime_seconds = int(time.time() - START_TIME)
    cpu_usage = psutil.cpu_percent(interval=None)
    ram_usage = psutil.virtual_memory().percent
    try:
        disk_usage = psutil.disk_usage("/").percent
    except OSError:
        disk_usage = 0

    db_start = time.time()
    db_latency = 0
    try:
        await test_connection()
        current_db_status = "Connected"
        db_latency = round((time.time() - db_start) * 1000, 2)
    except (SQLAlchemyError, OSError):
        current_db_status = "Error"

    current_time = time.strftime("%H:%M:%S")
    logs = [
        {"time": current_time, "level": "INFO", "msg": f"Health check: DB Latency {db_latency}ms"}
    ]
    if current_db_status != "Connected":
        logs.append({"time": current_time, "level": "ERROR", "msg": "Database connection failed."})

    return {
        "status": "Online",
        "version": app.version,
        "cpu": cpu_usage,
        "ram": ram_usage,
        "disk": disk_usage,
        "uptime": uptime_seconds,
        "database": current_db_status,
        "db_latency": db_latency,
        "logs": logs,
    }


# ------------------------------------------------------------
# CORS CONFIGURATION
# ------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# ------------------------------------------------------------
# REGISTER ROUTERS
# ------------------------------------------------------------
app.include_router(auth_router.router)
app.include_router(account_router.router)
app.include_router(admins_router.router)
app.include_router(users_router.router)
app.include_router(departments_router.router)
app.include_router(activities_router.router)
app.include_router(permissions_router.router)
app.include_router(role_permissions_router.router)
app.include_router(admin_permissions_router.router)
app.include_router(special_user_permissions_router.router)
app.include_router(leads_router.router)
app.include_router(packages_router.router)
app.include_router(search_router.router)
app.include_router(metrics_router.router)


# ------------------------------------------------------------
# APPLICATION STARTUP / SHUTDOWN EVENTS
# ------------------------------------------------------------
@app.on_event("startup")
async def on_startup():
    global DB_STATUS
    logger.info("🚀 Starting CRM Backend...")

    # 1) Database connection test
    try:
        await test_connection()
        DB_STATUS = "Connected"
        logger.success("Database connection established.")
    except (SQLAlchemyError, OSError):
        DB_STATUS = "Error"
        logger.exception("Startup aborted: Database connection failed.")
        return

    # 2) Tables, then activity registry and bootstrap admin
    try:
        await init_db()
        logger.success("Database tables ready.")
    except SQLAlchemyError as e:
        logger.warning(f"Table initialization encountered an issue: {e}")

    await seed_all()
    logger.success("Backend startup completed successfully.\n")


@app.on_event("shutdown")
async def on_shutdown():
    await close_es_client()


# ------------------------------------------------------------
# ROOT HEALTH CHECK
# ------------------------------------------------------------
@app.get("/", tags=["System"])
async def root():
    return {
        "status": "ok",
        "service": "CRM Bench Sales Backend",
        "version": app.version,
        "message": "Backend running successfully 🚀",
        "database": DB_STATUS,
    }
