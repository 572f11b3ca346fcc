from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Postgres in production (postgresql+asyncpg://...), SQLite locally and in tests
    DATABASE_URL: str = "sqlite+aiosqlite:///./crm.db"

    # If DEV and you hit SSL cert issues on Windows, set DB_SSL_VERIFY=false in .env
    DB_SSL_VERIFY: bool = True

    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    BCRYPT_ROUNDS: int = 12

    SUPER_ADMIN_USERNAME: str | None = "superadmin"
    SUPER_ADMIN_EMAIL: str | None = None
    SUPER_ADMIN_PASSWORD: str | None = None
    SUPER_ADMIN_NAME: str | None = "Super Admin"
    ENV: str = "dev"  # "dev" or "prod"

    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:5174", "http://localhost:5175"]

    # --- EMAIL SETTINGS ---
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 2525  # Default to Mailtrap port
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    EMAILS_FROM_EMAIL: str = "no-reply@benchsales.example"
    EMAILS_FROM_NAME: str = "CRM Bench Sales Process"
    FRONTEND_URL: str = "http://localhost:5173"  # For login link

    # --- PASSWORD RESET ---
    OTP_EXPIRE_MINUTES: int = 10
    OTP_RESEND_SECONDS: int = 120

    # --- SEARCH ---
    ELASTICSEARCH_URL: str | None = None
    ELASTICSEARCH_LEAD_INDEX: str = "leads"

    # --- RATE LIMITING ---
    REDIS_URL: str | None = None
    RATE_LIMIT_ENABLED: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

settings = Settings()
