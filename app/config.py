import os
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    ENV: str = os.getenv("ENV", "development")  # development, dev-server, production
    DEBUG: bool = ENV in ["development", "dev-server"]
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Database settings
    POSTGRES_HOST: str = os.getenv("POSTGRES_HOST", "localhost")
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "fleetadmin")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "fleetpass")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "fleet_db")
    POSTGRES_PORT: int = int(os.getenv("POSTGRES_PORT", "5432"))
    DATABASE_URL: str = os.getenv("DATABASE_URL", f"postgresql://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}")

    # Database connection pool settings
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "10"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "20"))
    DB_POOL_TIMEOUT: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    DB_POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE", "3600"))

    # Auth settings
    SECRET_KEY: str = os.getenv("SECRET_KEY", "supersecretkey")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))

    # RBAC
    SUPERADMIN_ROLE_NAME: str = os.getenv("SUPERADMIN_ROLE_NAME", "superadmin")
    SUPERADMIN_ROLE_DESCRIPTION: str = "Super Administrator with full system access"
    PROTECTED_ROLE_NAMES: List[str] = ["superadmin", "admin", "manager", "employee", "driver"]

    # Dynamic records / ledger import
    FIELD_SAMPLE_SIZE: int = int(os.getenv("FIELD_SAMPLE_SIZE", "5"))
    LEDGER_IDENTITY_FIELD: str = os.getenv("LEDGER_IDENTITY_FIELD", "rick")
    LEDGER_SEARCH_FIELD: str = os.getenv("LEDGER_SEARCH_FIELD", "name")
    PAYSLIP_IDENTITY_FIELD: str = os.getenv("PAYSLIP_IDENTITY_FIELD", "rick")
    PAYSLIP_SEARCH_FIELD: str = os.getenv("PAYSLIP_SEARCH_FIELD", "driver_name")
    # Stricter import policy: identifying values must already be known to the ledger
    LEDGER_STRICT_CROSS_VALIDATION: bool = os.getenv("LEDGER_STRICT_CROSS_VALIDATION", "false").lower() == "true"

    # File upload settings
    MAX_UPLOAD_SIZE_MB: int = int(os.getenv("MAX_UPLOAD_SIZE_MB", "10"))
    ALLOWED_UPLOAD_TYPES: list = [
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/octet-stream",
    ]

    # Response timestamps
    TIMEZONE: str = os.getenv("TIMEZONE", "Asia/Dubai")

    # API specific settings
    API_PREFIX: str = "/api/v1"
    APP_NAME: str = "Fleet Admin"
    APP_VERSION: str = "1.0.0"

    class Config:
        case_sensitive = True
        env_file = None

settings = Settings()
