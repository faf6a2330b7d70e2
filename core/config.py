from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # -------------------------------------------------
    # General
    # -------------------------------------------------
    PROJECT_NAME: str = "Fleet Console API"
    ENV: str = "development"

    # -------------------------------------------------
    # Frontend Domains (admin console + team leader app)
    # -------------------------------------------------
    FRONTEND_DOMAIN: Optional[str] = Field(None, env="FRONTEND_DOMAIN")

    FRONTEND_DOMAINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:4173",
    ]

    # -------------------------------------------------
    # CORS (auto-built below)
    # -------------------------------------------------
    BACKEND_CORS_ORIGINS: List[str] = []

    # -------------------------------------------------
    # Supabase (Primary DB, Auth & Realtime)
    # -------------------------------------------------
    SUPABASE_URL: Optional[str] = Field(None, env="SUPABASE_URL")
    SUPABASE_ANON_KEY: Optional[str] = Field(None, env="SUPABASE_ANON_KEY")
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = Field(None, env="SUPABASE_SERVICE_ROLE_KEY")

    # -------------------------------------------------
    # Realtime change feeds
    # -------------------------------------------------
    REALTIME_ENABLED: bool = Field(False, env="REALTIME_ENABLED")
    REALTIME_TABLES: List[str] = ["riders", "requests", "announcements"]

    # -------------------------------------------------
    # Reporting
    # -------------------------------------------------
    REPORT_TIMEZONE: str = Field("Asia/Kolkata", env="REPORT_TIMEZONE")
    CURRENCY_SYMBOL: str = "₹"
    INACTIVE_RIDER_DAYS: int = Field(30, description="Inactive riders report cutoff (days since last update)")

    # -------------------------------------------------
    # Notifications
    # -------------------------------------------------
    BROADCAST_BATCH_SIZE: int = Field(100, description="Notification rows inserted per request during fan-out")

    # -------------------------------------------------
    # Wallet history archive
    # -------------------------------------------------
    WALLET_ARCHIVE_AFTER_DAYS: int = Field(3, env="WALLET_ARCHIVE_AFTER_DAYS")
    WALLET_ARCHIVE_HOUR_UTC: int = Field(21, env="WALLET_ARCHIVE_HOUR_UTC")
    SCHEDULER_ENABLED: bool = Field(False, env="SCHEDULER_ENABLED")

    # -------------------------------------------------
    # Data import
    # -------------------------------------------------
    IMPORT_ERROR_LIMIT: int = Field(50, description="Maximum row errors stored per import_history record")

    # -------------------------------------------------
    # Model Config
    # -------------------------------------------------
    class Config:
        case_sensitive = True


# Instantiate settings
settings = Settings()

# -------------------------------------------------
# Build CORS list dynamically after loading settings
# -------------------------------------------------
cors_origins = []

if settings.FRONTEND_DOMAIN:
    domain = settings.FRONTEND_DOMAIN
    if not domain.startswith("http"):
        domain = f"https://{domain}"
    cors_origins.append(domain.rstrip("/"))

cors_origins.extend([d.rstrip("/") for d in settings.FRONTEND_DOMAINS])

settings.BACKEND_CORS_ORIGINS = sorted(list(set(cors_origins)))
