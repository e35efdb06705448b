from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # -------------------------------------------------
    # General
    # -------------------------------------------------
    PROJECT_NAME: str = "Meu Apê Requests API"
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # -------------------------------------------------
    # CORS (auto-built below)
    # -------------------------------------------------
    FRONTEND_DOMAINS: List[str] = [
        "https://meuape.com.br",
        "https://www.meuape.com.br",
    ]
    BACKEND_CORS_ORIGINS: List[str] = []

    # -------------------------------------------------
    # Supabase (Primary DB & Auth)
    # -------------------------------------------------
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None

    # Cookie carrying the Supabase access token
    SESSION_COOKIE_NAME: str = "session"

    # -------------------------------------------------
    # Booking rules
    # -------------------------------------------------
    # Visit slots must fall in [tomorrow 00:00, tomorrow + VISIT_WINDOW_DAYS)
    TIMEZONE: str = "America/Sao_Paulo"
    VISIT_WINDOW_DAYS: int = 14

    USER_REQUESTS_PAGE_SIZE: int = 10
    ADMIN_REQUESTS_PAGE_SIZE: int = 15

    # -------------------------------------------------
    # SMTP Email Notifications
    # -------------------------------------------------
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: Optional[int] = None
    SMTP_USER: Optional[str] = None
    SMTP_PASS: Optional[str] = None
    EMAIL_FROM_NAME: str = "Meu Apê"

    # -------------------------------------------------
    # Webhooks (Discord, Slack, etc.)
    # -------------------------------------------------
    SYNC_WEBHOOK_URL: Optional[str] = None

    # -------------------------------------------------
    # Notification retry policy
    # -------------------------------------------------
    NOTIFY_MAX_ATTEMPTS: int = 3
    NOTIFY_RETRY_DELAY_SECONDS: float = 2.0

    # -------------------------------------------------
    # Model Config
    # -------------------------------------------------
    model_config = SettingsConfigDict(case_sensitive=True)


# Instantiate settings
settings = Settings()

# -------------------------------------------------
# Build CORS list dynamically after loading settings
# -------------------------------------------------
settings.BACKEND_CORS_ORIGINS = sorted(
    set(settings.BACKEND_CORS_ORIGINS)
    | {d.rstrip("/") for d in settings.FRONTEND_DOMAINS}
)
