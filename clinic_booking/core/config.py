import math
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"

DEFAULT_SCHEDULE_CACHE_TTL_SECONDS = 120
MIN_SCHEDULE_CACHE_TTL_SECONDS = 5
MAX_SCHEDULE_CACHE_TTL_SECONDS = 1800


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./clinic_booking.db"

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Clinic-local civil time; all public dates/times are in this zone
    clinic_timezone: str = "Asia/Hong_Kong"

    # Doctor schedule cache (seconds, clamped to [5, 1800]). Kept as a string
    # so a malformed env value degrades to the default instead of failing startup.
    schedule_cache_ttl_seconds: str = str(DEFAULT_SCHEDULE_CACHE_TTL_SECONDS)

    # Google Calendar (OAuth client + long-lived refresh token)
    google_client_id: str = ""
    google_client_secret: str = ""
    google_refresh_token: str = ""
    calendar_timeout_seconds: float = 10.0

    # Cron endpoints (Bearer token). Empty disables them.
    cron_secret: str = ""
    # In-process reminder sweep; 0 disables the background loop
    reminder_sweep_interval_minutes: int = 0

    # Env
    env: str = "development"

    # Email (SMTP). Leave smtp_host empty to disable sending.
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    from_email: str = ""
    from_name: str = "Eden Clinic"
    email_logo_url: str = ""
    # Branding and contact in footer
    site_name: str = "Eden Clinic"
    contact_email: str = "info@edenclinic.hk"
    contact_phone: str = "3575 9733"
    public_base_url: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password and self.from_email)

    @property
    def google_calendar_configured(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret and self.google_refresh_token)

    @property
    def schedule_cache_ttl(self) -> int:
        """Cache TTL in whole seconds, clamped; non-numeric values fall back to the default."""
        try:
            raw = float(self.schedule_cache_ttl_seconds)
        except (TypeError, ValueError):
            return DEFAULT_SCHEDULE_CACHE_TTL_SECONDS
        if not math.isfinite(raw):
            return DEFAULT_SCHEDULE_CACHE_TTL_SECONDS
        return max(MIN_SCHEDULE_CACHE_TTL_SECONDS, min(MAX_SCHEDULE_CACHE_TTL_SECONDS, int(raw)))


settings = Settings()
