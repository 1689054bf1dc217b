from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "Headway Trips API"
    LOG_LEVEL: str = "INFO"
    # Comma-separated origins for CORS (e.g. https://headwaytrips.com,https://admin.headwaytrips.com). If empty, uses localhost defaults.
    CORS_ORIGINS: str = ""

    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    DATABASE_URL: str

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Render and others give postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v
    REDIS_URL: str = "redis://localhost:6379/0"

    SITE_URL: str = "https://headwaytrips.com"  # completion links point at {SITE_URL}/reserva/completar

    # Revolut Merchant API
    REVOLUT_SECRET_KEY: str = ""
    REVOLUT_SANDBOX: bool = False
    REVOLUT_API_VERSION: str = "2024-09-01"
    REVOLUT_TIMEOUT_SECONDS: int = 25
    REVOLUT_WEBHOOK_SECRET: str = ""
    # Only for local development: accept webhooks without a signing secret.
    REVOLUT_WEBHOOK_ALLOW_UNSIGNED: bool = False

    # Email: Resend when RESEND_API_KEY is set, SMTP otherwise (MailHog recommended for local)
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "Headway Trips <no-reply@headwaytrips.com>"
    ADMIN_EMAIL: str = "reservas@headwaytrips.com"
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 25
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""

    CRON_SECRET: str = ""

    # Booking initiation throttle (per client IP)
    RATE_LIMIT_BOOKING_LIMIT: int = 10
    RATE_LIMIT_BOOKING_WINDOW_SECONDS: int = 900

    BOOKING_TOKEN_TTL_DAYS: int = 30
    REMINDER_INTERVAL_HOURS: int = 72

    def check_webhook_security(self) -> None:
        """Refuse to start when webhooks would be accepted unsigned without an explicit opt-in."""
        if not self.REVOLUT_WEBHOOK_SECRET and not self.REVOLUT_WEBHOOK_ALLOW_UNSIGNED:
            raise RuntimeError(
                "REVOLUT_WEBHOOK_SECRET is not set. Configure it, or set "
                "REVOLUT_WEBHOOK_ALLOW_UNSIGNED=true for local development."
            )


settings = Settings()
