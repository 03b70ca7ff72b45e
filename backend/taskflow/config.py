"""Application configuration."""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # App
    APP_NAME: str = "Taskflow"
    ENV: str = "development"
    DEBUG: bool = True
    ALLOWED_ORIGINS: str = "http://localhost:3000"
    # Public URL used to build links in outgoing emails.
    APP_BASE_URL: str = "http://localhost:3000"
    # Base of the "type" URI in problem+json error bodies.
    PROBLEM_TYPE_BASE_URL: str = "https://api.taskflow.local/problems"

    # Database
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # Redis (page/view cache invalidation)
    REDIS_URL: str = "redis://localhost:6379/0"
    VIEW_CACHE_PREFIX: str = "view"

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"

    # JWT
    JWT_SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    JWT_LEEWAY_SECONDS: int = 30  # clock skew tolerance for exp validation

    # Email (Resend HTTP API)
    RESEND_API_KEY: str | None = None
    RESEND_API_URL: str = "https://api.resend.com/emails"
    RESEND_FROM_EMAIL: str = "onboarding@resend.dev"
    EMAIL_TIMEOUT_SECONDS: int = 10
    # "queue": hand each email to a Celery worker; "inline": send in-process.
    EMAIL_DISPATCH_MODE: str = "queue"
    EMAIL_MAX_RETRIES: int = 3

    # Invitations
    INVITATION_TTL_DAYS: int = 7
    INVITATION_PASSWORD_MIN_LENGTH: int = 6

    # Notification retention
    NOTIFICATION_RETENTION_DAYS: int = 30
    NOTIFICATION_SWEEP_HOUR_UTC: int = 3
    # Bearer secret for the cleanup endpoint; unset disables the check.
    CRON_SECRET: str | None = None

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    @property
    def email_configured(self) -> bool:
        return bool(self.RESEND_API_KEY)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
