from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "postgresql+asyncpg://partnerhub:partnerhub_dev@db:5432/partnerhub"

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"

    # CORS
    ALLOWED_ORIGINS: str = "*"

    # SendGrid
    SENDGRID_API_KEY: str = "mock_sendgrid_key"
    FROM_EMAIL: str = "no-reply@partnerhub.app"

    # Reports
    REPORT_TIMEZONE: str = "Asia/Tokyo"
    REPORT_DEFAULT_SEND_TIME: str = "09:00"
    REPORT_LIST_LIMIT: int = 20

    # Dashboard
    DASHBOARD_LIST_LIMIT: int = 10
    UPCOMING_DEADLINE_DAYS: int = 7

    # App
    APP_ENV: str = "development"
    APP_URL: str = "http://localhost:8000"
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
