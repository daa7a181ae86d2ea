from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DEBUG: bool = False
    APP_NAME: str = "Coupon Manager"
    APP_DATABASE_DSN: str = "sqlite:////tmp/coupons.db"
    REDIS_URL: str = "redis://localhost:6379"
    LOG_LEVEL: str = "INFO"

    # HTTP surface
    API_PREFIX: str = "/api"
    CORS_ORIGINS: str = "http://localhost:3000"

    # Coupon defaults
    DEFAULT_CURRENCY: str = "NIS"
    DEFAULT_PAGE_LIMIT: int = 50
    MAX_PAGE_LIMIT: int = 100
    RECENT_COUPONS_LIMIT: int = 5
    EXPIRING_SOON_DAYS: int = 7

    # Telegram bot
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_CHAT_ID: str = ""
    TELEGRAM_WEBHOOK_SECRET: str = ""
    TELEGRAM_API_URL: str = "https://api.telegram.org"

    # Daily expiration scan
    EXPIRATION_CHECK_HOUR: int = 9
    EXPIRATION_CHECK_TIMEZONE: str = "Asia/Jerusalem"

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.TELEGRAM_BOT_TOKEN)

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
