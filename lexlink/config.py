from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "postgresql+asyncpg://lexlink:lexlink_dev@db:5432/lexlink"

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"

    # HTTP
    ALLOWED_ORIGINS: str = "*"

    # Pricing
    BASE_CURRENCY: str = "RON"
    DEFAULT_DISPLAY_CURRENCY: str = "RON"
    PLATFORM_FEE_RATE: float = 0.10

    # Discovery
    RADIUS_POLICY: str = "filter_radius"  # filter_radius, filter_or_service_radius
    DEFAULT_SEARCH_RADIUS_M: int = 10_000

    # Bookings
    AUTO_COMPLETE_GRACE_MINUTES: int = 0

    # App
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
