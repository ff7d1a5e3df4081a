# backend/travel_itinerary/core/config_loader.py

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Document store
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB: str = "tmtc"
    MONGODB_TIMEOUT_MS: int = 5000

    # Cache (empty → in-process fallback)
    REDIS_URL: str = ""
    ITINERARY_CACHE_TTL_SECONDS: int = 300

    # Auth
    JWT_SECRET_KEY: str = "supersecret"
    JWT_ALGORITHM: str = "HS256"
    access_token_expire_minutes: int = 7 * 24 * 60
    USER_LOOKUP_ATTEMPTS: int = 3
    USER_LOOKUP_DELAY_SECONDS: float = 0.1

    # Rate limiting: 100 requests / 15 minutes per client address
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_MAX_REQUESTS: int = 100

    # Email
    EMAIL_ENABLED: bool = False
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_SECURE: bool = False
    SMTP_USER: str = ""
    SMTP_PASS: str = ""
    EMAIL_FROM_NAME: str = "TMTC Travel"

    BASE_URL: str = "http://localhost:5000"
    CORS_ORIGINS: List[str] = ["*"]

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


settings = Settings()
