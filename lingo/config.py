"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str = "sqlite:///./lingo.db"

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"
    CACHE_ENABLED: bool = True
    VIEW_CACHE_TTL: int = 300  # 5 minutes

    # Application
    APP_NAME: str = "Lingo"
    APP_VERSION: str = "1.0.0"
    APP_URL: str = "http://localhost:3000"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_PER_HOUR: int = 1000

    # Identity provider tokens
    JWT_SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    # Stripe
    STRIPE_API_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_PRICE_AMOUNT: int = 2000  # $20.00
    STRIPE_CURRENCY: str = "USD"

    # Game rules
    MAX_HEARTS: int = 5
    POINTS_PER_CHALLENGE: int = 10
    POINTS_TO_REFILL: int = 10
    SUBSCRIPTION_GRACE_PERIOD_HOURS: int = 24
    LEADERBOARD_SIZE: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
