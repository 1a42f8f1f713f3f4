from pydantic_settings import BaseSettings
from typing import Optional, List
import os
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # API Configuration
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("PORT", os.getenv("API_PORT", "8080")))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    ALLOWED_ORIGINS: str = os.getenv("ALLOWED_ORIGINS", "")

    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    DATABASE_ECHO: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"

    # Apify (collection adapter)
    APIFY_API_TOKEN: Optional[str] = os.getenv("APIFY_API_TOKEN", None)
    APIFY_ACTOR_ID: str = os.getenv("APIFY_ACTOR_ID", "apify/instagram-scraper")
    APIFY_MAX_RETRIES: int = int(os.getenv("APIFY_MAX_RETRIES", "3"))
    APIFY_TIMEOUT_SECS: int = int(os.getenv("APIFY_TIMEOUT_SECS", "300"))

    # Data collection
    DEFAULT_TRACKED_ACCOUNTS: str = os.getenv("DEFAULT_TRACKED_ACCOUNTS", "cristiano,therock,selenagomez")
    COLLECTION_DELAY_SECONDS: float = float(os.getenv("COLLECTION_DELAY_SECONDS", "5"))
    FALLBACK_POSTS_COUNT: int = int(os.getenv("FALLBACK_POSTS_COUNT", "8"))

    # Analytics
    ENGAGEMENT_SAMPLE_SIZE: int = int(os.getenv("ENGAGEMENT_SAMPLE_SIZE", "20"))
    GROWTH_DEFAULT_DAYS: int = int(os.getenv("GROWTH_DEFAULT_DAYS", "30"))
    RECENT_ACTIVITY_DAYS: int = int(os.getenv("RECENT_ACTIVITY_DAYS", "7"))
    ANALYTICS_TIMEZONE: str = os.getenv("ANALYTICS_TIMEZONE", "UTC")
    ANALYTICS_REQUIRE_DATA: bool = os.getenv("ANALYTICS_REQUIRE_DATA", "false").lower() == "true"

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")

    class Config:
        case_sensitive = True

    @property
    def tracked_accounts(self) -> List[str]:
        """Default account list used by bulk collection, comparison and batch"""
        return [name.strip().lower() for name in self.DEFAULT_TRACKED_ACCOUNTS.split(",") if name.strip()]

    @property
    def async_database_url(self) -> str:
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.DATABASE_URL


settings = Settings()
