from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = "sqlite+aiosqlite:///./auction_house.db"

    # Auth
    secret_key: str = "change-this-in-production"
    access_token_expire_minutes: int = 60 * 24  # 24 hours
    refresh_token_expire_days: int = 30

    # FastAPI
    debug: bool = False
    log_level: str = "INFO"

    # CORS - comma-separated list of allowed origins
    cors_origins: str = "*"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list"""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # Images
    upload_dir: str = "./uploads"
    max_image_size: int = 5 * 1024 * 1024  # 5MB
    allowed_image_extensions: str = ".jpg,.jpeg,.png,.gif,.webp"

    @property
    def allowed_image_extensions_list(self) -> List[str]:
        return [ext.strip().lower() for ext in self.allowed_image_extensions.split(",") if ext.strip()]

    # Bidding
    bid_conflict_retries: int = 1
    start_time_tolerance_minutes: int = 5

    # Pagination
    default_page_size: int = 20
    max_page_size: int = 100


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance"""
    return Settings()
