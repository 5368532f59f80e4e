from functools import lru_cache
from pydantic_settings import BaseSettings
from typing import List, Union
from dotenv import load_dotenv
from pydantic import field_validator
import os
import logging

logger = logging.getLogger(__name__)

if os.path.exists(".env"):
    load_dotenv(".env", override=True)
    logger.info("Loaded .env configuration")
else:
    load_dotenv()

class Settings(BaseSettings):
    """Application settings."""
    # API Configuration
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Real Estate Listings Dashboard API"

    # Supabase Configuration
    SUPABASE_URL: str
    SUPABASE_KEY: str
    REQUIRE_SERVICE_ROLE_KEY: bool = True

    # CORS Configuration
    BACKEND_CORS_ORIGINS: Union[str, List[str]] = "*"

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Dashboard aggregation windows
    NEW_LISTING_WINDOW_DAYS: int = 30
    WEEKLY_TREND_WINDOW_DAYS: int = 90
    MONTHLY_TREND_WINDOW_DAYS: int = 365
    LOAN_TYPE_TOP_N: int = 3
    RECENT_LISTINGS_LIMIT: int = 10

    @field_validator("BACKEND_CORS_ORIGINS")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """Convert CORS origins to a list of origins."""
        if isinstance(v, str):
            if v.strip() == "*":
                return ["*"]
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("LOG_LEVEL")
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
