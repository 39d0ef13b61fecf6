from pydantic_settings import BaseSettings
from functools import lru_cache
import os
from pathlib import Path
from dotenv import load_dotenv
from typing import List, Optional

# Load environment variables from the .env file
load_dotenv()

# Project root directory
BASE_DIR = Path(__file__).resolve().parent.parent.parent

class Settings(BaseSettings):
    # API settings
    APP_NAME: str = "Recall Context API"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"

    # CORS configuration
    CORS_ORIGINS: List[str] = os.getenv("CORS_ORIGINS", "*").split(",")

    # Database configuration
    DATABASE_PATH: Path = Path(os.getenv("DATABASE_PATH", str(BASE_DIR / "recall.db")))
    DB_TIMEOUT: float = float(os.getenv("DB_TIMEOUT", "30"))

    # Credential encryption: master secret used to derive per-user keys
    ENCRYPTION_SECRET: str = os.getenv("ENCRYPTION_SECRET", "change-me-in-production")
    # Single implicit user until multi-user settings exist
    DEFAULT_USER_ID: str = "default-user"

    # Anthropic configuration
    ANTHROPIC_BASE_URL: str = os.getenv("ANTHROPIC_BASE_URL", "https://api.anthropic.com/v1")
    ANTHROPIC_MODEL: str = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")
    ANTHROPIC_MAX_TOKENS: int = int(os.getenv("ANTHROPIC_MAX_TOKENS", "4096"))
    ANTHROPIC_VERSION: str = os.getenv("ANTHROPIC_VERSION", "2023-06-01")
    # Timeout (seconds) for the analysis request
    ANTHROPIC_TIMEOUT: int = int(os.getenv("ANTHROPIC_TIMEOUT", "120"))
    # Optional file overriding the built-in analysis prompt
    PROMPT_TEMPLATE_PATH: Optional[Path] = None

    # Logging configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Transcript upload limits
    MAX_UPLOAD_SIZE: int = int(os.getenv("MAX_UPLOAD_SIZE", "5000000"))  # 5 MB

    # Ignore unknown variables left over in .env files
    class Config:
        extra = "ignore"
        env_file = ".env"
        case_sensitive = True

@lru_cache()
def get_settings():
    return Settings()

settings = get_settings()
