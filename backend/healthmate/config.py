# backend/healthmate/config.py
"""
Configuration settings for the HealthMate prescription API
"""
import logging
from pathlib import Path
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_prefix="HEALTHMATE_", env_file=".env", extra="ignore")

    APP_NAME: str = "HealthMate API"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = f"sqlite:///{BASE_DIR}/healthmate.db"

    # Uploads
    UPLOAD_DIR: Path = BASE_DIR / "uploads" / "prescriptions"
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB
    ALLOWED_EXTENSIONS: List[str] = ["jpg", "jpeg", "png"]

    # OCR
    TESSERACT_CMD: Optional[str] = None
    OCR_LANG: str = "eng"

    # Extraction thresholds
    MIN_NAME_LENGTH: int = 3
    MIN_FALLBACK_TOKEN_LENGTH: int = 4
    HOSPITAL_CONTEXT_CHARS: int = 50
    REQUIRE_MEDICINE_KEYWORD: bool = False


settings = Settings()


def configure_logging(level: Optional[str] = None):
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
