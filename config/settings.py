"""
Registry Scout - Configuration

Loads settings from environment variables with sensible defaults.
"""

from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# Load .env file
load_dotenv()

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_DATA_DIR = PROJECT_ROOT / "data"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage
    DATA_DIR: Path = Field(default=DEFAULT_DATA_DIR)
    SNAPSHOT_DIR: Path = Field(default=DEFAULT_DATA_DIR / "snapshots")
    REPORT_DIR: Path = Field(default=DEFAULT_DATA_DIR / "reports")

    # Enrichment state
    DATABASE_URL: str = Field(
        default=f"sqlite:///{DEFAULT_DATA_DIR}/registry_scout.db"
    )

    # Application
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    LOG_DIR: Path = Field(default=PROJECT_ROOT / "logs")
    LOG_TO_FILE: bool = Field(default=True)
    LOG_MAX_BYTES: int = Field(default=5_000_000)
    LOG_BACKUP_COUNT: int = Field(default=3)

    # Registry source (MAS Financial Institutions Directory)
    MAS_FID_BASE: str = Field(default="https://eservices.mas.gov.sg/fid")
    WATCHED_CATEGORIES: list[dict[str, str]] = Field(
        default=[
            {"sector": "Capital Markets", "category": "Capital Markets Services Licensee"},
            {"sector": "Payments", "category": "Major Payment Institution"},
            {"sector": "Payments", "category": "Standard Payment Institution"},
        ]
    )

    # HTTP
    USER_AGENT: str = Field(default="Registry-Scout/0.1 (compliance monitoring)")
    REQUEST_TIMEOUT: int = Field(default=15)
    CATEGORY_DELAY_SECONDS: float = Field(default=2.0)

    # Minimum pause between two calls to the search engine
    SEARCH_DELAY_SECONDS: float = Field(default=3.0)

    # Entity resolution settings
    CONFIDENCE_THRESHOLD: float = Field(default=0.7)
    FUZZY_MATCH_THRESHOLD: int = Field(default=90)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
