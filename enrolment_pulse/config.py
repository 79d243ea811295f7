"""
Application configuration settings.
"""
from pydantic_settings import BaseSettings
from pathlib import Path
from typing import List, Literal


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Row source for the dataset cache
    DATA_SOURCE: Literal["csv", "database"] = "csv"
    ENROLMENT_CSV_DIR: str = "api_data_aadhar_enrolment"

    # "skip" reports bad rows and keeps loading, "raise" aborts on the first one
    LOADER_ERROR_POLICY: Literal["raise", "skip"] = "skip"
    PRELOAD_DATA: bool = False

    # Database - PostgreSQL for production, SQLite for local
    DATABASE_URL: str = ""  # PostgreSQL connection string (production)
    DATABASE_PATH: str = "data/enrolment_pulse.db"  # SQLite path (local fallback)
    USE_POSTGRES: bool = False  # Set to True to use PostgreSQL

    # LLM assistant (optional)
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-1.5-flash"
    GEMINI_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_TIMEOUT_SECONDS: float = 20.0

    # API settings
    API_V1_PREFIX: str = "/api"
    PROJECT_NAME: str = "Enrolment Pulse"
    VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ]

    @property
    def database_url(self) -> str:
        """Get database URL - PostgreSQL if configured, else SQLite."""
        if self.USE_POSTGRES and self.DATABASE_URL:
            return self.DATABASE_URL
        return f"sqlite:///{self.DATABASE_PATH}"

    @property
    def is_postgres(self) -> bool:
        """Check if using PostgreSQL."""
        return self.USE_POSTGRES and bool(self.DATABASE_URL)

    @property
    def llm_enabled(self) -> bool:
        return bool(self.GEMINI_API_KEY)

    @property
    def base_dir(self) -> Path:
        """Get base directory of the project."""
        return Path(__file__).parent.parent

    class Config:
        env_file = ".env"
        extra = "allow"


# Global settings instance
settings = Settings()
