"""
Application settings.

Read from environment variables (or a .env file) with pydantic-settings.
DATA_DIR holds the parsed module records under output/ and the scraped
student profiles under Students/.
"""

from pathlib import Path
from typing import List, Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # =========================
    # App
    # =========================
    APP_TITLE: str = "University Results Portal API"
    APP_DESCRIPTION: str = "Parse result-sheet PDFs and serve student transcripts, GPAs and rankings"
    APP_VERSION: str = "1.0.0"

    # =========================
    # CORS
    # =========================
    # Comma separated, e.g. "http://localhost:3000,https://results.example.edu"
    CORS_ORIGINS: str = "*"

    @computed_field  # type: ignore[misc]
    @property
    def CORS_ORIGIN_LIST(self) -> List[str]:
        return [s.strip() for s in self.CORS_ORIGINS.split(",") if s.strip()]

    # =========================
    # Data
    # =========================
    DATA_DIR: Path = Path("data")

    @computed_field  # type: ignore[misc]
    @property
    def RECORDS_DIR(self) -> Path:
        return self.DATA_DIR / "output"

    @computed_field  # type: ignore[misc]
    @property
    def PROFILES_DIR(self) -> Path:
        return self.DATA_DIR / "Students"

    # =========================
    # Uploads / Logging
    # =========================
    MAX_UPLOAD_MB: int = 50
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
