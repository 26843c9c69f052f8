"""
Lexdoc settings.

Every value can be overridden through the environment or a ``.env`` file
using the attribute name as the variable name (e.g. ``CONVERSION_WORKERS=8``).
"""
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-wide configuration, read once at import."""

    # Server
    APP_NAME: str = "Lexdoc API"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:3001"
    LOG_LEVEL: str = "INFO"

    # DOCX output
    DOCUMENT_CREATOR: str = "Lexdoc"  # core-properties author when none is given
    MAX_MARKUP_LENGTH: int = Field(2 * 1024 * 1024, gt=0)  # characters per request

    # Uploads
    MAX_UPLOAD_SIZE: int = Field(10 * 1024 * 1024, gt=0)  # bytes
    SUPPORTED_UPLOAD_TYPES: List[str] = [".pdf", ".docx", ".txt"]
    MIN_EXTRACTED_TEXT_LENGTH: int = Field(100, ge=0)

    # Worker pool
    CONVERSION_WORKERS: int = Field(4, ge=1)
    CONVERSION_TIMEOUT_SECONDS: float = Field(30.0, gt=0)
    ENABLE_DOC_FALLBACK: bool = True

    # Short bare-text lines become headings when on
    IMPLICIT_HEADINGS: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("SUPPORTED_UPLOAD_TYPES")
    @classmethod
    def _normalize_extensions(cls, value: List[str]) -> List[str]:
        return [ext if ext.startswith(".") else f".{ext}" for ext in (e.strip().lower() for e in value) if ext]

    def get_allowed_origins(self) -> List[str]:
        """ALLOWED_ORIGINS as a list, blanks dropped."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


settings = Settings()
