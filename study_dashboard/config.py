"""
Configuration settings for the Study Dashboard.

Uses Pydantic settings management for environment variables and configuration.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    PROJECT_NAME: str = "Study Dashboard"
    VERSION: str = "1.0.0"

    # Storage (the key-value table lives here)
    DATABASE_URL: str = "sqlite:///./study_dashboard.db"

    # Signs the session cookie that carries the client id. When unset, a
    # secret is generated once and kept in the storage table, so cookies
    # (and with them every client's store) survive restarts.
    SESSION_SECRET_KEY: Optional[str] = None

    # Client controllers kept in memory; the least recently used go first
    MAX_ACTIVE_CLIENTS: int = 1000

    # Content service (Gemini generateContent REST API)
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    CONTENT_SERVICE_TIMEOUT: float = 60.0  # seconds
    EXAM_QUESTION_COUNT: int = 10

    # Study material intake
    MAX_MATERIAL_BYTES: int = 5 * 1024 * 1024  # 5MB per file

    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def content_service_enabled(self) -> bool:
        """Check if a key for the content service is configured."""
        return bool(self.GEMINI_API_KEY)


settings = Settings()
