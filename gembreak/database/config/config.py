from typing import Optional

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """
    Application configuration settings loaded from environment variables
    or a `.env` file. Provides strongly typed access to environment values.
    """

    GEMINI_API_KEY: Optional[str] = None
    """API key for the Google Gemini generative-language API."""

    GEMINI_MODEL: str = "gemini-2.0-flash"
    """Gemini model name used for chat turns."""

    MODEL_TEMPERATURE: float = 0.7
    """Sampling temperature passed to the chat model."""

    DATABASE_URL: str = "sqlite:///./gembreak.db"
    """SQLAlchemy database URL (e.g., `postgresql+psycopg://...`, `sqlite:///...`)."""

    FRONTEND_URL: str = "http://localhost:3000"
    """Base URL of the frontend client application (allowed CORS origin)."""

    SECRET_KEY: str = "change-me-to-a-long-random-secret-key"
    """Secret key used for signing session tokens."""

    ALGORITHM: str = "HS256"
    """Cryptographic algorithm used for JWT signing."""

    ACCESS_TOKEN_EXPIRE_MINUTES: int = 120
    """Duration (in minutes) before access tokens expire."""

    ADMIN_USERNAME: Optional[str] = None
    """Username of the single admin account."""

    ADMIN_PASSWORD: Optional[str] = None
    """Password of the single admin account."""

    COOKIE_SECURE: bool = False
    """Whether session cookies are flagged `Secure` (True in production)."""

    MAX_TOOL_ROUNDS: int = 5
    """Maximum number of tool-call round trips within one chat turn."""

    TITLE_MAX_LENGTH: int = 50
    """Number of characters kept when deriving a session title."""

    LOG_LEVEL: str = "INFO"
    """Root logging level."""

    class Config:
        """
        Configuration for Pydantic settings. Loads values from `.env` file by default.
        """
        env_file = ".env"
        extra = "ignore"


# Singleton instance of Settings, ready to be imported across the app
settings = Settings()
"""Defines a Settings object that contains the contents of the .env file"""
