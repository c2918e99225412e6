"""
Memeflix Backend — Application Configuration
=============================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; checked again in the lifespan.

Design Decision:
    We use pydantic-settings instead of raw os.getenv() because:
    1. Type coercion is automatic (str → int, str → bool)
    2. Validation happens at startup, not when the value is first used
    3. Documentation is embedded in the field definitions
"""

import logging

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List

logger = logging.getLogger(__name__)

# Placeholder secret shipped for local development only.
DEV_JWT_SECRET = "memeflix-dev-secret-change-me"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for development.
    Production deployments MUST override JWT_SECRET_KEY and CORS_ORIGINS.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # What: Async SQLite connection string using the aiosqlite driver
    # Format: sqlite+aiosqlite:///relative/path.db (four slashes for absolute)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./memeflix.db",
        description="Async SQLAlchemy connection URL"
    )

    # What: Number of pooled connections to the embedded database
    # Why 1: SQLite allows one writer at a time; a single connection makes
    #        every request queue for it instead of failing with "database is locked"
    db_pool_size: int = Field(default=1, ge=1, le=20)
    db_max_overflow: int = Field(default=0, ge=0, le=20)

    # ── Media ─────────────────────────────────────────────────────────────
    # What: Directory holding the raw meme files served under /media
    media_root: str = Field(default="./meme_files")

    # What: Read size for streamed media responses
    media_chunk_size: int = Field(default=65_536, ge=1024, le=4_194_304)

    # ── Authentication ────────────────────────────────────────────────────
    jwt_secret_key: str = Field(default=DEV_JWT_SECRET)
    jwt_algorithm: str = Field(default="HS256")
    # Default: one day
    jwt_expiration_minutes: int = Field(default=1440, ge=1, le=43_200)

    # What: bcrypt work factor (2^rounds iterations)
    # Trade-off: each +1 doubles hashing time for logins and attackers alike
    bcrypt_rounds: int = Field(default=12, ge=4, le=16)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Format: Comma-separated URLs
    cors_origins: str = Field(default="http://localhost:5173,http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=3001, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Listing Defaults ──────────────────────────────────────────────────
    # What: Fallback sizes used when a request omits `limit`
    # Why 12 / 15: a browse grid page and a homepage carousel row respectively
    default_page_limit: int = Field(default=12, ge=1, le=100)
    default_row_limit: int = Field(default=15, ge=1, le=100)
    default_history_limit: int = Field(default=50, ge=1, le=500)
    default_related_tags_limit: int = Field(default=5, ge=1, le=50)
    default_popular_tags_limit: int = Field(default=10, ge=1, le=100)

    # ── Rate Limiting ─────────────────────────────────────────────────────
    # What: Per-IP sliding window rate limit
    rate_limit_requests: int = Field(default=1000, ge=10, le=100_000)
    rate_limit_window: int = Field(default=3600, ge=60, le=86400)  # seconds

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Reports settings that are unsafe outside local development.
        When:  Called during app startup (lifespan).
        How:   Logs a warning per problem; startup continues so a fresh
               checkout still boots with zero configuration.
        """
        problems = []
        if self.jwt_secret_key == DEV_JWT_SECRET:
            problems.append("JWT_SECRET_KEY is the development default; tokens are forgeable")
        if len(self.jwt_secret_key) < 16:
            problems.append("JWT_SECRET_KEY is shorter than 16 characters")
        if "*" in self.cors_origins_list:
            problems.append("CORS_ORIGINS allows every origin")
        for problem in problems:
            logger.warning("Configuration: %s", problem)


# Singleton instance, imported throughout the application
settings = Settings()
