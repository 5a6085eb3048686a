"""Configuration management for WasteWatch.

Uses pydantic-settings to load configuration from environment variables.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_env_file() -> Path | None:
    """Search for .env file in common locations."""
    cwd = Path.cwd()
    check_dir = cwd
    for _ in range(5):
        if (check_dir / ".env").exists():
            return check_dir / ".env"
        parent = check_dir.parent
        if parent == check_dir:
            break
        check_dir = parent

    # backend/src/wastewatch/config.py -> project root
    project_root = Path(__file__).resolve().parent.parent.parent.parent
    if (project_root / ".env").exists():
        return project_root / ".env"

    return None


_env_file = _find_env_file()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(_env_file) if _env_file else ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================
    # Environment
    # =========================
    environment: Literal["development", "staging", "production"] = "development"

    # =========================
    # API Settings
    # =========================
    api_host: str = "0.0.0.0"
    api_port: int = 5000
    api_debug: bool = False
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # =========================
    # Redis
    # =========================
    redis_url: str = "redis://localhost:6379/0"

    # =========================
    # JWT/Auth
    # =========================
    jwt_secret: str = Field(default="change-me-in-production", repr=False)
    jwt_algorithm: str = "HS256"
    jwt_expiration_hours: int = 24 * 7
    allow_admin_registration: bool = False

    # =========================
    # Uploads
    # =========================
    upload_dir: str = "uploads"
    max_upload_bytes: int = 5 * 1024 * 1024

    # =========================
    # Dispatch
    # =========================
    max_active_jobs: int = Field(
        default=5, ge=1, description="Active jobs at which a worker stops receiving auto-assignments"
    )
    allow_cross_zone: bool = False
    high_severity_threshold: float = 8.0

    # =========================
    # Sample Data
    # =========================
    seed_sample_data: bool = True
    sample_user_password: str = Field(default="password123", repr=False)

    # =========================
    # API Client
    # =========================
    api_base_url: str = "http://localhost:5000"
    client_token_path: str = Field(
        default_factory=lambda: str(Path.home() / ".wastewatch" / "session.json")
    )

    # =========================
    # Logging
    # =========================
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    # =========================
    # Feature Flags
    # =========================
    rate_limit_enabled: bool = True

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
