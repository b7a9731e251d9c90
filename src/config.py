"""
Configuration management for Training Events.

Uses Pydantic Settings for type-safe environment variable loading.
Configured via .env file in project root.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via .env file or environment variables.
    """

    # Python & Application
    python_env: Literal["development", "production"] = Field(
        default="development",
        description="Application environment"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./data/training_events.db",
        description="Database connection URL"
    )

    # API Configuration
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8000,
        description="API server port"
    )
    api_reload: bool = Field(
        default=True,
        description="Enable auto-reload in development"
    )

    # External directories (users, lesson plans, addresses)
    directory_provider: Literal["local", "http"] = Field(
        default="local",
        description="Directory backend (http services or local in-memory seed)"
    )
    user_directory_url: str = Field(
        default="",
        description="Base URL of the user directory service"
    )
    lesson_plan_directory_url: str = Field(
        default="",
        description="Base URL of the lesson plan directory service"
    )
    address_directory_url: str = Field(
        default="",
        description="Base URL of the address directory service"
    )
    directory_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout for a single directory request"
    )
    directory_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts per directory request before giving up"
    )
    directory_seed_file: str = Field(
        default="",
        description="JSON file used to seed the local directories"
    )

    # Event lifecycle
    generate_checkin_code: bool = Field(
        default=True,
        description="Generate a check-in code when an event is started"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.python_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.python_env == "production"

    @property
    def uses_postgresql(self) -> bool:
        """Check if PostgreSQL is the configured database."""
        return "postgresql" in self.database_url.lower()

    @property
    def uses_http_directories(self) -> bool:
        """Check if the directories are reached over HTTP."""
        return self.directory_provider == "http"

    def validate_production_config(self) -> None:
        """
        Validate configuration for production environment.

        Raises:
            ValueError: If required production settings are missing or invalid
        """
        if not self.is_production:
            return

        errors = []

        if not self.uses_postgresql:
            errors.append(
                "Production requires PostgreSQL. "
                "Set DATABASE_URL to a PostgreSQL connection string."
            )

        if not self.uses_http_directories:
            errors.append("Production requires DIRECTORY_PROVIDER=http.")

        if errors:
            raise ValueError("Production configuration errors:\n- " + "\n- ".join(errors))

        self.validate_directory_config()

    def validate_directory_config(self) -> None:
        """
        Validate HTTP directory configuration.

        Raises:
            ValueError: If a directory URL is missing
        """
        if not self.uses_http_directories:
            return

        missing = [
            name.upper()
            for name in (
                "user_directory_url",
                "lesson_plan_directory_url",
                "address_directory_url",
            )
            if not getattr(self, name)
        ]
        if missing:
            raise ValueError(
                f"HTTP directories require {', '.join(missing)}. "
                "Please set them in your .env file."
            )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    This function is cached to ensure we only load settings once.
    Use this function throughout the application to access settings.

    Returns:
        Settings instance loaded from environment
    """
    return Settings()
