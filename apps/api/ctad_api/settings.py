"""Application settings and configuration."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: Optional[str] = None
    postgres_user: str = "ctad"
    postgres_password: str = "ctad_dev_password"
    postgres_host: str = "localhost"
    postgres_db: str = "ctad"
    postgres_port: int = 5432
    auto_create_tables: bool = False  # create_all at startup, dev only

    # API
    environment: str = "development"

    # Logging
    log_level: str = "INFO"

    # Export document envelope
    export_protocol: str = "CTAD"
    export_version: str = "1.1"

    # Process declaration ingestion
    ingest_cors_allow_origin: str = "*"
    reward_update_max_attempts: int = 3

    # Audio hashing (files are hashed, never stored)
    max_audio_file_bytes: int = 200 * 1024 * 1024

    @property
    def database_url_computed(self) -> str:
        """Compute database URL if not explicitly set."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url_computed.startswith("sqlite")

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() in ("development", "dev", "test")

    def validate_production_settings(self):
        """Validate settings for production environment."""
        if not self.is_production:
            return
        if self.is_sqlite:
            raise ValueError(
                "SQLite is not supported in production. Set DATABASE_URL to a PostgreSQL database."
            )
        if self.auto_create_tables:
            raise ValueError(
                "AUTO_CREATE_TABLES is not allowed in production. Run `alembic upgrade head` instead."
            )
        if self.reward_update_max_attempts < 1:
            raise ValueError("REWARD_UPDATE_MAX_ATTEMPTS must be at least 1.")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
