# python
# app/core/config.py
"""Configuration settings for the Planet Board service and client.

Uses Pydantic BaseSettings for environment variable management.
"""
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentEnum(str, Enum):
    development = "development"
    testing = "testing"
    staging = "staging"
    production = "production"


class LogLevelEnum(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormatEnum(str, Enum):
    simple = "simple"
    json = "json"


class DocumentStoreEnum(str, Enum):
    memory = "memory"
    sql = "sql"


class Settings(BaseSettings):
    # Pydantic v2 settings configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===== Application Settings =====
    app_name: str = Field(default="Planet Board API", description="Application name")
    environment: EnvironmentEnum = Field(
        default=EnvironmentEnum.development, description="Environment type"
    )
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="1.0.0", description="Application version")

    # ===== Local Identity =====
    local_username: str = Field(default="admin", description="Login name of the local identity")
    local_password: str = Field(default="planet", description="Password of the local identity")
    local_user_id: str = Field(default="demo_user", description="User id the login maps to")

    # ===== Persistence =====
    document_store: DocumentStoreEnum = Field(
        default=DocumentStoreEnum.memory, description="Persistence backend"
    )
    database_url: str | None = Field(default=None, description="Database connection URL")

    # ===== AI Service (Gemini) =====
    gemini_api_key: str | None = Field(default=None, description="Google Gemini API key")
    gemini_model: str = Field(default="gemini-1.5-flash", description="Gemini model to use")
    gemini_max_tokens: int = Field(default=2048, description="Maximum tokens for Gemini")
    ai_request_timeout: float = Field(default=60.0, description="AI request timeout in seconds")
    ai_max_retry_attempts: int = Field(default=3, description="Retries for transient AI errors")

    # ===== Board Client =====
    api_base_url: str = Field(
        default="http://127.0.0.1:8000", description="Base URL the sync gateway talks to"
    )
    request_timeout: float = Field(default=10.0, description="Gateway request deadline in seconds")
    autosave_delay: float = Field(default=0.8, description="Debounce delay for project edits")
    rollback_on_failure: bool = Field(
        default=False, description="Undo optimistic changes when the server rejects them"
    )
    circular_dependencies_block: bool = Field(
        default=False, description="Treat circular dependency edges as blocking"
    )

    # ===== CORS Settings =====
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000",
        description="Allowed CORS origins (comma-separated)",
    )

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    # ===== Monitoring & Logging =====
    log_level: LogLevelEnum = Field(default=LogLevelEnum.INFO, description="Logging level")
    log_format: LogFormatEnum = Field(default=LogFormatEnum.simple, description="Log format")

    # ===== Server Settings =====
    host: str = Field(default="127.0.0.1", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")

    # ===== Computed Properties =====
    @property
    def is_development(self) -> bool:
        return self.environment == EnvironmentEnum.development

    @property
    def is_production(self) -> bool:
        return self.environment == EnvironmentEnum.production

    @property
    def is_testing(self) -> bool:
        return self.environment == EnvironmentEnum.testing

    @property
    def has_ai_enabled(self) -> bool:
        return bool(self.gemini_api_key)

    # ===== Validation Methods =====
    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        if v and isinstance(v, str):
            lv = v.lower()
            if lv in ["dev", "develop"]:
                return "development"
            if lv in ["prod"]:
                return "production"
            return lv
        return v

    @field_validator("request_timeout", "autosave_delay")
    @classmethod
    def validate_positive_delay(cls, v):
        if v <= 0:
            raise ValueError("Delays and timeouts must be positive")
        return v

    @model_validator(mode="after")
    def set_computed_fields(self):
        if self.document_store == DocumentStoreEnum.sql and not self.database_url:
            self.database_url = "sqlite+aiosqlite:///./planet_board.db"
        return self


settings = Settings()


class ConfigValidator:
    @staticmethod
    def validate_required_settings():
        errors = []
        if settings.document_store == DocumentStoreEnum.sql and not settings.database_url:
            errors.append("DATABASE_URL is required for the sql document store")
        if settings.is_production and settings.local_password == "planet":
            errors.append("LOCAL_PASSWORD must be changed in production")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

    @staticmethod
    def get_feature_status() -> dict:
        return {
            "ai_enabled": settings.has_ai_enabled,
            "document_store": settings.document_store.value,
            "rollback_on_failure": settings.rollback_on_failure,
            "environment": settings.environment,
        }


def get_config_summary() -> dict:
    return {
        "app_name": settings.app_name,
        "version": settings.version,
        "environment": settings.environment,
        "debug": settings.debug,
        "features": ConfigValidator.get_feature_status(),
        "database_configured": bool(settings.database_url),
    }


__all__ = [
    "settings",
    "Settings",
    "ConfigValidator",
    "get_config_summary",
    "EnvironmentEnum",
    "LogLevelEnum",
    "LogFormatEnum",
    "DocumentStoreEnum",
]
