from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

from orchestrator.application.services.orchestration_config import OrchestratorConfig

_PROJECT_DIR = Path(__file__).resolve().parents[1]
_ENV_FILES = (
    _PROJECT_DIR / ".env",
    ".env",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_title: str = "Smart Bin Orchestrator"
    service_name: str = "orchestrator"
    app_version: str = "1.0.0"
    app_env: str = "development"
    database_url: str = "sqlite:///./orchestrator.db"
    database_echo: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]

    # Upload grants (signed object-storage PUT URLs)
    upload_base_url: str = "https://smart-bin-dev-images.s3.us-east-1.amazonaws.com"
    upload_signing_secret: str = "dev-upload-signing-secret"
    upload_url_ttl_seconds: int = Field(default=900, gt=0)
    upload_content_type: str = "image/jpeg"

    # Device trust (local certificate authority)
    trust_ca_common_name: str = "Smart Bin Device CA"
    device_certificate_validity_days: int = Field(default=365, gt=0)

    # Decision and device policy
    confidence_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    rule_version: str = "v1"
    device_online_window_seconds: int = Field(default=300, gt=0)
    device_error_threshold: int = Field(default=10, ge=0)
    max_page_size: int = Field(default=100, gt=0)

    # Collaborator deadlines
    storage_timeout_seconds: float = Field(default=5.0, gt=0)
    grant_timeout_seconds: float = Field(default=5.0, gt=0)
    trust_timeout_seconds: float = Field(default=10.0, gt=0)
    decision_timeout_seconds: float = Field(default=10.0, gt=0)

    # Logging: per-category log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"                  # Root / app-wide
    log_level_sql: str = "WARNING"           # sqlalchemy.engine, aiosqlite
    log_level_http: str = "WARNING"          # httpx / httpcore
    log_level_uvicorn: str = "INFO"          # uvicorn.access / uvicorn.error
    log_level_lifecycle: str = "INFO"        # job lifecycle logger

    model_config = {
        "env_file": _ENV_FILES,
        "env_file_encoding": "utf-8",
    }

    def orchestrator_config(self) -> OrchestratorConfig:
        """Build the immutable config value passed to the orchestration service."""
        return OrchestratorConfig(
            upload_url_ttl=timedelta(seconds=self.upload_url_ttl_seconds),
            confidence_threshold=self.confidence_threshold,
            rule_version=self.rule_version,
            device_online_window=timedelta(seconds=self.device_online_window_seconds),
            device_error_threshold=self.device_error_threshold,
            max_page_size=self.max_page_size,
            storage_timeout_seconds=self.storage_timeout_seconds,
            grant_timeout_seconds=self.grant_timeout_seconds,
            trust_timeout_seconds=self.trust_timeout_seconds,
            decision_timeout_seconds=self.decision_timeout_seconds,
        )


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance, reads .env once."""
    return Settings()
