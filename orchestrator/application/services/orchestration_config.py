"""Immutable configuration value handed to the OrchestrationService."""

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class OrchestratorConfig:
    """Policy knobs and collaborator deadlines for the orchestration service.

    Built once at startup (see ``Settings.orchestrator_config``) and passed
    to the service constructor.
    """

    upload_url_ttl: timedelta = timedelta(minutes=15)
    confidence_threshold: float = 0.7
    rule_version: str = "v1"
    device_online_window: timedelta = timedelta(minutes=5)
    device_error_threshold: int = 10
    default_page_size: int = 10
    max_page_size: int = 100
    max_write_attempts: int = 3
    storage_timeout_seconds: float = 5.0
    grant_timeout_seconds: float = 5.0
    trust_timeout_seconds: float = 10.0
    decision_timeout_seconds: float = 10.0
