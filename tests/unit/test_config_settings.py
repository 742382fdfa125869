"""Unit tests for application settings configuration."""

from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from orchestrator.application.services import OrchestratorConfig
from orchestrator.config import Settings
from orchestrator.domain.entities import Classification, DecisionAction
from orchestrator.infrastructure import dependencies


def test_settings_uses_project_env_file_independent_of_cwd():
    """Settings should always include the project .env as an env source."""
    env_files = Settings.model_config.get("env_file")
    assert env_files is not None

    normalized = {str(Path(item)) for item in env_files}
    expected_project_env = str(Path(__file__).resolve().parents[2] / ".env")

    assert expected_project_env in normalized
    assert str(Path(".env")) in normalized


def test_orchestrator_config_is_built_from_settings():
    settings = Settings(
        _env_file=None,
        upload_url_ttl_seconds=120,
        confidence_threshold=0.85,
        rule_version="2026-02",
        device_online_window_seconds=600,
        decision_timeout_seconds=2.5,
    )
    config = settings.orchestrator_config()

    assert config.upload_url_ttl == timedelta(minutes=2)
    assert config.confidence_threshold == 0.85
    assert config.rule_version == "2026-02"
    assert config.device_online_window == timedelta(minutes=10)
    assert config.decision_timeout_seconds == 2.5


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("CONFIDENCE_THRESHOLD", "0.9")
    monkeypatch.setenv("LOG_LEVEL_LIFECYCLE", "DEBUG")

    settings = Settings(_env_file=None)

    assert settings.confidence_threshold == 0.9
    assert settings.log_level_lifecycle == "DEBUG"


@pytest.mark.parametrize(
    "field,value",
    [("confidence_threshold", 1.5), ("upload_url_ttl_seconds", 0), ("trust_timeout_seconds", -1)],
)
def test_settings_reject_out_of_range_values(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})


@pytest.fixture
def tuned_config(monkeypatch):
    config = OrchestratorConfig(confidence_threshold=0.9, rule_version="2026-10", device_error_threshold=2)
    monkeypatch.setattr(dependencies, "get_orchestrator_config", lambda: config)
    dependencies.get_decision_engine.cache_clear()
    yield config
    dependencies.get_decision_engine.cache_clear()


@pytest.mark.asyncio
async def test_decision_engine_is_built_from_orchestrator_config(tuned_config):
    engine = dependencies.get_decision_engine()

    decision = await engine.decide(Classification(label="paper", confidence=0.85))

    assert decision.action is DecisionAction.MANUAL_REVIEW
    assert decision.confidence_threshold == 0.9
    assert decision.rule_version == "2026-10"


def test_orchestrator_config_dependency_reflects_settings(monkeypatch):
    monkeypatch.setattr(
        dependencies,
        "get_settings",
        lambda: Settings(_env_file=None, confidence_threshold=0.75, device_error_threshold=3),
    )
    dependencies.get_orchestrator_config.cache_clear()
    try:
        config = dependencies.get_orchestrator_config()
    finally:
        dependencies.get_orchestrator_config.cache_clear()

    assert config.confidence_threshold == 0.75
    assert config.device_error_threshold == 3
