from .keyed_lock import KeyedLock
from .orchestration_config import OrchestratorConfig
from .orchestration_results import (
    CallbackOutcome,
    CallbackStatus,
    DeviceEventOutcome,
    DeviceEventType,
    DeviceRegistered,
    JobCreated,
    StatusCounts,
    UploadStage,
)
from .orchestration_service import OrchestrationService
from .rule_based_decision_engine import RuleBasedDecisionEngine, compartment_for_label

__all__ = [
    "KeyedLock",
    "OrchestratorConfig",
    "CallbackOutcome",
    "CallbackStatus",
    "DeviceEventOutcome",
    "DeviceEventType",
    "DeviceRegistered",
    "JobCreated",
    "StatusCounts",
    "UploadStage",
    "OrchestrationService",
    "RuleBasedDecisionEngine",
    "compartment_for_label",
]
