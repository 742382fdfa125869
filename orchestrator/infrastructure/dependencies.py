"""FastAPI dependency injection, wires infrastructure to the application layer."""

from collections.abc import AsyncGenerator
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from orchestrator.config import get_settings
from orchestrator.application.interfaces import DecisionEngine, TrustIssuer, UploadGrantIssuer
from orchestrator.application.services import (
    KeyedLock,
    OrchestrationService,
    OrchestratorConfig,
    RuleBasedDecisionEngine,
)
from orchestrator.infrastructure.database.session import get_db_session
from orchestrator.infrastructure.database.repositories import (
    SQLAlchemyDeviceRepository,
    SQLAlchemyJobRepository,
)
from orchestrator.infrastructure.storage.signed_url_grant_issuer import SignedUrlUploadGrantIssuer
from orchestrator.infrastructure.trust.local_ca_trust_issuer import LocalCATrustIssuer


# ── Process-wide collaborators ───────────────────────────────────────


@lru_cache
def get_upload_grant_issuer() -> UploadGrantIssuer:
    settings = get_settings()
    return SignedUrlUploadGrantIssuer(
        base_url=settings.upload_base_url,
        signing_secret=settings.upload_signing_secret,
        content_type=settings.upload_content_type,
    )


@lru_cache
def get_trust_issuer() -> TrustIssuer:
    """One CA per process; every device certificate chains to it."""
    settings = get_settings()
    return LocalCATrustIssuer(
        common_name=settings.trust_ca_common_name,
        validity_days=settings.device_certificate_validity_days,
    )


@lru_cache
def get_orchestrator_config() -> OrchestratorConfig:
    """The tuning every component reads: service, decision engine and device views."""
    return get_settings().orchestrator_config()


@lru_cache
def get_decision_engine() -> DecisionEngine:
    config = get_orchestrator_config()
    return RuleBasedDecisionEngine(
        confidence_threshold=config.confidence_threshold,
        rule_version=config.rule_version,
    )


@lru_cache
def get_job_locks() -> KeyedLock:
    return KeyedLock()


# ── Request-scoped services ──────────────────────────────────────────


async def get_orchestration_service(
    session: AsyncSession = Depends(get_db_session),
    upload_grant_issuer: UploadGrantIssuer = Depends(get_upload_grant_issuer),
    trust_issuer: TrustIssuer = Depends(get_trust_issuer),
    decision_engine: DecisionEngine = Depends(get_decision_engine),
    job_locks: KeyedLock = Depends(get_job_locks),
    config: OrchestratorConfig = Depends(get_orchestrator_config),
) -> AsyncGenerator[OrchestrationService, None]:
    """Provides an OrchestrationService bound to the request's DB session."""
    yield OrchestrationService(
        job_repository=SQLAlchemyJobRepository(session),
        device_repository=SQLAlchemyDeviceRepository(session),
        upload_grant_issuer=upload_grant_issuer,
        trust_issuer=trust_issuer,
        decision_engine=decision_engine,
        config=config,
        job_locks=job_locks,
    )
