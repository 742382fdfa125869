"""Translation of SQLAlchemy errors into domain exceptions."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import exc as sa_exc

from orchestrator.domain.exceptions import DuplicateEntityError, StorageError

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors(entity: str, entity_id: str) -> Iterator[None]:
    """Re-raise SQLAlchemy failures as DuplicateEntityError / StorageError."""
    try:
        yield
    except sa_exc.IntegrityError as exc:
        raise DuplicateEntityError(entity, "id", entity_id) from exc
    except sa_exc.SQLAlchemyError as exc:
        logger.exception("Database error while handling %s '%s'", entity, entity_id)
        raise StorageError(f"database error on {entity} '{entity_id}': {type(exc).__name__}") from exc


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo on round-trip; stored values are always UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
