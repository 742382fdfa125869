"""Domain-specific exceptions, framework-independent."""

from typing import Any


class EntityNotFoundError(Exception):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: int | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")


class DuplicateEntityError(Exception):
    """Raised when attempting to create a duplicate entity."""

    def __init__(self, entity_type: str, field: str, value: str):
        self.entity_type = entity_type
        self.field = field
        self.value = value
        super().__init__(f"{entity_type} with {field}='{value}' already exists")


class InvalidInputError(Exception):
    """Raised when caller-supplied input is malformed."""

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        self.message = message
        self.field = field
        self.details = details or {}
        if field and "field" not in self.details:
            self.details["field"] = field
        super().__init__(message)


class InvalidTransitionError(Exception):
    """Raised when a state change is not allowed from the current state."""

    def __init__(self, current: str, target: str, reason: str | None = None):
        self.current = current
        self.target = target
        self.reason = reason
        message = f"Cannot transition from '{current}' to '{target}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class CollaboratorError(Exception):
    """Base class for failures of an external collaborator (storage, issuers, engines).

    The message is meant for logs only; the HTTP layer replaces it with a
    generic one.
    """

    def __init__(self, collaborator: str, message: str):
        self.collaborator = collaborator
        self.message = message
        super().__init__(f"[{collaborator}] {message}")


class StorageError(CollaboratorError):
    """Raised when the persistence layer fails."""

    def __init__(self, message: str, collaborator: str = "storage"):
        super().__init__(collaborator, message)


class UploadGrantError(StorageError):
    """Raised when an upload grant cannot be issued."""

    def __init__(self, message: str):
        super().__init__(message, collaborator="upload-grant-issuer")


class ConcurrentUpdateError(StorageError):
    """Raised when a conditional write keeps losing to concurrent writers."""

    def __init__(self, entity_type: str, entity_id: str, attempts: int):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.attempts = attempts
        super().__init__(
            f"{entity_type} '{entity_id}' changed concurrently {attempts} times in a row"
        )


class TrustIssuerError(CollaboratorError):
    """Raised when a device credential cannot be issued."""

    def __init__(self, message: str):
        super().__init__("trust-issuer", message)


class DecisionError(CollaboratorError):
    """Raised when the decision step fails to produce a usable decision."""

    def __init__(self, message: str):
        super().__init__("decision-engine", message)


class CollaboratorTimeoutError(CollaboratorError):
    """Raised when a collaborator call exceeds its deadline."""

    def __init__(self, collaborator: str, timeout: float):
        self.timeout = timeout
        super().__init__(collaborator, f"timed out after {timeout:.2f}s")
