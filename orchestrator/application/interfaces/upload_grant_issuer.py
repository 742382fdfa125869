"""Abstract interface (port) for issuing object-storage upload grants."""

from abc import ABC, abstractmethod
from datetime import timedelta

from orchestrator.domain.entities.upload_grant import UploadGrant


class UploadGrantIssuer(ABC):

    @abstractmethod
    async def issue_put_grant(self, storage_key: str, ttl: timedelta) -> UploadGrant:
        """Issue a grant allowing one PUT of *storage_key* until now + *ttl*.

        Raises UploadGrantError when no grant can be issued.
        """
        ...
