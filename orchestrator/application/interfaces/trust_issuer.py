"""Abstract interface (port) for issuing device identity credentials."""

from abc import ABC, abstractmethod

from orchestrator.domain.entities.device_credential import DeviceCredential


class TrustIssuer(ABC):

    @abstractmethod
    async def issue_identity(self, device_id: str) -> DeviceCredential:
        """Issue a credential for *device_id*. Raises TrustIssuerError on failure."""
        ...
