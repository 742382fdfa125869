"""Abstract interface (port) for the decision step."""

from abc import ABC, abstractmethod

from orchestrator.domain.entities.classification import Classification
from orchestrator.domain.entities.decision import Decision
from orchestrator.domain.entities.device import BinType


class DecisionEngine(ABC):

    @abstractmethod
    async def decide(self, classification: Classification, bin_type: BinType | None = None) -> Decision:
        """Turn a classification into a decision for a bin of *bin_type*."""
        ...
