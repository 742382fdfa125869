"""Domain value for the outcome of applying business rules to a classification."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from orchestrator.domain.exceptions import InvalidInputError


class DecisionAction(str, Enum):
    """What the bin should do with the item."""

    ACCEPT = "accept"
    REJECT = "reject"
    MANUAL_REVIEW = "manual_review"


class BinCompartment(str, Enum):
    """Compartment the item belongs in."""

    RECYCLABLE = "recyclable"
    ORGANIC = "organic"
    GENERAL = "general"


@dataclass
class Decision:
    """Accept / reject / manual-review outcome embedded in a Job.

    ``reasons`` is an audit trail: entries are only ever appended.
    """

    action: DecisionAction
    message: str
    bin_compartment: BinCompartment | None = None
    confidence_threshold_met: bool = False
    confidence_threshold: float = 0.0
    rule_applied: str = ""
    rule_version: str = ""
    reasons: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    decided_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def add_reason(self, reason: str) -> None:
        if reason:
            self.reasons.append(reason)

    @property
    def requires_manual_review(self) -> bool:
        return self.action is DecisionAction.MANUAL_REVIEW

    def validate(self) -> None:
        if not isinstance(self.action, DecisionAction):
            raise InvalidInputError("decision action is required", field="action")
        if not self.message:
            raise InvalidInputError("decision message is required", field="message")
        if self.action is DecisionAction.ACCEPT and self.bin_compartment is None:
            raise InvalidInputError(
                "an accepting decision must name a bin compartment",
                field="bin_compartment",
            )
