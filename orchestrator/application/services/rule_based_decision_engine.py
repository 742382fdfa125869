"""In-process rule engine turning a classification into a bin decision.

Rules, in order:
  1. Malformed classification      -> manual_review
  2. confidence < threshold        -> manual_review
  3. Target compartment from label (recyclable / organic / general)
  4. Single-compartment bin that does not match the target -> reject
  5. Otherwise                     -> accept
"""

import logging

from orchestrator.application.interfaces import DecisionEngine
from orchestrator.domain.entities import (
    BinCompartment,
    BinType,
    Classification,
    Decision,
    DecisionAction,
    ORGANIC_LABELS,
    RECYCLABLE_LABELS,
    REVIEW_THRESHOLD,
)
from orchestrator.domain.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

RULE_MALFORMED = "malformed_classification_manual_review"
RULE_LOW_CONFIDENCE = "low_confidence_manual_review"
RULE_COMPARTMENT_MISMATCH = "compartment_mismatch_reject"

_SINGLE_COMPARTMENT_BINS = {
    BinType.RECYCLABLE: BinCompartment.RECYCLABLE,
    BinType.ORGANIC: BinCompartment.ORGANIC,
    BinType.GENERAL: BinCompartment.GENERAL,
}


def compartment_for_label(label: str) -> BinCompartment:
    """Recyclability lookup over the label vocabulary; unknown labels go to general."""
    if label in RECYCLABLE_LABELS:
        return BinCompartment.RECYCLABLE
    if label in ORGANIC_LABELS:
        return BinCompartment.ORGANIC
    return BinCompartment.GENERAL


class RuleBasedDecisionEngine(DecisionEngine):
    """Decision step used by the orchestration service.

    Never raises on bad upstream data: a malformed classification yields a
    manual_review decision recording what was wrong with it.
    """

    def __init__(self, confidence_threshold: float = REVIEW_THRESHOLD, rule_version: str = "v1"):
        self._threshold = confidence_threshold
        self._rule_version = rule_version

    async def decide(self, classification: Classification, bin_type: BinType | None = None) -> Decision:
        try:
            classification.validate()
        except InvalidInputError as exc:
            logger.warning("Malformed classification routed to manual review: %s", exc)
            decision = self._new(
                DecisionAction.MANUAL_REVIEW,
                "Classification data was malformed; please review manually",
                rule=RULE_MALFORMED,
            )
            decision.add_reason(f"malformed classification: {exc}")
            return decision

        confidence = float(classification.confidence)
        if confidence < self._threshold:
            decision = self._new(
                DecisionAction.MANUAL_REVIEW,
                f"Low confidence ({confidence:.2f}) for '{classification.label}'; please review manually",
                rule=RULE_LOW_CONFIDENCE,
            )
            decision.add_reason(
                f"confidence {confidence:.4f} below threshold {self._threshold:.2f}"
            )
            for alternative in classification.top_alternatives(2):
                decision.add_reason(
                    f"alternative {alternative.label} ({alternative.confidence:.2f})"
                )
            return decision

        compartment = compartment_for_label(classification.label)
        bin_compartment = _SINGLE_COMPARTMENT_BINS.get(bin_type) if bin_type else None

        if bin_compartment is not None and bin_compartment is not compartment:
            decision = self._new(
                DecisionAction.REJECT,
                f"'{classification.label}' belongs in the {compartment.value} compartment; "
                f"this bin only takes {bin_compartment.value} items",
                rule=RULE_COMPARTMENT_MISMATCH,
                compartment=compartment,
                threshold_met=True,
            )
            decision.add_reason(f"label {classification.label} maps to {compartment.value}")
            decision.add_reason(f"bin type {bin_type.value} does not accept {compartment.value}")
            return decision

        decision = self._new(
            DecisionAction.ACCEPT,
            f"Place '{classification.label}' in the {compartment.value} compartment",
            rule=f"{compartment.value}_high_confidence",
            compartment=compartment,
            threshold_met=True,
        )
        decision.add_reason(f"label {classification.label} maps to {compartment.value}")
        decision.add_reason(
            f"confidence {confidence:.4f} meets threshold {self._threshold:.2f}"
        )
        return decision

    def _new(
        self,
        action: DecisionAction,
        message: str,
        *,
        rule: str,
        compartment: BinCompartment | None = None,
        threshold_met: bool = False,
    ) -> Decision:
        return Decision(
            action=action,
            message=message,
            bin_compartment=compartment,
            confidence_threshold_met=threshold_met,
            confidence_threshold=self._threshold,
            rule_applied=rule,
            rule_version=self._rule_version,
        )
