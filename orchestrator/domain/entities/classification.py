"""Domain value for the result of classifying one captured image."""

import math
from dataclasses import dataclass, field
from enum import Enum

from orchestrator.domain.exceptions import InvalidInputError

REVIEW_THRESHOLD = 0.7
HIGH_CONFIDENCE_THRESHOLD = 0.8


class WasteLabel(str, Enum):
    """Label vocabulary produced by the classification service."""

    PLASTIC_BOTTLE = "plastic_bottle"
    PLASTIC_CONTAINER = "plastic_container"
    GLASS_BOTTLE = "glass_bottle"
    ALUMINUM_CAN = "aluminum_can"
    PAPER = "paper"
    CARDBOARD = "cardboard"
    ORGANIC_WASTE = "organic_waste"
    GENERAL_WASTE = "general_waste"


RECYCLABLE_LABELS = frozenset({
    WasteLabel.PLASTIC_BOTTLE.value,
    WasteLabel.PLASTIC_CONTAINER.value,
    WasteLabel.GLASS_BOTTLE.value,
    WasteLabel.ALUMINUM_CAN.value,
    WasteLabel.PAPER.value,
    WasteLabel.CARDBOARD.value,
})

ORGANIC_LABELS = frozenset({WasteLabel.ORGANIC_WASTE.value})


def _is_valid_confidence(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and 0.0 <= value <= 1.0


@dataclass(frozen=True)
class Alternative:
    """A lower-ranked label the classifier also considered."""

    label: str
    confidence: float


@dataclass
class Classification:
    """Label, confidence and provenance of one classification run.

    Instances may be built from untrusted callback payloads, so construction
    never validates; call :meth:`validate` before trusting the values.
    """

    label: str
    confidence: float
    model_version: str = ""
    alternatives: list[Alternative] = field(default_factory=list)
    processing_time_ms: int | None = None

    def validate(self) -> None:
        """Raise InvalidInputError describing the first problem found."""
        if not isinstance(self.label, str) or not self.label.strip():
            raise InvalidInputError("label must be a non-empty string", field="label")
        if not _is_valid_confidence(self.confidence):
            raise InvalidInputError(
                f"confidence must be a number between 0 and 1, got {self.confidence!r}",
                field="confidence",
            )
        if not isinstance(self.model_version, str):
            raise InvalidInputError("model_version must be a string", field="model_version")
        if not isinstance(self.alternatives, (list, tuple)):
            raise InvalidInputError("alternatives must be a list", field="alternatives")
        for index, alternative in enumerate(self.alternatives):
            if (
                not isinstance(alternative, Alternative)
                or not isinstance(alternative.label, str)
                or not alternative.label.strip()
                or not _is_valid_confidence(alternative.confidence)
            ):
                raise InvalidInputError(
                    f"alternative #{index} must have a label and a confidence between 0 and 1",
                    field="alternatives",
                )
        if self.processing_time_ms is not None and (
            isinstance(self.processing_time_ms, bool)
            or not isinstance(self.processing_time_ms, int)
            or self.processing_time_ms < 0
        ):
            raise InvalidInputError(
                "processing_time_ms must be a non-negative integer", field="processing_time_ms"
            )

    @property
    def is_recyclable(self) -> bool:
        return self.label in RECYCLABLE_LABELS

    @property
    def is_organic(self) -> bool:
        return self.label in ORGANIC_LABELS

    @property
    def is_high_confidence(self) -> bool:
        return self.confidence >= HIGH_CONFIDENCE_THRESHOLD

    def should_review(self, threshold: float = REVIEW_THRESHOLD) -> bool:
        return self.confidence < threshold

    def top_alternatives(self, n: int = 3) -> list[Alternative]:
        """Return the *n* most confident alternatives, best first."""
        ranked = sorted(self.alternatives, key=lambda alt: alt.confidence, reverse=True)
        return ranked[: max(n, 0)]
