"""Per-prompt assessment models."""

from enum import StrEnum

from pydantic import BaseModel, Field


class ConfidenceTier(StrEnum):
    """How sure the detector is that native-language words were spoken."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class InterferenceResult(BaseModel):
    """Outcome of scanning a transcript for native-language words."""

    detected: bool = False
    matched_terms: list[str] = Field(default_factory=list)
    confidence: ConfidenceTier | None = None
    feedback: str = ""
    tip: str = ""


class PromptAssessment(BaseModel):
    """Scores shown on the result screen for a single prompt."""

    similarity: int | None = None  # None when the mode has no target text
    interference: InterferenceResult = Field(default_factory=InterferenceResult)
