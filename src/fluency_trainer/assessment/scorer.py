"""Combines similarity scoring and interference detection for one prompt."""

import structlog

from fluency_trainer.assessment import interference, similarity
from fluency_trainer.models.assessment import PromptAssessment

logger = structlog.get_logger()


def assess(transcript: str, target: str | None = None) -> PromptAssessment:
    """Assess a single spoken answer.

    Args:
        transcript: Recognised speech (empty when nothing was captured).
        target: Phrase to compare against, or None for open-ended prompts.

    Returns:
        PromptAssessment with similarity (if a target was given) and
        interference detection.
    """
    result = PromptAssessment(
        similarity=similarity.score(transcript, target) if target is not None else None,
        interference=interference.detect(transcript),
    )
    logger.debug(
        "prompt_assessed",
        similarity=result.similarity,
        interference=result.interference.detected,
    )
    return result
