"""Exercise session data models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from fluency_trainer.models.assessment import PromptAssessment
from fluency_trainer.models.prompt import Prompt


class SessionStage(StrEnum):
    """Exercise session lifecycle states."""

    READY = "ready"
    LISTEN = "listen"
    MEMORIZE = "memorize"
    SPEAK = "speak"
    RESULT = "result"
    DONE = "done"
    ABANDONED = "abandoned"


class CaptureStatus(StrEnum):
    """Statuses reported by a speech-capture handle."""

    LISTENING = "listening"
    IDLE = "idle"
    UNSUPPORTED = "unsupported"
    ERROR = "error"
    NO_SPEECH = "no_speech"

    @property
    def is_terminal(self) -> bool:
        return self in (CaptureStatus.UNSUPPORTED, CaptureStatus.ERROR, CaptureStatus.NO_SPEECH)


class PromptOutcome(BaseModel):
    """What happened for one prompt of a session."""

    prompt: Prompt
    transcript: str = ""
    confidence: float | None = None
    capture_status: CaptureStatus | None = None
    assessment: PromptAssessment | None = None
    # True when the user answered (speech or a manual finish) before any
    # response window ran out
    responded: bool = False
    timed_out: bool = False
    starter: str | None = None


class Session(BaseModel):
    """One run of an exercise mode."""

    session_id: str
    mode: str
    target: int
    stage: SessionStage = SessionStage.READY
    started_at: datetime = Field(default_factory=datetime.now)
    completed: int = 0
    outcomes: list[PromptOutcome] = Field(default_factory=list)

    @property
    def current(self) -> PromptOutcome | None:
        """The outcome for the prompt currently on screen."""
        if not self.outcomes:
            return None
        return self.outcomes[-1]

    @property
    def current_index(self) -> int:
        return max(len(self.outcomes) - 1, 0)

    @property
    def clean_responses(self) -> int:
        """Prompts answered without running out of time."""
        return sum(1 for outcome in self.outcomes if outcome.responded)
