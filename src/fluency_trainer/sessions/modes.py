"""Exercise mode definitions."""

from enum import StrEnum

from pydantic import BaseModel, Field, PositiveInt

from fluency_trainer.config import Settings


class ListenAdvance(StrEnum):
    """What moves a session out of the listen stage."""

    PLAYBACK = "playback"  # speech output finished, then settle delay
    DELAY = "delay"  # fixed delay from when playback starts


class PhraseCredit(StrEnum):
    """How many phrases a finished session is worth."""

    PROMPTS = "prompts"  # one per completed prompt
    MINUTES = "minutes"  # one per minute spoken, rounded


class ModeConfig(BaseModel):
    """Shape of one exercise mode's session."""

    name: str
    bank: str
    target: PositiveInt
    listen_advance: ListenAdvance = ListenAdvance.PLAYBACK
    listen_seconds: float = 0.0
    memorize_seconds: float | None = None
    response_seconds: float | None = None
    capture: bool = True
    score_against_prompt: bool = True
    auto_finish: bool = False
    credit: PhraseCredit = PhraseCredit.PROMPTS
    durations: list[float] = Field(default_factory=list)

    def with_response_seconds(self, seconds: float) -> "ModeConfig":
        """Copy of this mode with one of its offered session lengths."""
        if seconds not in self.durations:
            raise ValueError(
                f"Mode {self.name!r} does not offer a {seconds:g}s session"
            )
        return self.model_copy(update={"response_seconds": seconds})


def build_modes(settings: Settings) -> dict[str, ModeConfig]:
    """Built-in modes, with targets and timings taken from settings."""
    modes = [
        ModeConfig(
            name="fluency",
            bank="fluency",
            target=settings.fluency_target,
            listen_seconds=settings.fluency_settle_seconds,
        ),
        ModeConfig(
            name="reaction",
            bank="reaction",
            target=settings.reaction_target,
            listen_advance=ListenAdvance.DELAY,
            listen_seconds=settings.reaction_question_seconds,
            response_seconds=settings.reaction_response_seconds,
            score_against_prompt=False,
        ),
        ModeConfig(
            name="antiblock",
            bank="topics",
            target=1,
            listen_seconds=settings.speak60_settle_seconds,
            response_seconds=settings.speak60_response_seconds,
            capture=False,
            score_against_prompt=False,
            auto_finish=True,
        ),
        ModeConfig(
            name="focus",
            bank="topics",
            target=1,
            listen_advance=ListenAdvance.DELAY,
            response_seconds=settings.focus_response_seconds,
            capture=False,
            score_against_prompt=False,
            auto_finish=True,
            credit=PhraseCredit.MINUTES,
            durations=settings.focus_durations,
        ),
    ]
    return {mode.name: mode for mode in modes}
