"""Durable user progress: streak, experience, level and per-day history."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, computed_field, field_validator

XP_PER_LEVEL = 500


def level_for_xp(xp: int) -> int:
    """Levels start at 1 and go up every XP_PER_LEVEL points."""
    return max(xp, 0) // XP_PER_LEVEL + 1


class DayRecord(BaseModel):
    """Activity totals for one calendar day."""

    date: date
    phrases_completed: NonNegativeInt = 0
    seconds_talking: NonNegativeInt = 0
    modes_used: list[str] = Field(default_factory=list)

    @field_validator("modes_used")
    @classmethod
    def _dedupe_modes(cls, modes: list[str]) -> list[str]:
        return list(dict.fromkeys(modes))

    def add_mode(self, mode: str) -> None:
        if mode not in self.modes_used:
            self.modes_used.append(mode)


class UserProgress(BaseModel):
    """Lifetime progress of the local user.

    ``level`` is derived from ``xp`` on every access; a stored level in
    persisted data is ignored.
    """

    model_config = ConfigDict(extra="ignore")

    streak: NonNegativeInt = 0
    last_active_date: date | None = None
    total_phrases: NonNegativeInt = 0
    total_seconds: NonNegativeInt = 0
    xp: NonNegativeInt = 0
    history: list[DayRecord] = Field(default_factory=list)

    @field_validator("history")
    @classmethod
    def _merge_same_day(cls, history: list[DayRecord]) -> list[DayRecord]:
        """Fold entries sharing a date into one, keeping first-seen order."""
        merged: dict[date, DayRecord] = {}
        for record in history:
            existing = merged.get(record.date)
            if existing is None:
                merged[record.date] = record
                continue
            merged[record.date] = existing.model_copy(
                update={
                    "phrases_completed": existing.phrases_completed + record.phrases_completed,
                    "seconds_talking": existing.seconds_talking + record.seconds_talking,
                    "modes_used": list(dict.fromkeys(existing.modes_used + record.modes_used)),
                }
            )
        return list(merged.values())

    @computed_field
    @property
    def level(self) -> int:
        return level_for_xp(self.xp)

    def record_for(self, day: date) -> DayRecord | None:
        """Return the history entry for ``day``, if any."""
        for record in self.history:
            if record.date == day:
                return record
        return None
