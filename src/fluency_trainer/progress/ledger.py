"""Progress ledger: streaks, daily history, experience and levels."""

from datetime import date, timedelta

import structlog

from fluency_trainer.models.progress import DayRecord, UserProgress

logger = structlog.get_logger()

XP_PER_PHRASE = 10
XP_PER_SECOND = 1

LEVEL_TITLES = [
    "", "Beginner", "Explorer", "Connector", "Communicator",
    "Fluent", "Confident", "Advanced", "Expert", "Master", "Legend",
]


def current_date() -> date:
    """Today's date in the local timezone, used as the history key."""
    return date.today()


def level_title(level: int) -> str:
    """Display title for a level; everything past the table is Legend."""
    if level < 1:
        return LEVEL_TITLES[1]
    return LEVEL_TITLES[min(level, len(LEVEL_TITLES) - 1)]


def update_streak(progress: UserProgress, today: date | None = None) -> UserProgress:
    """Credit ``today`` to the streak.

    Same day: unchanged. Day after the last active day: +1. Any other gap,
    including the first session ever: restart at 1.
    """
    today = today or current_date()
    if progress.last_active_date == today:
        return progress

    if progress.last_active_date == today - timedelta(days=1):
        streak = progress.streak + 1
    else:
        streak = 1
    return progress.model_copy(update={"streak": streak, "last_active_date": today})


def _clamp(name: str, value: int) -> int:
    if value < 0:
        logger.warning("negative_session_value_clamped", field=name, value=value)
        return 0
    return value


def record_session(
    progress: UserProgress,
    phrases_completed: int,
    seconds_elapsed: int,
    mode: str,
    today: date | None = None,
) -> UserProgress:
    """Apply one completed session to the user's progress.

    Every call adds its increments; callers must record a session exactly
    once. The input object is left untouched.

    Args:
        progress: Current progress.
        phrases_completed: Phrases credited for the session.
        seconds_elapsed: Wall-clock seconds spent in the session.
        mode: Identifier of the exercise mode.
        today: Day to credit (defaults to the local current date).

    Returns:
        Updated progress.
    """
    today = today or current_date()
    phrases = _clamp("phrases_completed", phrases_completed)
    seconds = _clamp("seconds_elapsed", seconds_elapsed)

    updated = update_streak(progress.model_copy(deep=True), today)

    record = updated.record_for(today)
    if record is not None:
        record.phrases_completed += phrases
        record.seconds_talking += seconds
        record.add_mode(mode)
    else:
        updated.history.append(
            DayRecord(
                date=today,
                phrases_completed=phrases,
                seconds_talking=seconds,
                modes_used=[mode],
            )
        )

    updated.total_phrases += phrases
    updated.total_seconds += seconds
    updated.xp += phrases * XP_PER_PHRASE + seconds * XP_PER_SECOND

    logger.info(
        "session_recorded",
        mode=mode,
        phrases=phrases,
        seconds=seconds,
        streak=updated.streak,
        xp=updated.xp,
        level=updated.level,
    )
    return updated


def today_record(progress: UserProgress, today: date | None = None) -> DayRecord | None:
    """Today's history entry, or None if nothing was recorded today."""
    return progress.record_for(today or current_date())
