"""Tests for the progress ledger."""

from datetime import date, timedelta

import pytest

from fluency_trainer.models.progress import DayRecord, UserProgress
from fluency_trainer.progress import ledger
from fluency_trainer.progress.ledger import level_title, record_session, today_record, update_streak

D = date(2026, 3, 10)


class TestUpdateStreak:
    def test_first_session_starts_at_one(self):
        progress = update_streak(UserProgress(), D)
        assert progress.streak == 1
        assert progress.last_active_date == D

    def test_same_day_unchanged(self):
        progress = UserProgress(streak=4, last_active_date=D)
        assert update_streak(progress, D) is progress

    def test_next_day_continues(self):
        progress = UserProgress(streak=4, last_active_date=D - timedelta(days=1))
        assert update_streak(progress, D).streak == 5

    def test_gap_resets_to_one(self):
        progress = UserProgress(streak=9, last_active_date=D - timedelta(days=5))
        updated = update_streak(progress, D)
        assert updated.streak == 1
        assert updated.last_active_date == D


class TestRecordSession:
    def test_end_to_end_first_session(self):
        progress = record_session(UserProgress(), 10, 180, "fluency", today=D)
        assert progress.streak == 1
        assert progress.last_active_date == D
        assert progress.total_phrases == 10
        assert progress.total_seconds == 180
        assert progress.xp == 280
        assert progress.level == 1
        assert progress.history == [
            DayRecord(date=D, phrases_completed=10, seconds_talking=180, modes_used=["fluency"])
        ]

    def test_xp_and_level(self):
        progress = record_session(UserProgress(), 5, 120, "x", today=D)
        assert progress.xp == 170
        assert progress.level == 1

    def test_level_two_at_exactly_500(self):
        progress = UserProgress()
        for _ in range(2):
            progress = record_session(progress, 10, 150, "fluency", today=D)
        assert progress.xp == 500
        assert progress.level == 2

    def test_three_consecutive_days(self):
        progress = UserProgress()
        for offset in range(3):
            progress = record_session(progress, 1, 10, "fluency", today=D + timedelta(days=offset))
        assert progress.streak == 3
        assert len(progress.history) == 3

    def test_two_day_gap_resets_to_one(self):
        progress = record_session(UserProgress(), 1, 10, "fluency", today=D)
        progress = record_session(progress, 1, 10, "fluency", today=D + timedelta(days=1))
        progress = record_session(progress, 1, 10, "fluency", today=D + timedelta(days=3))
        assert progress.streak == 1

    def test_same_day_twice_keeps_streak(self):
        progress = record_session(UserProgress(), 1, 10, "fluency", today=D)
        progress = record_session(progress, 1, 10, "fluency", today=D)
        assert progress.streak == 1

    def test_same_day_same_mode_aggregates(self):
        progress = record_session(UserProgress(), 8, 100, "fluency", today=D)
        progress = record_session(progress, 6, 50, "fluency", today=D)
        assert len(progress.history) == 1
        record = progress.history[0]
        assert record.phrases_completed == 14
        assert record.seconds_talking == 150
        assert record.modes_used == ["fluency"]

    def test_same_day_different_modes(self):
        progress = record_session(UserProgress(), 8, 100, "fluency", today=D)
        progress = record_session(progress, 6, 50, "reaction", today=D)
        assert len(progress.history) == 1
        assert set(progress.history[0].modes_used) == {"fluency", "reaction"}

    def test_not_idempotent(self):
        progress = record_session(UserProgress(), 2, 20, "fluency", today=D)
        progress = record_session(progress, 2, 20, "fluency", today=D)
        assert progress.total_phrases == 4
        assert progress.xp == 80

    def test_input_not_mutated(self):
        original = record_session(UserProgress(), 1, 10, "fluency", today=D)
        snapshot = original.model_dump()
        record_session(original, 3, 30, "reaction", today=D)
        assert original.model_dump() == snapshot

    def test_negative_values_clamped(self):
        progress = record_session(UserProgress(), -3, -10, "fluency", today=D)
        assert progress.total_phrases == 0
        assert progress.total_seconds == 0
        assert progress.xp == 0
        assert progress.streak == 1

    def test_defaults_to_current_date(self, monkeypatch):
        monkeypatch.setattr(ledger, "current_date", lambda: D)
        progress = record_session(UserProgress(), 1, 1, "fluency")
        assert progress.last_active_date == D
        assert today_record(progress).date == D


class TestHelpers:
    def test_today_record_missing(self):
        assert today_record(UserProgress(), D) is None

    @pytest.mark.parametrize(
        ("level", "title"),
        [(1, "Beginner"), (2, "Explorer"), (5, "Fluent"), (10, "Legend"), (42, "Legend"), (0, "Beginner")],
    )
    def test_level_title(self, level, title):
        assert level_title(level) == title

    def test_current_date_is_today(self):
        assert ledger.current_date() == date.today()


class TestUserProgressModel:
    def test_defaults(self):
        progress = UserProgress()
        assert progress.streak == 0
        assert progress.last_active_date is None
        assert progress.xp == 0
        assert progress.level == 1
        assert progress.history == []

    def test_stored_level_is_ignored(self):
        progress = UserProgress.model_validate({"xp": 1200, "level": 99})
        assert progress.level == 3

    def test_level_in_dump(self):
        assert UserProgress(xp=500).model_dump()["level"] == 2

    def test_modes_deduplicated_on_load(self):
        record = DayRecord(date=D, modes_used=["fluency", "fluency", "focus"])
        assert record.modes_used == ["fluency", "focus"]

    def test_duplicate_days_merged(self):
        day = DayRecord(date=D, phrases_completed=2, seconds_talking=10, modes_used=["fluency"])
        progress = UserProgress(history=[day, DayRecord(date=D, phrases_completed=3, modes_used=["focus"])])
        assert len(progress.history) == 1
        assert progress.history[0].phrases_completed == 5
        assert progress.history[0].modes_used == ["fluency", "focus"]
        assert day.phrases_completed == 2
