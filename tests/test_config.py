"""Tests for settings and mode definitions."""

from fluency_trainer.config import Settings
from fluency_trainer.sessions.modes import ListenAdvance, PhraseCredit, build_modes


def test_defaults_match_yaml():
    settings = Settings()
    assert settings.fluency_target == 8
    assert settings.reaction_target == 6
    assert settings.reaction_response_seconds == 5.0
    assert settings.prompt_selection == "shuffled"


def test_init_overrides_win():
    settings = Settings(fluency_target=3)
    assert settings.fluency_target == 3


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("REACTION_TARGET", "4")
    assert Settings().reaction_target == 4


def test_progress_path(tmp_path):
    settings = Settings(data_dir=tmp_path)
    assert settings.progress_path == tmp_path / "progress" / "progress.json"
    assert (tmp_path / "progress").is_dir()


class TestBuildModes:
    def test_builtin_modes(self):
        modes = build_modes(Settings())
        assert set(modes) == {"fluency", "reaction", "antiblock", "focus"}

    def test_fluency_scores_against_prompt(self):
        fluency = build_modes(Settings())["fluency"]
        assert fluency.target == 8
        assert fluency.listen_advance is ListenAdvance.PLAYBACK
        assert fluency.capture and fluency.score_against_prompt

    def test_reaction_is_timed(self):
        reaction = build_modes(Settings())["reaction"]
        assert reaction.listen_advance is ListenAdvance.DELAY
        assert reaction.response_seconds == 5.0
        assert not reaction.score_against_prompt

    def test_focus_credits_minutes(self):
        focus = build_modes(Settings(focus_response_seconds=600))["focus"]
        assert focus.credit is PhraseCredit.MINUTES
        assert focus.response_seconds == 600
        assert focus.auto_finish

    def test_focus_offers_three_lengths(self):
        focus = build_modes(Settings())["focus"]
        assert focus.durations == [300.0, 600.0, 900.0]
        assert focus.with_response_seconds(900).response_seconds == 900
