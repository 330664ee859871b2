"""Tests for Spanish interference detection."""

from fluency_trainer.assessment.interference import (
    AMBIGUOUS_WORDS,
    GENERIC_TIP,
    SPANISH_WORDS,
    build_feedback,
    build_tip,
    detect,
    tokenize,
)
from fluency_trainer.models.assessment import ConfidenceTier


class TestTokenize:
    def test_keeps_spanish_letters(self):
        assert tokenize("¿Qué pasó, Señor?") == ["qué", "pasó", "señor"]

    def test_drops_digits_and_empty_tokens(self):
        assert tokenize("  I have 3   cats ") == ["i", "have", "cats"]


class TestDetectNotDetected:
    def test_empty_transcript(self):
        result = detect("")
        assert result.detected is False
        assert result.matched_terms == []
        assert result.confidence is None
        assert result.feedback == ""
        assert result.tip == ""

    def test_plain_english(self):
        result = detect("I totally agree with you")
        assert result.detected is False

    def test_cognates_never_trigger(self):
        result = detect("social animal general natural hotel hospital " * 5)
        assert result.detected is False
        assert result.matched_terms == []

    def test_words_in_both_sets_never_trigger(self):
        assert detect("no no no si si el en de se un al me").detected is False

    def test_single_word_in_long_sentence(self):
        # 1 of 8 tokens is below the low threshold
        result = detect("I really think that pero this is fine")
        assert result.detected is False
        assert result.confidence is None


class TestDetectTiers:
    def test_three_of_five_is_high(self):
        result = detect("yo tengo un perro grande")
        assert result.detected is True
        assert result.confidence is ConfidenceTier.HIGH
        assert result.matched_terms == ["yo", "tengo", "grande"]

    def test_high_ratio_with_one_word(self):
        result = detect("pero okay")
        assert result.confidence is ConfidenceTier.HIGH

    def test_two_words_is_medium(self):
        result = detect("I want to go to the beach pero it is muy far")
        assert result.detected is True
        assert result.confidence is ConfidenceTier.MEDIUM
        assert result.matched_terms == ["pero", "muy"]
        assert result.feedback == 'You mixed languages: "pero", "muy"'

    def test_one_word_is_low(self):
        result = detect("I think pero that is fine")
        assert result.detected is True
        assert result.confidence is ConfidenceTier.LOW
        assert result.feedback == 'Spanish word detected: "pero"'
        assert result.tip == 'Say "but" instead of "pero".'

    def test_matched_terms_keep_transcript_order(self):
        result = detect("entonces I said pero también")
        assert result.matched_terms == ["entonces", "pero", "también"]

    def test_high_feedback_quotes_first_three(self):
        result = detect("yo quiero hablar con ella")
        assert len(result.matched_terms) == 5
        assert result.feedback == 'Spanish detected: "yo", "quiero", "hablar"'

    def test_accents_and_punctuation(self):
        result = detect("¿Qué? ¡También!")
        assert result.matched_terms == ["qué", "también"]
        assert result.confidence is ConfidenceTier.HIGH

    def test_deterministic(self):
        text = "bueno I think que the trabajo is hard"
        assert detect(text) == detect(text)


class TestTips:
    def test_first_term_with_suggestion(self):
        assert build_tip(["qué", "también"]) == 'Say "also" instead of "también".'

    def test_generic_tip(self):
        assert build_tip(["ella", "nosotros", "ellos"]) == GENERIC_TIP

    def test_detect_generic_tip(self):
        result = detect("ella nosotros ellos")
        assert result.tip == GENERIC_TIP

    def test_feedback_templates_differ_per_tier(self):
        terms = ["pero"]
        messages = {build_feedback(terms, tier) for tier in ConfidenceTier}
        assert len(messages) == 3


class TestLexicon:
    def test_ambiguous_words_are_excluded_from_matching(self):
        overlap = SPANISH_WORDS & AMBIGUOUS_WORDS
        assert overlap
        for word in overlap:
            assert detect(f"{word} {word} {word}").detected is False
