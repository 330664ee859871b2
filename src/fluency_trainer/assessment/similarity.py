"""Word-overlap similarity between a spoken transcript and a target phrase."""

import math
import re

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def normalize(text: str) -> str:
    """Lower-case, drop punctuation and trim."""
    return _NON_ALNUM.sub("", text.lower()).strip()


def score(transcript: str, target: str) -> int:
    """Score how closely a transcript matches the target phrase.

    Target words found in the transcript are counted and divided by the
    larger of the transcript vocabulary size and the target word count, so
    both missing words and extra words lower the score.

    Known quirk: the transcript side is a set, so a word repeated many
    times only counts once against the denominator.

    Args:
        transcript: What the speech recogniser heard.
        target: The phrase the user was asked to say.

    Returns:
        Integer score from 0 to 100.
    """
    spoken = normalize(transcript)
    expected = normalize(target)
    if spoken == expected:
        return 100

    spoken_words = set(spoken.split())
    expected_words = expected.split()
    denominator = max(len(spoken_words), len(expected_words))
    if denominator == 0:
        return 0

    matches = sum(1 for word in expected_words if word in spoken_words)
    # Half-up rounding, so 12.5 scores 13
    return math.floor(100 * matches / denominator + 0.5)
