"""Detects Spanish words mixed into spoken English (spanglish)."""

import re

import structlog

from fluency_trainer.models.assessment import ConfidenceTier, InterferenceResult

logger = structlog.get_logger()

# Most common Spanish words that show up when learners code-switch
SPANISH_WORDS: frozenset[str] = frozenset({
    # Pronouns
    "yo", "tú", "tu", "él", "ella", "nosotros", "ellos", "ellas", "usted", "ustedes",
    "mi", "mis", "mí", "me", "te", "se", "nos", "les",
    # Common verbs
    "es", "soy", "eres", "somos", "son", "estar", "estoy", "estás", "estamos", "están",
    "tengo", "tienes", "tiene", "tenemos", "tienen", "tener",
    "quiero", "quieres", "quiere", "queremos", "quieren",
    "puedo", "puedes", "puede", "podemos", "pueden",
    "voy", "vas", "va", "vamos", "van", "ir",
    "hacer", "hago", "haces", "hace", "hacemos", "hacen",
    "saber", "sé", "sabes", "sabe", "sabemos", "saben",
    "decir", "digo", "dices", "dice", "decimos", "dicen",
    "ver", "veo", "ves", "vemos", "ven",
    "creo", "crees", "cree", "creemos", "creen", "creer",
    "pienso", "piensas", "piensa", "pensamos", "piensan", "pensar",
    "hablar", "hablo", "hablas", "habla", "hablamos", "hablan",
    "necesito", "necesitas", "necesita", "necesitamos", "necesitan",
    "gracias", "favor",
    # Articles and connectors
    "el", "la", "los", "las", "un", "una", "unos", "unas",
    "de", "del", "al", "en", "con", "sin", "para", "por", "sobre",
    "que", "qué", "porque", "pero", "sino", "aunque", "cuando",
    "como", "cómo", "donde", "dónde", "quien", "quién",
    "si", "sí", "no", "ya", "también", "tampoco", "muy", "más",
    "este", "esta", "estos", "estas", "ese", "esa", "esos", "esas",
    "todo", "todos", "toda", "todas", "algo", "nada", "alguien", "nadie",
    # Adjectives
    "bueno", "buena", "malo", "mala", "grande", "pequeño", "pequeña",
    "mucho", "mucha", "muchos", "muchas", "poco", "poca", "pocos", "pocas",
    "nuevo", "nueva", "viejo", "vieja",
    # Frequent nouns
    "día", "tiempo", "vez", "cosa", "parte", "lugar", "manera",
    "persona", "año", "vida", "mundo", "caso", "ejemplo",
    "trabajo", "casa", "gente",
    # Discourse markers
    "igual", "entonces", "pues", "claro", "obvio",
})

# Valid spellings in both languages; never counted
AMBIGUOUS_WORDS: frozenset[str] = frozenset({
    "a", "me", "no", "si", "el", "en", "de", "se", "un", "al",
    "social", "animal", "general", "natural", "normal", "personal",
    "total", "final", "local", "real", "formal", "digital",
    "hotel", "hospital", "capital", "central", "cultural",
})

# Spanish word -> what to say in English
SUGGESTIONS: dict[str, str] = {
    "yo": '"I"',
    "tú": '"you"',
    "es": '"it is" or "is"',
    "soy": '"I am"',
    "tengo": '"I have"',
    "quiero": '"I want"',
    "puedo": '"I can"',
    "voy": '"I\'m going"',
    "creo": '"I think"',
    "pienso": '"I think"',
    "porque": '"because"',
    "pero": '"but"',
    "cuando": '"when"',
    "que": '"that"',
    "como": '"like" or "how"',
    "también": '"also"',
    "muy": '"very"',
    "más": '"more"',
    "todo": '"everything" or "all"',
    "algo": '"something"',
    "pues": '"well..."',
    "bueno": '"okay" or "well"',
    "igual": '"same" or "still"',
    "entonces": '"so" or "then"',
    "claro": '"of course" or "sure"',
    "necesito": '"I need"',
    "hablar": '"to speak" or "talking"',
    "trabajo": '"work" or "job"',
    "tiempo": '"time" or "weather"',
}

GENERIC_TIP = "Try to think of the English word first, then speak."

_NON_SPANISH_ALPHABET = re.compile(r"[^a-záéíóúüñ\s]")


def tokenize(transcript: str) -> list[str]:
    """Lower-case and split a transcript, keeping Spanish letters."""
    return _NON_SPANISH_ALPHABET.sub("", transcript.lower()).split()


def _classify(matched: int, ratio: float) -> ConfidenceTier | None:
    if matched >= 3 or ratio >= 0.4:
        return ConfidenceTier.HIGH
    if matched == 2 or ratio >= 0.25:
        return ConfidenceTier.MEDIUM
    if matched == 1 and ratio >= 0.15:
        return ConfidenceTier.LOW
    return None


def _quote(terms: list[str]) -> str:
    return ", ".join(f'"{term}"' for term in terms)


def build_feedback(terms: list[str], confidence: ConfidenceTier) -> str:
    """Render the result-screen message for a detection."""
    if confidence is ConfidenceTier.HIGH:
        return f"Spanish detected: {_quote(terms[:3])}"
    if confidence is ConfidenceTier.MEDIUM:
        return f"You mixed languages: {_quote(terms)}"
    return f"Spanish word detected: {_quote(terms[:1])}"


def build_tip(terms: list[str]) -> str:
    """Coaching tip for the first matched term that has an English suggestion."""
    for term in terms:
        suggestion = SUGGESTIONS.get(term)
        if suggestion:
            return f'Say {suggestion} instead of "{term}".'
    return GENERIC_TIP


def detect(transcript: str) -> InterferenceResult:
    """Scan a transcript for Spanish words.

    Args:
        transcript: Raw recogniser output, possibly empty.

    Returns:
        InterferenceResult; when nothing is detected every derived field
        is empty.
    """
    if not transcript:
        return InterferenceResult()

    words = tokenize(transcript)
    found = [w for w in words if w in SPANISH_WORDS and w not in AMBIGUOUS_WORDS]
    ratio = len(found) / max(len(words), 1)

    confidence = _classify(len(found), ratio)
    if confidence is None:
        return InterferenceResult()

    logger.debug(
        "interference_detected",
        confidence=confidence.value,
        matched=len(found),
        ratio=round(ratio, 2),
    )
    return InterferenceResult(
        detected=True,
        matched_terms=found,
        confidence=confidence,
        feedback=build_feedback(found, confidence),
        tip=build_tip(found),
    )
