"""Text canonicalization for evidence comparison.

Both the model's cited snippet and the transcript pass through the same
normalization before containment is checked. The transformation tolerates
the formatting noise models introduce when copying text (width variants,
spacing, punctuation style) while still rejecting paraphrase.
"""

import re
import unicodedata

# Zero-width space/joiners, word joiner and BOM
ZERO_WIDTH_PATTERN = re.compile(r"[\u200b-\u200d\u2060\ufeff]")

# Applied after NFKC, so fullwidth/halfwidth variants are already folded
CANONICAL_COMMA = "、"
CANONICAL_PERIOD = "。"
CANONICAL_OPEN_QUOTE = "「"
CANONICAL_CLOSE_QUOTE = "」"

_PUNCTUATION_MAP = str.maketrans({
    ",": CANONICAL_COMMA,
    "、": CANONICAL_COMMA,
    ".": CANONICAL_PERIOD,
    "。": CANONICAL_PERIOD,
    "「": CANONICAL_OPEN_QUOTE,
    "『": CANONICAL_OPEN_QUOTE,
    "“": CANONICAL_OPEN_QUOTE,
    "‘": CANONICAL_OPEN_QUOTE,
    "」": CANONICAL_CLOSE_QUOTE,
    "』": CANONICAL_CLOSE_QUOTE,
    "”": CANONICAL_CLOSE_QUOTE,
    "’": CANONICAL_CLOSE_QUOTE,
})

WHITESPACE_PATTERN = re.compile(r"\s+")
SPACE_AROUND_PUNCT_PATTERN = re.compile(r" ?([、。]) ?")
REPEATED_PUNCT_PATTERN = re.compile(r"([、。])\1+")


def normalize_text(text: str | None) -> str:
    """Canonicalize a string for comparison.

    Steps, in order:
    1. Strip zero-width characters
    2. Unicode NFKC (fullwidth/halfwidth and compatibility forms)
    3. Unify comma, period and quote variants
    4. Collapse whitespace runs to a single ASCII space
    5. Drop spaces around sentence punctuation and fold repeats
    6. Trim

    Zero-width characters are removed before NFKC so that removing them
    cannot expose a new composable sequence; this keeps the function
    idempotent.

    Args:
        text: Raw text. None is treated as empty.

    Returns:
        Normalized text (empty string for empty input).
    """
    if not text:
        return ""

    s = ZERO_WIDTH_PATTERN.sub("", text)
    s = unicodedata.normalize("NFKC", s)
    s = s.translate(_PUNCTUATION_MAP)
    s = WHITESPACE_PATTERN.sub(" ", s)
    s = SPACE_AROUND_PUNCT_PATTERN.sub(r"\1", s)
    s = REPEATED_PUNCT_PATTERN.sub(r"\1", s)
    return s.strip()


def normalized_length(text: str | None) -> int:
    """Length of the text after normalization."""
    return len(normalize_text(text))
