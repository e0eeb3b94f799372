"""Evidence validation against the source transcript.

A snippet counts as evidence only if, after normalization, it is a substring
of the normalized transcript and its length falls within the configured
bounds. Matching is containment, not fuzzy similarity: paraphrase is
rejected, formatting noise is tolerated.
"""

from collections.abc import Sequence
from enum import Enum
from typing import Any

from evidence_gate.config import EvidenceThresholds
from evidence_gate.models import EvidenceQuality

from .text_normalizer import normalize_text


class EvidenceVerdict(str, Enum):
    """Why a snippet was accepted or rejected."""
    valid = "valid"
    empty = "empty"
    too_short = "too_short"
    too_long = "too_long"
    not_found = "not_found"


def _resolve(thresholds: EvidenceThresholds | None) -> EvidenceThresholds:
    return thresholds if thresholds is not None else EvidenceThresholds.from_env()


def classify_normalized(
    normalized_snippet: str,
    normalized_transcript: str,
    thresholds: EvidenceThresholds,
) -> EvidenceVerdict:
    """Classify an already-normalized snippet.

    Callers checking many snippets against one transcript normalize the
    transcript once and use this directly.
    """
    if not normalized_snippet:
        return EvidenceVerdict.empty
    if len(normalized_snippet) < thresholds.min_length:
        return EvidenceVerdict.too_short
    if len(normalized_snippet) > thresholds.max_length:
        return EvidenceVerdict.too_long
    if normalized_snippet not in normalized_transcript:
        return EvidenceVerdict.not_found
    return EvidenceVerdict.valid


def classify_evidence(
    snippet: Any,
    transcript: str,
    thresholds: EvidenceThresholds | None = None,
) -> EvidenceVerdict:
    """Classify a single snippet against the transcript.

    Non-string snippets are treated as empty.
    """
    if not isinstance(snippet, str):
        return EvidenceVerdict.empty
    return classify_normalized(
        normalize_text(snippet),
        normalize_text(transcript),
        _resolve(thresholds),
    )


def is_valid_evidence(
    snippet: Any,
    transcript: str,
    thresholds: EvidenceThresholds | None = None,
) -> bool:
    """Check that a snippet is a verifiable quotation from the transcript.

    Args:
        snippet: The cited text.
        transcript: Source transcript.
        thresholds: Length bounds. Defaults to environment configuration.

    Returns:
        True if the normalized snippet is within bounds and contained in
        the normalized transcript.
    """
    return classify_evidence(snippet, transcript, thresholds) == EvidenceVerdict.valid


def filter_valid_evidence(
    snippets: Any,
    transcript: str,
    thresholds: EvidenceThresholds | None = None,
) -> list[str]:
    """Return the snippets that individually verify, in original order.

    Duplicates (by normalized form) are dropped; the first original
    spelling is kept.
    """
    if not isinstance(snippets, Sequence) or isinstance(snippets, (str, bytes)):
        return []

    resolved = _resolve(thresholds)
    normalized_transcript = normalize_text(transcript)
    seen: set[str] = set()
    valid: list[str] = []

    for snippet in snippets:
        if not isinstance(snippet, str):
            continue
        normalized = normalize_text(snippet)
        if normalized in seen:
            continue
        if classify_normalized(normalized, normalized_transcript, resolved) == EvidenceVerdict.valid:
            seen.add(normalized)
            valid.append(snippet)

    return valid


def is_valid_evidence_set(
    snippets: Any,
    transcript: str,
    thresholds: EvidenceThresholds | None = None,
) -> bool:
    """Check that a non-empty snippet list has at least one valid element."""
    return bool(filter_valid_evidence(snippets, transcript, thresholds))


def analyze_evidence_quality(
    snippets: Any,
    transcript: str,
    thresholds: EvidenceThresholds | None = None,
) -> EvidenceQuality:
    """Diagnostic breakdown of an evidence list.

    Reports valid / too-short / too-long / not-found counts and a 0-1
    quality ratio. Used for logging and metadata only; it never decides
    whether an item is answered.

    Args:
        snippets: Evidence list as returned by the model.
        transcript: Source transcript.
        thresholds: Length bounds. Defaults to environment configuration.

    Returns:
        EvidenceQuality summary.
    """
    if not isinstance(snippets, Sequence) or isinstance(snippets, (str, bytes)):
        return EvidenceQuality()

    resolved = _resolve(thresholds)
    normalized_transcript = normalize_text(transcript)
    counts = {verdict: 0 for verdict in EvidenceVerdict}
    total_length = 0

    for snippet in snippets:
        normalized = normalize_text(snippet) if isinstance(snippet, str) else ""
        total_length += len(normalized)
        verdict = classify_normalized(normalized, normalized_transcript, resolved)
        # Empty strings are reported as too short
        if verdict == EvidenceVerdict.empty:
            verdict = EvidenceVerdict.too_short
        counts[verdict] += 1

    total = len(snippets)
    return EvidenceQuality(
        total_count=total,
        valid_count=counts[EvidenceVerdict.valid],
        too_short=counts[EvidenceVerdict.too_short],
        too_long=counts[EvidenceVerdict.too_long],
        not_found=counts[EvidenceVerdict.not_found],
        average_length=round(total_length / total) if total else 0,
        quality_score=counts[EvidenceVerdict.valid] / total if total else 0.0,
    )
