"""Clamp any candidate into a valid N-item interview result.

This is the unconditional safety net of the engine. It accepts anything
(wrong length, broken items, fabricated citations, injected questions) and
always returns exactly one item per question, where an item is answered
only if its evidence independently verifies against the transcript.

Rules:
1. Length: keep the first N candidate items, pad the tail with unanswered.
2. Evidence: every answered claim is re-verified; failure downgrades it.
3. Identity: ``question`` always comes from the original question list.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from evidence_gate.config import EvidenceThresholds
from evidence_gate.models import (
    AnsweredItem,
    InterviewItem,
    InterviewResult,
    ItemStatus,
    NormalizationStats,
    Question,
    UnansweredItem,
    ValidationReport,
)

from .evidence_validation import (
    analyze_evidence_quality,
    filter_valid_evidence,
    is_valid_evidence,
)
from .sanitize import clean_answer_text


@dataclass(frozen=True)
class ClampOutcome:
    """Clamped result plus counters for metadata and logging."""

    result: InterviewResult
    stats: NormalizationStats


def _encodable(text: str) -> bool:
    """False for text UTF-8 cannot encode, such as lone surrogates."""
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def build_item(
    question: str,
    answer: Any,
    evidence: Any,
    transcript: str,
    thresholds: EvidenceThresholds | None = None,
) -> InterviewItem:
    """Single validated constructor for an interview item.

    Returns an AnsweredItem only if the cleaned answer is non-empty and at
    least one evidence snippet verifies against the transcript. Evidence
    that does not verify, or that UTF-8 cannot encode, is dropped from the
    answered item. Anything else yields an UnansweredItem.

    Args:
        question: Original question text.
        answer: Claimed answer (any type; non-strings are rejected).
        evidence: Claimed evidence list (any type).
        transcript: Source transcript.
        thresholds: Evidence length bounds.

    Returns:
        AnsweredItem or UnansweredItem.
    """
    if not isinstance(answer, str):
        return UnansweredItem(question=question)

    cleaned_answer = clean_answer_text(answer)
    if not cleaned_answer or not _encodable(cleaned_answer):
        return UnansweredItem(question=question)

    verified = [
        snippet
        for snippet in filter_valid_evidence(evidence, transcript, thresholds)
        if _encodable(snippet)
    ]
    if not verified:
        return UnansweredItem(question=question)

    try:
        return AnsweredItem(question=question, answer=cleaned_answer, evidence=verified)
    except ValidationError:
        return UnansweredItem(question=question)


def _candidate_items(candidate: Any) -> list[Any]:
    """Coerce any candidate shape into a list of raw items."""
    if isinstance(candidate, InterviewResult):
        return [item.model_dump() for item in candidate.items]
    if isinstance(candidate, dict):
        items = candidate.get("items")
        return list(items) if isinstance(items, list) else []
    if isinstance(candidate, list):
        return list(candidate)
    return []


def _claims_answered(raw: Any) -> bool:
    return isinstance(raw, dict) and raw.get("status") == ItemStatus.answered.value


def clamp_interview_result(
    candidate: Any,
    questions: Sequence[Question],
    transcript: str,
    thresholds: EvidenceThresholds | None = None,
) -> ClampOutcome:
    """Force a candidate into an exactly-N, evidence-consistent result.

    Never raises. Extra candidate items are dropped (never merged or
    re-ordered in), missing ones are padded as unanswered, and an answered
    claim that fails transcript verification is downgraded irreversibly.

    Args:
        candidate: Parsed model payload, item list, or anything else.
        questions: Original question list; defines N and item order.
        transcript: Source transcript, the sole source of truth.
        thresholds: Evidence length bounds. Defaults to environment config.

    Returns:
        ClampOutcome with the result and normalization stats.
    """
    resolved = thresholds if thresholds is not None else EvidenceThresholds.from_env()
    raw_items = _candidate_items(candidate)
    n = len(questions)

    items: list[InterviewItem] = []
    downgraded = 0
    quality_total = 0.0

    for index, question in enumerate(questions):
        raw = raw_items[index] if index < len(raw_items) else None

        if not _claims_answered(raw):
            items.append(UnansweredItem(question=question.text))
            continue

        quality = analyze_evidence_quality(raw.get("evidence"), transcript, resolved)
        quality_total += quality.quality_score

        item = build_item(
            question=question.text,
            answer=raw.get("answer"),
            evidence=raw.get("evidence"),
            transcript=transcript,
            thresholds=resolved,
        )
        if item.status == ItemStatus.unanswered.value:
            downgraded += 1
        items.append(item)

    result = InterviewResult(items=items)
    stats = NormalizationStats(
        original_count=len(raw_items),
        final_count=n,
        answered_count=result.answered_count,
        unanswered_count=result.unanswered_count,
        downgraded_count=downgraded,
        evidence_quality_score=quality_total / n if n else 0.0,
    )
    return ClampOutcome(result=result, stats=stats)


def empty_result(questions: Sequence[Question]) -> InterviewResult:
    """All-unanswered result for the given questions."""
    return InterviewResult(items=[UnansweredItem(question=q.text) for q in questions])


def check_result_invariants(
    result: InterviewResult,
    questions: Sequence[Question],
    transcript: str,
    thresholds: EvidenceThresholds | None = None,
) -> ValidationReport:
    """Re-check the output invariants of a final result.

    Count, question identity, evidence verification for answered items,
    and empty answer/evidence for unanswered items.
    """
    violations: list[str] = []

    if len(result.items) != len(questions):
        violations.append(
            f"item count mismatch: expected={len(questions)}, actual={len(result.items)}"
        )

    for index, (item, question) in enumerate(zip(result.items, questions)):
        label = f"Q{index + 1}"
        if item.question != question.text:
            violations.append(f"{label}: question text differs from input")
        if item.status == ItemStatus.answered.value:
            if not item.evidence:
                violations.append(f"{label}: answered item has no evidence")
            for ev in item.evidence:
                if not is_valid_evidence(ev, transcript, thresholds):
                    violations.append(f"{label}: evidence not found in transcript")
        elif item.answer is not None or item.evidence:
            violations.append(f"{label}: unanswered item carries answer or evidence")

    return ValidationReport.from_violations(violations)
