"""Structural validation of model output.

Extracts a JSON payload from untrusted model text and checks it against the
N-item contract. This layer has no transcript access: it checks only the
internal self-consistency of the candidate, so its violation list is cheap
to explain to the model in a repair round. Evidence-vs-transcript truth is
checked later by the clamper.
"""

import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Optional

from evidence_gate.config import EvidenceThresholds
from evidence_gate.models import ItemStatus, Question, ValidationReport

from .text_normalizer import normalized_length

REQUIRED_ITEM_FIELDS = ("question", "answer", "status", "evidence")
VALID_STATUSES = {status.value for status in ItemStatus}

_OPENERS = {"}": "{", "]": "["}

# Candidate spans tried per output, longest first
MAX_SPAN_ATTEMPTS = 32

# JSON Schema for providers that accept a structured response format
INTERVIEW_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "items": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "question": {"type": "string"},
                    "answer": {"type": ["string", "null"]},
                    "status": {"type": "string", "enum": ["answered", "unanswered"]},
                    "evidence": {"type": "array", "items": {"type": "string"}},
                },
                "required": ["question", "answer", "status", "evidence"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["items"],
    "additionalProperties": False,
}


@dataclass
class JsonExtraction:
    """Result of pulling a JSON payload out of raw model text."""

    payload: Optional[dict[str, Any]]
    success: bool
    error: Optional[str] = None


def _scan_spans(text: str, start: int) -> tuple[list[tuple[int, int]], Optional[int]]:
    """One pass from ``start`` over ``text``.

    Returns the balanced spans found and the position of the earliest
    opener left unclosed at the end of the text (None when all closed).
    """
    stack: list[int] = []
    spans: list[tuple[int, int]] = []
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            elif ch == "\n":
                in_string = False
                stack.clear()
            continue
        if ch in "{[":
            stack.append(i)
        elif ch in "}]":
            if stack and text[stack[-1]] == _OPENERS[ch]:
                spans.append((stack.pop(), i + 1))
            else:
                stack.clear()
        elif ch == '"' and stack:
            in_string = True
    return spans, (stack[0] if stack else None)


def _balanced_spans(text: str) -> list[tuple[int, int]]:
    """(start, end) of the balanced ``{...}`` / ``[...]`` spans in ``text``.

    Double-quoted strings are tracked only inside brackets, so braces in
    JSON strings do not count and quotes in surrounding prose are ignored.
    A mismatched closer, or a raw newline inside a string, discards every
    open bracket before it. A stray opener left unclosed (a brace in prose)
    is skipped by rescanning just past it, at most MAX_SPAN_ATTEMPTS times.
    """
    spans, unclosed = _scan_spans(text, 0)
    rescans = 0
    while unclosed is not None and rescans < MAX_SPAN_ATTEMPTS:
        rescans += 1
        more, unclosed = _scan_spans(text, unclosed + 1)
        spans.extend(more)
    return list(dict.fromkeys(spans))


def _loads(text: str) -> Any:
    """json.loads that reports every parse failure as ValueError.

    Oversized integers raise a plain ValueError and deep nesting raises
    RecursionError; both mean the text is not a usable payload.
    """
    try:
        return json.loads(text)
    except RecursionError as e:
        raise ValueError("JSON nested too deeply") from e


def _as_payload(value: Any) -> Optional[dict[str, Any]]:
    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        # A bare array is read as the items list
        return {"items": value}
    return None


def extract_json_payload(raw_output: str | None) -> JsonExtraction:
    """Extract the structured payload from raw model output.

    Tries the whole text first, then the balanced ``{...}`` / ``[...]``
    spans, longest first (earliest on ties), up to MAX_SPAN_ATTEMPTS of them.
    Never raises: oversized numbers and deep nesting count as unparseable.

    Args:
        raw_output: Untrusted model text.

    Returns:
        JsonExtraction with the payload dict, or success=False.
    """
    if not raw_output or not raw_output.strip():
        return JsonExtraction(payload=None, success=False, error="empty model output")

    text = raw_output.strip()
    try:
        payload = _as_payload(_loads(text))
        if payload is not None:
            return JsonExtraction(payload=payload, success=True)
    except ValueError:
        pass

    spans = sorted(_balanced_spans(text), key=lambda span: (span[0] - span[1], span[0]))
    for start, end in spans[:MAX_SPAN_ATTEMPTS]:
        try:
            parsed = _loads(text[start:end])
        except ValueError:
            continue
        payload = _as_payload(parsed)
        if payload is not None:
            return JsonExtraction(payload=payload, success=True)

    return JsonExtraction(payload=None, success=False, error="no JSON payload found")


def _validate_item(
    item: Any,
    label: str,
    thresholds: EvidenceThresholds,
) -> list[str]:
    if not isinstance(item, dict):
        return [f"{label}: item is not an object"]

    violations: list[str] = []
    for name in REQUIRED_ITEM_FIELDS:
        if name not in item:
            violations.append(f"{label}.{name}: required field missing")

    question = item.get("question")
    if "question" in item and (not isinstance(question, str) or not question.strip()):
        violations.append(f"{label}.question: must be a non-empty string")

    answer = item.get("answer")
    if "answer" in item and answer is not None and not isinstance(answer, str):
        violations.append(f"{label}.answer: must be a string or null")

    status = item.get("status")
    if "status" in item and (not isinstance(status, str) or status not in VALID_STATUSES):
        violations.append(f"{label}.status: must be 'answered' or 'unanswered'")

    evidence = item.get("evidence")
    evidence_is_list = isinstance(evidence, list)
    if "evidence" in item and not evidence_is_list:
        violations.append(f"{label}.evidence: must be an array of strings")
    elif evidence_is_list and any(not isinstance(ev, str) for ev in evidence):
        violations.append(f"{label}.evidence: every element must be a string")

    if status == ItemStatus.answered.value:
        if not isinstance(answer, str) or not answer.strip():
            violations.append(f"{label}: answered item has no answer")
        if not evidence_is_list or not evidence:
            violations.append(f"{label}: answered item has no evidence")
        else:
            for j, ev in enumerate(evidence):
                if isinstance(ev, str) and normalized_length(ev) < thresholds.min_length:
                    violations.append(
                        f"{label}.evidence[{j}]: shorter than {thresholds.min_length} characters"
                    )
    elif status == ItemStatus.unanswered.value:
        if answer is not None:
            violations.append(f"{label}: unanswered item must have answer=null")
        if evidence_is_list and evidence:
            violations.append(f"{label}: unanswered item must have empty evidence")

    return violations


def validate_interview_candidate(
    candidate: Any,
    expected_count: int,
    thresholds: EvidenceThresholds | None = None,
) -> ValidationReport:
    """Check a parsed candidate against the N-item contract.

    All violations are collected; nothing short-circuits except a
    candidate that is not an object at all.

    Args:
        candidate: Parsed payload (usually a dict with ``items``).
        expected_count: Number of questions in the run.
        thresholds: Evidence length bounds for the minimum-length pre-check.

    Returns:
        ValidationReport with ok flag and human-readable violations.
    """
    resolved = thresholds if thresholds is not None else EvidenceThresholds.from_env()

    if not isinstance(candidate, dict):
        return ValidationReport.from_violations(["payload: expected a JSON object"])

    items = candidate.get("items")
    if not isinstance(items, list):
        return ValidationReport.from_violations([
            "items: required array is missing",
            f"item count mismatch: expected={expected_count}, actual=0",
        ])

    violations: list[str] = []
    if len(items) != expected_count:
        violations.append(
            f"item count mismatch: expected={expected_count}, actual={len(items)}"
        )

    for index, item in enumerate(items):
        violations.extend(_validate_item(item, f"Q{index + 1}", resolved))

    return ValidationReport.from_violations(violations)


def describe_candidate(candidate: Any, questions: Sequence[Question]) -> dict[str, Any]:
    """Summarize a candidate for debug logging."""
    items = candidate.get("items") if isinstance(candidate, dict) else None
    items = items if isinstance(items, list) else []
    report = validate_interview_candidate(candidate, len(questions))

    samples = []
    for item in items[:2]:
        if isinstance(item, dict):
            evidence = item.get("evidence")
            samples.append({
                "question": str(item.get("question", ""))[:50],
                "status": item.get("status"),
                "has_answer": bool(item.get("answer")),
                "evidence_count": len(evidence) if isinstance(evidence, list) else 0,
            })

    return {
        "question_count": len(questions),
        "item_count": len(items),
        "valid": report.ok,
        "violations": report.violations,
        "samples": samples,
    }
