"""Services package for the extraction engine."""

from . import extraction_service

from .evidence_validation import (
    EvidenceVerdict,
    analyze_evidence_quality,
    classify_evidence,
    filter_valid_evidence,
    is_valid_evidence,
    is_valid_evidence_set,
)
from .extraction_service import (
    ExtractionState,
    InterviewExtractor,
    ModelCaller,
    extract,
    llm_model_caller,
)
from .interview_normalization import (
    ClampOutcome,
    build_item,
    check_result_invariants,
    clamp_interview_result,
    empty_result,
)
from .interview_schema import (
    INTERVIEW_RESPONSE_SCHEMA,
    JsonExtraction,
    describe_candidate,
    extract_json_payload,
    validate_interview_candidate,
)
from .legacy_projection import render_legacy_summary
from .question_set import build_question_set, check_question_count
from .text_normalizer import normalize_text

__all__ = [
    "extraction_service",
    # Text normalization and evidence
    "normalize_text",
    "EvidenceVerdict",
    "classify_evidence",
    "is_valid_evidence",
    "is_valid_evidence_set",
    "filter_valid_evidence",
    "analyze_evidence_quality",
    # Schema validation
    "INTERVIEW_RESPONSE_SCHEMA",
    "JsonExtraction",
    "extract_json_payload",
    "validate_interview_candidate",
    "describe_candidate",
    # Clamping
    "ClampOutcome",
    "build_item",
    "clamp_interview_result",
    "check_result_invariants",
    "empty_result",
    # Orchestration
    "ExtractionState",
    "InterviewExtractor",
    "ModelCaller",
    "extract",
    "llm_model_caller",
    # Helpers
    "build_question_set",
    "check_question_count",
    "render_legacy_summary",
]
