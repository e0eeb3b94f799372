"""Extraction data models."""

from .interview import (
    AnsweredItem,
    EvidenceQuality,
    ExtractionMetadata,
    ExtractionOutcome,
    InterviewItem,
    InterviewResult,
    ItemStatus,
    NormalizationStats,
    Question,
    RepairAttempt,
    UnansweredItem,
    ValidationReport,
)

__all__ = [
    "AnsweredItem",
    "EvidenceQuality",
    "ExtractionMetadata",
    "ExtractionOutcome",
    "InterviewItem",
    "InterviewResult",
    "ItemStatus",
    "NormalizationStats",
    "Question",
    "RepairAttempt",
    "UnansweredItem",
    "ValidationReport",
]
