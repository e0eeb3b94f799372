"""Interview extraction models.

The two-state answer is a discriminated union on ``status``: an answered
item without evidence, or an unanswered item carrying an answer, cannot be
constructed. Transcript verification happens in the service layer through
``build_item``; these models only guard internal consistency.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ItemStatus(str, Enum):
    """Answer status of a single interview item."""
    answered = "answered"
    unanswered = "unanswered"


class Question(BaseModel):
    """An ordered, 1-indexed interview question."""

    model_config = ConfigDict(frozen=True)

    id: str
    order: int = Field(ge=1, description="1-based position in the question list")
    text: str


class AnsweredItem(BaseModel):
    """An item backed by at least one transcript quotation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    question: str
    answer: str = Field(min_length=1)
    status: Literal["answered"] = "answered"
    evidence: list[str] = Field(min_length=1)

    @field_validator("answer")
    @classmethod
    def _answer_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("answered item requires a non-blank answer")
        return value


class UnansweredItem(BaseModel):
    """An item with no verifiable answer in the transcript."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    question: str
    answer: None = None
    status: Literal["unanswered"] = "unanswered"
    evidence: list[str] = Field(default_factory=list, max_length=0)


InterviewItem = Annotated[
    Union[AnsweredItem, UnansweredItem],
    Field(discriminator="status"),
]


class InterviewResult(BaseModel):
    """Exactly one item per input question, in question order."""

    model_config = ConfigDict(frozen=True)

    items: list[InterviewItem] = Field(default_factory=list)

    @property
    def answered_count(self) -> int:
        return sum(1 for item in self.items if item.status == ItemStatus.answered.value)

    @property
    def unanswered_count(self) -> int:
        return len(self.items) - self.answered_count


class ValidationReport(BaseModel):
    """Outcome of a pure validation pass."""

    ok: bool
    violations: list[str] = Field(default_factory=list)

    @classmethod
    def from_violations(cls, violations: list[str]) -> "ValidationReport":
        return cls(ok=not violations, violations=list(violations))


class EvidenceQuality(BaseModel):
    """Diagnostic breakdown of an evidence list. Never gates status."""

    total_count: int = 0
    valid_count: int = 0
    too_short: int = 0
    too_long: int = 0
    not_found: int = 0
    average_length: int = 0
    quality_score: float = Field(default=0.0, ge=0.0, le=1.0)


class NormalizationStats(BaseModel):
    """Counters reported by the clamper."""

    original_count: int = 0
    final_count: int = 0
    answered_count: int = 0
    unanswered_count: int = 0
    downgraded_count: int = 0
    evidence_quality_score: float = Field(default=0.0, ge=0.0, le=1.0)


class ExtractionMetadata(BaseModel):
    """Run metadata returned alongside the result.

    ``validation_passed`` False with a populated result is a legitimate
    terminal outcome, not an error.
    """

    model_call_count: int = 0
    transport_retry_count: int = 0
    repair_attempted: bool = False
    validation_passed: bool = False
    last_error: Optional[str] = None
    stats: NormalizationStats = Field(default_factory=NormalizationStats)


class ExtractionOutcome(BaseModel):
    """Caller-facing result of one extraction run."""

    result: InterviewResult
    metadata: ExtractionMetadata


@dataclass
class RepairAttempt:
    """Transient record of one model round. Never persisted."""

    attempt_number: int
    raw_output: str
    violations: list[str] = field(default_factory=list)
