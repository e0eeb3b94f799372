"""Question list construction and diagnostics."""

from collections.abc import Sequence

from pydantic import BaseModel, Field

from evidence_gate.models import Question

# Recommended interview size; outside this range is reported, never changed
RECOMMENDED_MIN_QUESTIONS = 5
RECOMMENDED_MAX_QUESTIONS = 7


class QuestionCountCheck(BaseModel):
    """Diagnostic result of a question count review."""

    ok: bool
    violations: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


def build_question_set(texts: Sequence[str]) -> list[Question]:
    """Build the ordered question list for a run.

    Texts are kept exactly as given, blank ones included, so that output
    item ``i`` always echoes input question ``i``.
    """
    return [
        Question(id=f"q_{index}", order=index, text=text)
        for index, text in enumerate(texts, start=1)
    ]


def check_question_count(
    questions: Sequence[Question],
    min_questions: int = RECOMMENDED_MIN_QUESTIONS,
    max_questions: int = RECOMMENDED_MAX_QUESTIONS,
) -> QuestionCountCheck:
    """Review the question list against the recommended interview size.

    Purely diagnostic: the extraction still produces exactly one item per
    question whatever this reports.
    """
    violations: list[str] = []
    recommendations: list[str] = []
    count = len(questions)

    if count < min_questions:
        violations.append(f"too few questions: {count} (minimum {min_questions})")
        recommendations.append("add questions before running the interview")
    if count > max_questions:
        violations.append(f"too many questions: {count} (maximum {max_questions})")
        recommendations.append(f"consider trimming to {max_questions} questions")

    blank = sum(1 for q in questions if not q.text.strip())
    if blank:
        recommendations.append(f"{blank} blank question(s) give the model nothing to answer")

    return QuestionCountCheck(
        ok=not violations,
        violations=violations,
        recommendations=recommendations,
    )
