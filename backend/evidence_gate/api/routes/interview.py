"""Interview extraction endpoint.

- POST /api/interview/extract: Extract evidence-backed answers for a question list

All responses use the { data, error } envelope pattern. A run that ends with
validation_passed=False still returns 200; callers read the metadata.
"""

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from evidence_gate.api.response import success_response
from evidence_gate.models import ExtractionMetadata, InterviewResult
from evidence_gate.services.extraction_service import InterviewExtractor
from evidence_gate.services.legacy_projection import render_legacy_summary
from evidence_gate.services.question_set import (
    QuestionCountCheck,
    build_question_set,
    check_question_count,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/interview", tags=["Interview"])


# ============================================================================
# Request/Response Models
# ============================================================================

class ExtractRequest(BaseModel):
    """Request to extract answers from a transcript."""
    questions: list[str] = Field(description="Ordered interview questions")
    transcript: str = Field(description="Interview transcript, the only source of answers")


class ExtractData(BaseModel):
    """Response data for the extract endpoint."""
    result: InterviewResult
    metadata: ExtractionMetadata
    legacy_summary: str = Field(description="Flattened rendering for older consumers")
    question_check: QuestionCountCheck = Field(description="Diagnostic question count review")


# ============================================================================
# Dependencies
# ============================================================================

@lru_cache
def get_extractor() -> InterviewExtractor:
    """Shared extractor configured from the environment."""
    return InterviewExtractor()


# ============================================================================
# Endpoints
# ============================================================================

@router.post("/extract")
async def extract_interview(
    request: ExtractRequest,
    extractor: InterviewExtractor = Depends(get_extractor),
) -> dict:
    """Run one evidence-gated extraction."""
    outcome = await extractor.extract(request.questions, request.transcript)

    question_check = check_question_count(build_question_set(request.questions))
    if not question_check.ok:
        logger.info(f"Question count outside recommended range: {question_check.violations}")

    data = ExtractData(
        result=outcome.result,
        metadata=outcome.metadata,
        legacy_summary=render_legacy_summary(
            outcome.result, extractor.settings.unanswered_token
        ),
        question_check=question_check,
    )
    return success_response(data)
