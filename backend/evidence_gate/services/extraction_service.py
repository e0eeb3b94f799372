"""Interview extraction orchestrator.

Drives one extraction run through a small state machine:

    INIT -> AWAITING_MODEL -> VALIDATING -> (REPAIRING -> AWAITING_MODEL)* -> DONE

The model output is untrusted. Every run ends in the clamper, which
re-verifies evidence against the transcript, so the returned result always
has exactly one item per question no matter what the model produced.

Two budgets are kept apart:
- transport retries resend the same prompt after a transient failure
- repair attempts send a revised prompt after a schema violation
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from evidence_gate.config import ExtractionSettings
from evidence_gate.llm import (
    ChatMessage,
    LLMClient,
    LLMError,
    RETRYABLE_ERRORS,
    ResponseFormat,
    backoff_delay,
)
from evidence_gate.models import (
    ExtractionMetadata,
    ExtractionOutcome,
    Question,
    RepairAttempt,
    ValidationReport,
)

from .interview_normalization import check_result_invariants, clamp_interview_result
from .interview_schema import (
    INTERVIEW_RESPONSE_SCHEMA,
    describe_candidate,
    extract_json_payload,
    validate_interview_candidate,
)
from .prompts import build_extraction_messages, build_repair_messages
from .question_set import build_question_set
from .sanitize import analyze_patterns

logger = logging.getLogger(__name__)

ModelCaller = Callable[[list[ChatMessage]], Awaitable[str]]

# Failures that resend the same prompt
TRANSIENT_ERRORS = RETRYABLE_ERRORS + (asyncio.TimeoutError, ConnectionError)

INTERVIEW_RESPONSE_FORMAT = ResponseFormat(
    type="json_schema", json_schema=INTERVIEW_RESPONSE_SCHEMA
)


class ExtractionState(str, Enum):
    """Orchestrator states."""
    init = "init"
    awaiting_model = "awaiting_model"
    validating = "validating"
    repairing = "repairing"
    done = "done"


@dataclass
class _RunContext:
    """Mutable bookkeeping for one run."""

    correlation_id: str
    state: ExtractionState = ExtractionState.init
    model_call_count: int = 0
    transport_retry_count: int = 0
    last_error: str | None = None
    attempts: list[RepairAttempt] = field(default_factory=list)


def llm_model_caller(
    client: LLMClient | None = None,
    model: str | None = None,
) -> ModelCaller:
    """Build the default model caller on top of LLMClient.

    The client gets ``max_retries=0`` unless one is passed in; the
    orchestrator owns transport retries. Requests carry the interview JSON
    schema so providers with structured output can enforce the shape.
    """
    llm = client or LLMClient(max_retries=0)
    resolved_model = model or ExtractionSettings.from_env().model

    async def call(messages: list[ChatMessage]) -> str:
        return await llm.complete_json(
            messages, model=resolved_model, response_format=INTERVIEW_RESPONSE_FORMAT
        )

    return call


class InterviewExtractor:
    """Evidence-gated interview extraction.

    Example:
        extractor = InterviewExtractor(model_caller=my_caller)
        outcome = await extractor.extract(["What is your role?"], transcript)
    """

    def __init__(
        self,
        model_caller: ModelCaller | None = None,
        settings: ExtractionSettings | None = None,
    ):
        self._settings = settings or ExtractionSettings.from_env()
        self._model_caller = model_caller or llm_model_caller(model=self._settings.model)

    @property
    def settings(self) -> ExtractionSettings:
        return self._settings

    async def extract(
        self,
        questions: Sequence[str],
        transcript: str,
        correlation_id: str | None = None,
    ) -> ExtractionOutcome:
        """Run one extraction.

        Args:
            questions: Ordered question texts. Never rewritten or re-ordered.
            transcript: Source transcript, the only source of truth.
            correlation_id: Optional ID carried through log records.

        Returns:
            ExtractionOutcome with exactly len(questions) items and run metadata.
        """
        question_list = build_question_set(questions)
        transcript = transcript or ""
        ctx = _RunContext(correlation_id=correlation_id or str(uuid.uuid4()))
        thresholds = self._settings.thresholds
        n = len(question_list)

        logger.info(
            f"Extraction {ctx.correlation_id}: starting with {n} questions, "
            f"transcript length {len(transcript)}",
            extra={"correlation_id": ctx.correlation_id, "thresholds": thresholds.to_dict()},
        )

        messages = build_extraction_messages(question_list, transcript, thresholds.min_length)
        candidate: Any = {"items": []}
        report: ValidationReport | None = None
        repairs_used = 0

        while True:
            ctx.state = ExtractionState.awaiting_model
            raw_output = await self._call_model(messages, ctx)

            if raw_output is None:
                # Transport gave up; keep whatever candidate the last round produced
                logger.warning(
                    f"Extraction {ctx.correlation_id}: model unavailable, "
                    "clamping last candidate",
                    extra={"correlation_id": ctx.correlation_id, "last_error": ctx.last_error},
                )
                report = None
                break

            ctx.state = ExtractionState.validating
            candidate, report, parsed = self._validate(raw_output, n, ctx)

            if report.ok:
                break

            if repairs_used >= self._settings.max_repair_attempts:
                logger.warning(
                    f"Extraction {ctx.correlation_id}: repair budget exhausted "
                    f"with {len(report.violations)} violations",
                    extra={"correlation_id": ctx.correlation_id, "violations": report.violations},
                )
                break

            ctx.state = ExtractionState.repairing
            repairs_used += 1
            logger.info(
                f"Extraction {ctx.correlation_id}: repair attempt {repairs_used}/"
                f"{self._settings.max_repair_attempts}",
                extra={"correlation_id": ctx.correlation_id, "violations": report.violations},
            )
            messages = build_repair_messages(
                candidate if parsed else None,
                report.violations,
                question_list,
                transcript,
                thresholds.min_length,
            )

        clamped = clamp_interview_result(candidate, question_list, transcript, thresholds)
        ctx.state = ExtractionState.done

        invariants = check_result_invariants(clamped.result, question_list, transcript, thresholds)
        if not invariants.ok:
            logger.error(
                f"Extraction {ctx.correlation_id}: final result violates invariants",
                extra={"correlation_id": ctx.correlation_id, "violations": invariants.violations},
            )

        metadata = ExtractionMetadata(
            model_call_count=ctx.model_call_count,
            transport_retry_count=ctx.transport_retry_count,
            repair_attempted=repairs_used > 0,
            validation_passed=(
                report is not None and report.ok and clamped.stats.downgraded_count == 0
            ),
            last_error=ctx.last_error,
            stats=clamped.stats,
        )

        logger.info(
            f"Extraction {ctx.correlation_id}: done - "
            f"{clamped.stats.answered_count} answered, "
            f"{clamped.stats.unanswered_count} unanswered, "
            f"{clamped.stats.downgraded_count} downgraded",
            extra={
                "correlation_id": ctx.correlation_id,
                "model_call_count": metadata.model_call_count,
                "transport_retry_count": metadata.transport_retry_count,
                "repair_attempted": metadata.repair_attempted,
                "validation_passed": metadata.validation_passed,
            },
        )
        return ExtractionOutcome(result=clamped.result, metadata=metadata)

    def _validate(
        self,
        raw_output: str,
        expected_count: int,
        ctx: _RunContext,
    ) -> tuple[Any, ValidationReport, bool]:
        """Parse and schema-check one model output.

        Returns:
            (candidate, report, parsed). An unparseable output yields the
            empty candidate and parsed=False.
        """
        extraction = extract_json_payload(raw_output)
        if extraction.success:
            candidate = extraction.payload
            report = validate_interview_candidate(
                candidate, expected_count, self._settings.thresholds
            )
        else:
            candidate = {"items": []}
            schema_report = validate_interview_candidate(
                candidate, expected_count, self._settings.thresholds
            )
            report = ValidationReport.from_violations(
                [f"payload: {extraction.error}"] + schema_report.violations
                if not schema_report.ok
                else []
            )

        ctx.attempts.append(
            RepairAttempt(
                attempt_number=len(ctx.attempts) + 1,
                raw_output=raw_output,
                violations=list(report.violations),
            )
        )

        if not report.ok:
            logger.debug(
                f"Extraction {ctx.correlation_id}: candidate rejected",
                extra={
                    "correlation_id": ctx.correlation_id,
                    "attempt": len(ctx.attempts),
                    "parse_error": extraction.error,
                },
            )
        return candidate, report, extraction.success

    async def _call_model(self, messages: list[ChatMessage], ctx: _RunContext) -> str | None:
        """Send one logical model call with bounded transport retries.

        Returns:
            Raw model text, or None once transport retries are exhausted or
            the caller raised anything that is not transient.
        """
        max_retries = self._settings.max_transport_retries

        for attempt in range(max_retries + 1):
            try:
                raw_output = await asyncio.wait_for(
                    self._model_caller(messages),
                    timeout=self._settings.model_timeout,
                )
            except TRANSIENT_ERRORS as e:
                ctx.last_error = f"{type(e).__name__}: {e}"
                logger.warning(
                    "Transient model failure on attempt %d/%d: %s",
                    attempt + 1,
                    max_retries + 1,
                    ctx.last_error,
                    extra={
                        "correlation_id": ctx.correlation_id,
                        "attempt": attempt + 1,
                        "error_type": type(e).__name__,
                    },
                )
                if attempt < max_retries:
                    ctx.transport_retry_count += 1
                    await asyncio.sleep(
                        backoff_delay(
                            attempt,
                            e,
                            base_delay=self._settings.backoff_base_delay,
                            max_delay=self._settings.backoff_max_delay,
                        )
                    )
                continue
            except LLMError as e:
                ctx.last_error = f"{type(e).__name__}: {e}"
                logger.error(
                    "Non-retryable model failure: %s",
                    ctx.last_error,
                    extra={"correlation_id": ctx.correlation_id, "error_type": type(e).__name__},
                )
                return None
            except Exception as e:
                ctx.last_error = f"{type(e).__name__}: {e}"
                logger.error(
                    "Model caller failed: %s",
                    ctx.last_error,
                    exc_info=True,
                    extra={"correlation_id": ctx.correlation_id, "error_type": type(e).__name__},
                )
                return None

            ctx.model_call_count += 1
            ctx.last_error = None
            return raw_output if isinstance(raw_output, str) else str(raw_output or "")

        return None


async def extract(
    questions: Sequence[str],
    transcript: str,
    model_caller: ModelCaller | None = None,
    settings: ExtractionSettings | None = None,
) -> ExtractionOutcome:
    """Run one extraction with a fresh InterviewExtractor."""
    return await InterviewExtractor(model_caller=model_caller, settings=settings).extract(
        questions, transcript
    )


def candidate_summary(raw_output: str, questions: Sequence[str]) -> dict[str, Any]:
    """Debug summary of a raw model output against a question list."""
    extraction = extract_json_payload(raw_output)
    question_list: list[Question] = build_question_set(questions)
    summary = describe_candidate(extraction.payload, question_list)
    summary["parse_error"] = extraction.error
    summary["patterns"] = analyze_patterns(raw_output or "")
    return summary
