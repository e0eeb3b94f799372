"""Flattened text rendering for older consumers.

The projection is lossy (evidence is not rendered) and always derived from
an InterviewResult; it is never the source of truth.
"""

from evidence_gate.config import DEFAULT_UNANSWERED_TOKEN
from evidence_gate.models import InterviewResult, ItemStatus

ANSWERED_LABEL = "✅ answered"
UNANSWERED_LABEL = "❌ unanswered"


def render_legacy_summary(
    result: InterviewResult,
    unanswered_token: str = DEFAULT_UNANSWERED_TOKEN,
) -> str:
    """Render one question / answer / status block per item.

    Args:
        result: Clamped interview result.
        unanswered_token: Placeholder shown instead of a missing answer.

    Returns:
        Markdown text with blocks separated by blank lines.
    """
    blocks = []
    for index, item in enumerate(result.items, start=1):
        if item.status == ItemStatus.answered.value:
            answer = item.answer
            status = ANSWERED_LABEL
        else:
            answer = unanswered_token
            status = UNANSWERED_LABEL
        blocks.append(
            f"## Q{index}: {item.question}\n"
            f"**Answer**: {answer}\n"
            f"**Status**: {status}"
        )
    return "\n\n".join(blocks)
