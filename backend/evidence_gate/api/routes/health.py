"""Health check endpoint."""

from fastapi import APIRouter

from evidence_gate.api.response import success_response
from evidence_gate.config import EvidenceThresholds

router = APIRouter(tags=["System"])


@router.get("/health")
async def health_check() -> dict:
    """Return system health status and active evidence thresholds."""
    return success_response({
        "status": "ok",
        "evidence_thresholds": EvidenceThresholds.from_env().to_dict(),
    })
