"""Configuration for the extraction engine.

All values are read from environment variables with production defaults.
Thresholds are a product decision, not a correctness requirement, so they
stay tunable without code changes.
"""

import os
from dataclasses import dataclass, field

# Evidence thresholds (normalized characters)
DEFAULT_EVIDENCE_MIN_LENGTH = 8
DEFAULT_EVIDENCE_MAX_LENGTH = 200

# Orchestrator defaults
DEFAULT_MAX_REPAIR_ATTEMPTS = 1
DEFAULT_MAX_TRANSPORT_RETRIES = 2
DEFAULT_MODEL_TIMEOUT_SECONDS = 60.0
DEFAULT_BACKOFF_BASE_DELAY = 1.0
DEFAULT_BACKOFF_MAX_DELAY = 30.0
DEFAULT_EXTRACTION_MODEL = "gpt-4o"
DEFAULT_UNANSWERED_TOKEN = "未回答"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class EvidenceThresholds:
    """Length bounds for a single evidence snippet, after normalization."""

    min_length: int = DEFAULT_EVIDENCE_MIN_LENGTH
    max_length: int = DEFAULT_EVIDENCE_MAX_LENGTH

    @classmethod
    def from_env(cls) -> "EvidenceThresholds":
        """Load thresholds from EVIDENCE_MIN_LENGTH / EVIDENCE_MAX_LENGTH."""
        return cls(
            min_length=_env_int("EVIDENCE_MIN_LENGTH", DEFAULT_EVIDENCE_MIN_LENGTH),
            max_length=_env_int("EVIDENCE_MAX_LENGTH", DEFAULT_EVIDENCE_MAX_LENGTH),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        return {"min_length": self.min_length, "max_length": self.max_length}


@dataclass(frozen=True)
class ExtractionSettings:
    """Orchestrator configuration.

    The repair budget and the transport retry budget are independent:
    a transport retry resends the same prompt, a repair sends a revised one.

    Configuration (env vars):
    - EXTRACTION_MAX_REPAIR_ATTEMPTS: Content repair rounds (default: 1)
    - EXTRACTION_MAX_TRANSPORT_RETRIES: Same-prompt resends (default: 2)
    - EXTRACTION_MODEL_TIMEOUT_SECONDS: Per-call timeout (default: 60)
    - EXTRACTION_MODEL: Model identifier (default: gpt-4o)
    - EXTRACTION_UNANSWERED_TOKEN: Placeholder for legacy rendering
    """

    max_repair_attempts: int = DEFAULT_MAX_REPAIR_ATTEMPTS
    max_transport_retries: int = DEFAULT_MAX_TRANSPORT_RETRIES
    model_timeout: float = DEFAULT_MODEL_TIMEOUT_SECONDS
    backoff_base_delay: float = DEFAULT_BACKOFF_BASE_DELAY
    backoff_max_delay: float = DEFAULT_BACKOFF_MAX_DELAY
    model: str = DEFAULT_EXTRACTION_MODEL
    unanswered_token: str = DEFAULT_UNANSWERED_TOKEN
    thresholds: EvidenceThresholds = field(default_factory=EvidenceThresholds)

    @classmethod
    def from_env(cls) -> "ExtractionSettings":
        """Load settings from environment variables."""
        return cls(
            max_repair_attempts=max(
                0, _env_int("EXTRACTION_MAX_REPAIR_ATTEMPTS", DEFAULT_MAX_REPAIR_ATTEMPTS)
            ),
            max_transport_retries=max(
                0, _env_int("EXTRACTION_MAX_TRANSPORT_RETRIES", DEFAULT_MAX_TRANSPORT_RETRIES)
            ),
            model_timeout=_env_float(
                "EXTRACTION_MODEL_TIMEOUT_SECONDS", DEFAULT_MODEL_TIMEOUT_SECONDS
            ),
            model=os.environ.get("EXTRACTION_MODEL", DEFAULT_EXTRACTION_MODEL),
            unanswered_token=os.environ.get(
                "EXTRACTION_UNANSWERED_TOKEN", DEFAULT_UNANSWERED_TOKEN
            ),
            thresholds=EvidenceThresholds.from_env(),
        )
