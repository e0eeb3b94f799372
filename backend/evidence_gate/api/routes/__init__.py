"""API routes package."""

from . import health, interview

__all__ = ["health", "interview"]
