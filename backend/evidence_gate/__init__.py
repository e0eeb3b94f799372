"""Evidence-gated interview answer extraction."""

from .services import InterviewExtractor, extract, render_legacy_summary

__all__ = ["InterviewExtractor", "extract", "render_legacy_summary"]
