"""Regex cleanup for model-authored text.

Defense in depth only. These passes improve readability of answers and of
the question list shown to the model; they are never what decides whether
an item is answered. That decision belongs to the evidence re-check.
"""

import re
from typing import TypedDict

# Line-level patterns counted by analyze_patterns
LINE_PATTERNS = {
    "q_numbers": re.compile(r"^Q\d+\s*[:：]"),             # Q1: / Q2：
    "headings": re.compile(r"^[#＃].*$"),                  # Markdown headings
    "bullets": re.compile(r"^[-–—・]\s+"),                 # bullets
    "circled_numbers": re.compile(r"^[①②③④⑤⑥⑦⑧⑨⑩]"),  # circled numbers
}

# Placeholder text models emit instead of declaring an item unanswered
INLINE_PLACEHOLDERS = [
    "質問内容が見つかりません",
]
EXACT_PLACEHOLDERS = {"未回答", "回答なし", "なし", "N/A", "n/a", "None", "null", "Unanswered"}

QUESTION_LABEL_PATTERN = re.compile(r"^\s*(?:Q|設問|質問)\s*\d+\s*[:：.．)）]\s*")
BRACKET_HEADING_PATTERN = re.compile(r"【[^】]*】")
BLANK_LINES_PATTERN = re.compile(r"\n{3,}")


class PatternReport(TypedDict):
    q_numbers: int
    headings: int
    bullets: int
    circled_numbers: int


def strip_question_label(text: str) -> str:
    """Drop a leading "Q1:" style label from a single line of text."""
    return QUESTION_LABEL_PATTERN.sub("", text, count=1)


def clean_answer_text(answer: str | None) -> str:
    """Clean a model-authored answer for display.

    Removes leading question labels, 【heading】 markers and placeholder
    phrases, then collapses blank lines. An answer that is only a
    placeholder comes back empty, which the clamper treats as unanswered.

    Args:
        answer: Raw answer text from the model.

    Returns:
        Cleaned answer (possibly empty).
    """
    if not answer:
        return ""

    cleaned = strip_question_label(answer)
    cleaned = BRACKET_HEADING_PATTERN.sub("", cleaned)
    for phrase in INLINE_PLACEHOLDERS:
        cleaned = cleaned.replace(phrase, "")
    if cleaned.strip() in EXACT_PLACEHOLDERS:
        return ""
    cleaned = BLANK_LINES_PATTERN.sub("\n\n", cleaned)
    return cleaned.strip()


def clean_question_for_prompt(question: str) -> str:
    """Question text as shown to the model. Output items keep the original."""
    cleaned = strip_question_label(question)
    cleaned = BRACKET_HEADING_PATTERN.sub("", cleaned)
    return " ".join(cleaned.split())


def analyze_patterns(text: str) -> PatternReport:
    """Count suspicious line patterns, for diagnostics."""
    report = PatternReport(q_numbers=0, headings=0, bullets=0, circled_numbers=0)
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        for name, pattern in LINE_PATTERNS.items():
            if pattern.search(stripped):
                report[name] += 1
    return report
