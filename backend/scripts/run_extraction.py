#!/usr/bin/env python3
"""Run one interview extraction from files.

Reads a JSON array of questions and a transcript text file, runs the
evidence-gated extraction against the configured LLM provider, and prints
the outcome JSON (result + metadata).

Usage:
    python scripts/run_extraction.py --questions questions.json --transcript transcript.txt
    python scripts/run_extraction.py -q questions.json -t transcript.txt --legacy
    python scripts/run_extraction.py -q questions.json -t transcript.txt --out outcome.json --ci
    python scripts/run_extraction.py -q questions.json --inspect raw_output.txt

Run from backend directory:
    python scripts/run_extraction.py --help
"""

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from evidence_gate.config import ExtractionSettings
from evidence_gate.services.extraction_service import InterviewExtractor, candidate_summary
from evidence_gate.services.legacy_projection import render_legacy_summary


def load_questions(path: Path) -> list[str]:
    """Load a JSON array of question strings."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("questions")
    if not isinstance(data, list) or not all(isinstance(q, str) for q in data):
        raise ValueError(f"{path} must contain a JSON array of strings")
    return data


def main():
    parser = argparse.ArgumentParser(
        description="Extract evidence-backed interview answers from a transcript",
    )
    parser.add_argument(
        "-q", "--questions",
        type=Path,
        required=True,
        help="JSON file with an array of questions (or {\"questions\": [...]})",
    )
    parser.add_argument(
        "-t", "--transcript",
        type=Path,
        help="UTF-8 transcript text file",
    )
    parser.add_argument(
        "--inspect",
        type=Path,
        metavar="RAW_OUTPUT",
        help="Summarize a saved raw model output against the questions and exit",
    )
    parser.add_argument(
        "--out",
        type=Path,
        help="Write the outcome JSON here instead of stdout",
    )
    parser.add_argument(
        "--legacy",
        action="store_true",
        help="Also print the flattened legacy summary",
    )
    parser.add_argument(
        "--max-repair-attempts",
        type=int,
        help="Override EXTRACTION_MAX_REPAIR_ATTEMPTS",
    )
    parser.add_argument(
        "--ci",
        action="store_true",
        help="Exit non-zero when validation did not pass",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args()

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.questions.exists():
        print(f"Error: Questions file not found: {args.questions}", file=sys.stderr)
        sys.exit(1)
    try:
        questions = load_questions(args.questions)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.inspect:
        if not args.inspect.exists():
            print(f"Error: Raw output file not found: {args.inspect}", file=sys.stderr)
            sys.exit(1)
        summary = candidate_summary(args.inspect.read_text(encoding="utf-8"), questions)
        print(json.dumps(summary, ensure_ascii=False, indent=2))
        return

    if args.transcript is None or not args.transcript.exists():
        print(f"Error: Transcript file not found: {args.transcript}", file=sys.stderr)
        sys.exit(1)
    transcript = args.transcript.read_text(encoding="utf-8")

    settings = ExtractionSettings.from_env()
    if args.max_repair_attempts is not None:
        settings = dataclasses.replace(
            settings, max_repair_attempts=max(0, args.max_repair_attempts)
        )

    extractor = InterviewExtractor(settings=settings)
    outcome = asyncio.run(extractor.extract(questions, transcript))

    output = json.dumps(outcome.model_dump(mode="json"), ensure_ascii=False, indent=2)
    if args.out:
        args.out.write_text(output, encoding="utf-8")
        print(f"Outcome saved to: {args.out}")
    else:
        print(output)

    if args.legacy:
        print()
        print(render_legacy_summary(outcome.result, settings.unanswered_token))

    meta = outcome.metadata
    print(
        f"\nAnswered: {meta.stats.answered_count}/{meta.stats.final_count}  "
        f"Repair: {'yes' if meta.repair_attempted else 'no'}  "
        f"Validation: {'PASSED' if meta.validation_passed else 'FAILED'}",
        file=sys.stderr,
    )

    if args.ci and not meta.validation_passed:
        sys.exit(1)


if __name__ == "__main__":
    main()
