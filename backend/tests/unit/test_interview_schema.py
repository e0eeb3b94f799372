"""Tests for JSON extraction and structural validation of model output."""

import json
import sys

import pytest

from evidence_gate.services.interview_schema import (
    INTERVIEW_RESPONSE_SCHEMA,
    describe_candidate,
    extract_json_payload,
    validate_interview_candidate,
)
from evidence_gate.services.question_set import build_question_set


def answered(question="質問", answer="回答", evidence=None):
    return {
        "question": question,
        "answer": answer,
        "status": "answered",
        "evidence": evidence if evidence is not None else ["十分な長さの根拠テキスト"],
    }


def unanswered(question="質問"):
    return {"question": question, "answer": None, "status": "unanswered", "evidence": []}


int_digit_limit = pytest.mark.skipif(
    not hasattr(sys, "get_int_max_str_digits"),
    reason="interpreter has no integer string conversion limit",
)


class TestExtractJsonPayload:
    """Tests for pulling JSON out of raw model text."""

    def test_pure_json(self):
        """A bare JSON object parses directly."""
        extraction = extract_json_payload('{"items": []}')
        assert extraction.success is True
        assert extraction.payload == {"items": []}

    def test_code_fence(self):
        """JSON inside a markdown code fence is found."""
        raw = 'Here you go:\n```json\n{"items": [{"a": 1}]}\n```\nDone.'
        extraction = extract_json_payload(raw)
        assert extraction.success is True
        assert extraction.payload == {"items": [{"a": 1}]}

    def test_prefers_longest_parseable_span(self):
        """When several objects appear, the longest one wins."""
        raw = 'note {"x": 1} then {"items": [{"question": "q", "status": "unanswered"}]}'
        extraction = extract_json_payload(raw)
        assert extraction.payload["items"][0]["question"] == "q"

    def test_braces_inside_strings_ignored(self):
        """Braces inside JSON strings do not break span detection."""
        raw = 'prefix {"items": [{"answer": "a } b {"}]} suffix'
        extraction = extract_json_payload(raw)
        assert extraction.success is True
        assert extraction.payload["items"][0]["answer"] == "a } b {"

    def test_bare_array_wrapped(self):
        """A bare array is read as the item list."""
        extraction = extract_json_payload('[{"question": "q"}]')
        assert extraction.payload == {"items": [{"question": "q"}]}

    def test_empty_output(self):
        """Empty or whitespace output fails with a reason."""
        for raw in (None, "", "   "):
            extraction = extract_json_payload(raw)
            assert extraction.success is False
            assert extraction.error == "empty model output"

    def test_no_json(self):
        """Prose without JSON fails with a reason."""
        extraction = extract_json_payload("I could not find any answers.")
        assert extraction.success is False
        assert extraction.error == "no JSON payload found"

    def test_truncated_json(self):
        """An unbalanced payload is not parseable."""
        extraction = extract_json_payload('{"items": [{"question": "q"')
        assert extraction.success is False

    def test_quote_and_brace_in_leading_prose(self):
        """A stray brace in prose before the payload does not hide it."""
        raw = 'He said "see {" and then: {"items": [{"question": "q"}]}'
        extraction = extract_json_payload(raw)
        assert extraction.success is True
        assert extraction.payload == {"items": [{"question": "q"}]}

    def test_mismatched_closer_resets(self):
        """A closer of the wrong type discards the open brackets before it."""
        raw = 'noise {"a": [1} {"items": []}'
        extraction = extract_json_payload(raw)
        assert extraction.payload == {"items": []}

    @int_digit_limit
    def test_oversized_integer(self):
        """An integer past the conversion limit is unparseable, not an error."""
        raw = '{"n": ' + "9" * 5000 + "}"
        extraction = extract_json_payload(raw)
        assert extraction.success is False
        assert extraction.error == "no JSON payload found"

    @int_digit_limit
    def test_oversized_integer_beside_payload(self):
        """A later span still parses when an earlier one holds a huge number."""
        raw = '{"n": ' + "9" * 5000 + '} {"items": [{"question": "q"}]}'
        extraction = extract_json_payload(raw)
        assert extraction.payload == {"items": [{"question": "q"}]}

    def test_deep_nesting(self):
        """Nesting past the recursion limit fails cleanly."""
        extraction = extract_json_payload("[" * 100000 + "]" * 100000)
        assert extraction.success is False
        assert extraction.error == "no JSON payload found"

    def test_deep_nesting_inside_prose(self):
        """Deep nesting wrapped in prose also fails cleanly."""
        extraction = extract_json_payload("result: " + "{\"a\":" * 50000 + "1" + "}" * 50000)
        assert extraction.success is False

    def test_many_unclosed_openers(self):
        """A long run of openers with no closers finds nothing."""
        extraction = extract_json_payload("{" * 20000)
        assert extraction.success is False
        assert extraction.error == "no JSON payload found"

    def test_many_small_spans(self):
        """Only the longest spans are tried; the payload is among them."""
        raw = "[1] " * 5000 + '{"items": [{"question": "q"}]}'
        extraction = extract_json_payload(raw)
        assert extraction.payload == {"items": [{"question": "q"}]}


class TestValidateInterviewCandidate:
    """Tests for the N-item structural contract."""

    def test_valid_candidate(self, thresholds):
        """A well-formed candidate passes."""
        candidate = {"items": [answered(), unanswered()]}
        report = validate_interview_candidate(candidate, 2, thresholds)
        assert report.ok is True
        assert report.violations == []

    def test_not_an_object(self, thresholds):
        """Anything but a dict is rejected outright."""
        report = validate_interview_candidate(["not", "a", "dict"], 2, thresholds)
        assert report.ok is False
        assert report.violations == ["payload: expected a JSON object"]

    def test_missing_items(self, thresholds):
        """A dict without an items array fails with a count mismatch."""
        report = validate_interview_candidate({"answers": []}, 3, thresholds)
        assert "items: required array is missing" in report.violations
        assert "item count mismatch: expected=3, actual=0" in report.violations

    def test_count_mismatch(self, thresholds):
        """Too many items is a violation."""
        candidate = {"items": [unanswered(), unanswered(), unanswered()]}
        report = validate_interview_candidate(candidate, 2, thresholds)
        assert report.violations == ["item count mismatch: expected=2, actual=3"]

    def test_missing_fields(self, thresholds):
        """Each missing field is reported."""
        report = validate_interview_candidate({"items": [{"question": "q"}]}, 1, thresholds)
        assert "Q1.answer: required field missing" in report.violations
        assert "Q1.status: required field missing" in report.violations
        assert "Q1.evidence: required field missing" in report.violations

    def test_invalid_status(self, thresholds):
        """Status outside the two-state enum is rejected."""
        item = answered()
        item["status"] = "partial"
        report = validate_interview_candidate({"items": [item]}, 1, thresholds)
        assert "Q1.status: must be 'answered' or 'unanswered'" in report.violations

    @pytest.mark.parametrize("status", [[], {}, ["answered"], None, 1])
    def test_non_string_status(self, status, thresholds):
        """Unhashable and non-string statuses are violations, not errors."""
        item = unanswered()
        item["status"] = status
        report = validate_interview_candidate({"items": [item]}, 1, thresholds)
        assert report.ok is False
        assert "Q1.status: must be 'answered' or 'unanswered'" in report.violations

    def test_answered_without_evidence(self, thresholds):
        """Answered with an empty evidence list is a violation."""
        report = validate_interview_candidate({"items": [answered(evidence=[])]}, 1, thresholds)
        assert "Q1: answered item has no evidence" in report.violations

    def test_answered_without_answer(self, thresholds):
        """Answered with a null or blank answer is a violation."""
        report = validate_interview_candidate({"items": [answered(answer="  ")]}, 1, thresholds)
        assert "Q1: answered item has no answer" in report.violations

    def test_short_evidence(self, thresholds):
        """Evidence below the minimum length is flagged by index."""
        candidate = {"items": [answered(evidence=["十分な長さの根拠テキスト", "短い"])]}
        report = validate_interview_candidate(candidate, 1, thresholds)
        assert report.violations == ["Q1.evidence[1]: shorter than 8 characters"]

    def test_unanswered_with_answer_and_evidence(self, thresholds):
        """Unanswered items must be empty."""
        item = unanswered()
        item["answer"] = "何か"
        item["evidence"] = ["十分な長さの根拠テキスト"]
        report = validate_interview_candidate({"items": [item]}, 1, thresholds)
        assert "Q1: unanswered item must have answer=null" in report.violations
        assert "Q1: unanswered item must have empty evidence" in report.violations

    def test_non_object_item(self, thresholds):
        """A non-object item is reported with its position."""
        report = validate_interview_candidate({"items": [unanswered(), "text"]}, 2, thresholds)
        assert report.violations == ["Q2: item is not an object"]

    def test_collects_all_violations(self, thresholds):
        """Violations across items are all collected."""
        candidate = {"items": [answered(evidence=[]), answered(answer=None)]}
        report = validate_interview_candidate(candidate, 3, thresholds)
        assert len(report.violations) == 3

    def test_zero_questions(self, thresholds):
        """An empty item list is valid for zero questions."""
        assert validate_interview_candidate({"items": []}, 0, thresholds).ok is True


class TestResponseSchema:
    """Tests for the JSON schema sent to structured-output providers."""

    def test_schema_is_serializable(self):
        """The schema round-trips through JSON."""
        assert json.loads(json.dumps(INTERVIEW_RESPONSE_SCHEMA)) == INTERVIEW_RESPONSE_SCHEMA

    def test_status_enum(self):
        """Only the two statuses are allowed."""
        item_schema = INTERVIEW_RESPONSE_SCHEMA["properties"]["items"]["items"]
        assert item_schema["properties"]["status"]["enum"] == ["answered", "unanswered"]


class TestDescribeCandidate:
    """Tests for the debug summary."""

    def test_summary(self):
        """Summary reports counts, validity and samples."""
        questions = build_question_set(["質問1", "質問2"])
        summary = describe_candidate({"items": [answered("質問1"), unanswered("質問2")]}, questions)
        assert summary["question_count"] == 2
        assert summary["item_count"] == 2
        assert summary["valid"] is True
        assert summary["samples"][0]["evidence_count"] == 1

    @pytest.mark.parametrize("candidate", [None, "text", {"items": "nope"}])
    def test_malformed(self, candidate):
        """Malformed candidates still summarize."""
        summary = describe_candidate(candidate, build_question_set(["質問1"]))
        assert summary["item_count"] == 0
        assert summary["valid"] is False

    def test_unhashable_status(self):
        """An item whose status is an object is summarized as invalid."""
        candidate = {"items": [{"question": "q", "answer": None, "status": {}, "evidence": []}]}
        summary = describe_candidate(candidate, build_question_set(["質問1"]))
        assert summary["valid"] is False
        assert summary["samples"][0]["status"] == {}
