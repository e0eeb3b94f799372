"""Pytest fixtures for testing."""

import json
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from evidence_gate.api.main import app
from evidence_gate.api.routes.interview import get_extractor
from evidence_gate.config import EvidenceThresholds, ExtractionSettings
from evidence_gate.llm import ChatMessage
from evidence_gate.services.extraction_service import InterviewExtractor


class ScriptedModel:
    """Model caller that replays a fixed list of outputs or exceptions.

    Records every message list it receives so tests can inspect prompts.
    """

    def __init__(self, outputs: list[Any]):
        self._outputs = outputs
        self.calls: list[list[ChatMessage]] = []

    async def __call__(self, messages: list[ChatMessage]) -> str:
        self.calls.append(messages)
        if not self._outputs:
            raise AssertionError("model called more times than scripted")
        output = self._outputs.pop(0)
        if isinstance(output, BaseException):
            raise output
        if isinstance(output, (dict, list)):
            return json.dumps(output, ensure_ascii=False)
        return output

    @property
    def call_count(self) -> int:
        return len(self.calls)


@pytest.fixture
def thresholds() -> EvidenceThresholds:
    """Default evidence bounds, independent of the environment."""
    return EvidenceThresholds(min_length=8, max_length=200)


@pytest.fixture
def settings(thresholds: EvidenceThresholds) -> ExtractionSettings:
    """Fast orchestrator settings (no backoff delay)."""
    return ExtractionSettings(
        max_repair_attempts=1,
        max_transport_retries=2,
        model_timeout=5.0,
        backoff_base_delay=0.0,
        backoff_max_delay=0.0,
        model="test-model",
        thresholds=thresholds,
    )


@pytest.fixture
def sample_questions() -> list[str]:
    """Three interview questions."""
    return [
        "現在のお仕事について教えてください",
        "休日はどのように過ごしていますか",
        "今後の目標は何ですか",
    ]


@pytest.fixture
def sample_transcript() -> str:
    """Transcript answering the first and third sample questions only."""
    return (
        "インタビュアー:よろしくお願いします。\n"
        "回答者:私は東京の出版社で編集者として働いています。主に技術書を担当しています。\n"
        "インタビュアー:ありがとうございます。\n"
        "回答者:来年までに自分の企画で新しいシリーズを立ち上げたいと考えています。"
    )


@pytest.fixture
def answered_all_payload(sample_questions: list[str]) -> dict[str, Any]:
    """Model output claiming all three sample questions are answered.

    Only Q1 and Q3 cite evidence that exists in the sample transcript.
    """
    return {
        "items": [
            {
                "question": sample_questions[0],
                "answer": "出版社で技術書の編集者をしている",
                "status": "answered",
                "evidence": ["東京の出版社で編集者として働いています"],
            },
            {
                "question": sample_questions[1],
                "answer": "週末は山登りをしている",
                "status": "answered",
                "evidence": ["週末はいつも山に登っています"],
            },
            {
                "question": sample_questions[2],
                "answer": "新しいシリーズを立ち上げたい",
                "status": "answered",
                "evidence": ["自分の企画で新しいシリーズを立ち上げたい"],
            },
        ]
    }


@pytest.fixture
def scripted_model() -> Callable[[list[Any]], ScriptedModel]:
    """Factory for ScriptedModel instances."""
    return ScriptedModel


@pytest_asyncio.fixture
async def api_client(settings: ExtractionSettings) -> AsyncGenerator[tuple[AsyncClient, list], None]:
    """Async HTTP client whose extractor replays outputs pushed to the returned list."""
    outputs: list[Any] = []
    model = ScriptedModel(outputs)

    app.dependency_overrides[get_extractor] = lambda: InterviewExtractor(
        model_caller=model, settings=settings
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac, outputs
    app.dependency_overrides.clear()
