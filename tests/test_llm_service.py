"""Gemini adapter: streaming, quota classification and model fallback."""
import asyncio
import json
from dataclasses import replace

import pytest

from answer_engine.core.exceptions import UpstreamFailure, UpstreamQuotaError
from answer_engine.schemas.answer import SearchResult
from answer_engine.services.llm_service import GeminiService, is_quota_exceeded
from tests.helpers import FakeProviders, gemini_generate_body, gemini_stream_body

PRIMARY = "gemini-2.5-flash"
FALLBACK = "gemini-2.0-flash-lite"
QUOTA_BODY = json.dumps(
    {"error": {"code": 429, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}}
).encode()

SOURCES = [SearchResult(title="T", url="https://t.example", description="D", index=1)]


def generate(settings, providers: FakeProviders, query: str = "what is rust"):
    chunks = []

    async def on_chunk(text):
        chunks.append(text)

    async def scenario():
        async with providers.client() as client:
            service = GeminiService(client, settings)
            return await service.generate_answer(query, SOURCES, "concise", None, on_chunk)

    return asyncio.run(scenario()), chunks


def test_primary_success_streams_deltas(settings, providers):
    providers.stream_responses[PRIMARY] = (200, gemini_stream_body("Rust ", "is ", "fast [1]."))

    result, chunks = generate(settings, providers)

    assert chunks == ["Rust ", "is ", "fast [1]."]
    assert result.model_used == PRIMARY
    assert result.text == "Rust is fast [1]."
    assert result.followups[0] == "What are the latest developments related to what is rust?"
    assert len(result.followups) == 3
    assert providers.models_called() == [PRIMARY]


def test_request_body_and_key(settings, providers):
    providers.stream_responses[PRIMARY] = (200, gemini_stream_body("ok"))
    generate(settings, providers)

    request = providers.requests[0]
    assert request.url.params["key"] == "test-gemini-key"
    body = json.loads(request.content)
    assert "User Query: what is rust" in body["contents"][0]["parts"][0]["text"]
    assert body["generationConfig"] == {
        "temperature": 0.7,
        "topK": 40,
        "topP": 0.95,
        "maxOutputTokens": 2048,
    }


def test_quota_error_falls_back_to_second_model(settings, providers):
    providers.stream_responses[PRIMARY] = (429, QUOTA_BODY)
    providers.stream_responses[FALLBACK] = (200, gemini_stream_body("from fallback"))

    result, chunks = generate(settings, providers)

    assert result.model_used == FALLBACK
    assert chunks == ["from fallback"]
    assert providers.models_called() == [PRIMARY, FALLBACK]


def test_quota_message_without_429_still_falls_back(settings, providers):
    body = json.dumps({"error": {"message": "quota exceeded for this project"}}).encode()
    providers.stream_responses[PRIMARY] = (403, body)
    providers.stream_responses[FALLBACK] = (200, gemini_stream_body("ok"))

    result, _ = generate(settings, providers)
    assert result.model_used == FALLBACK


def test_both_models_failing_raises_final_failure(settings, providers):
    providers.stream_responses[PRIMARY] = (429, QUOTA_BODY)
    providers.stream_responses[FALLBACK] = (500, b'{"error": {"message": "backend error"}}')

    with pytest.raises(UpstreamFailure, match="Both primary and fallback models failed"):
        generate(settings, providers)


def test_non_quota_error_does_not_fall_back(settings, providers):
    providers.stream_responses[PRIMARY] = (500, b'{"error": {"message": "internal"}}')
    providers.stream_responses[FALLBACK] = (200, gemini_stream_body("unused"))

    with pytest.raises(UpstreamFailure, match="Failed to generate AI answer"):
        generate(settings, providers)
    assert providers.models_called() == [PRIMARY]


def test_fallback_can_be_disabled(settings, providers):
    providers.stream_responses[PRIMARY] = (429, QUOTA_BODY)
    providers.stream_responses[FALLBACK] = (200, gemini_stream_body("unused"))

    with pytest.raises(UpstreamFailure, match="Failed to generate AI answer"):
        generate(replace(settings, USE_FALLBACK_WHEN_QUOTA_EXCEEDED=False), providers)
    assert providers.models_called() == [PRIMARY]


def test_missing_api_key_fails_without_request(settings, providers):
    with pytest.raises(UpstreamFailure):
        generate(replace(settings, GOOGLE_GEMINI_API_KEY=None), providers)
    assert providers.requests == []


@pytest.mark.parametrize(
    "error",
    [
        UpstreamFailure("Gemini API error", upstream_status=429),
        UpstreamQuotaError("anything"),
        RuntimeError("Quota Exceeded for model"),
        RuntimeError("Rate limit reached"),
        UpstreamFailure("Gemini API error: 400", details='{"status": "RESOURCE_EXHAUSTED"}'),
    ],
)
def test_quota_classification_positive(error):
    assert is_quota_exceeded(error)


@pytest.mark.parametrize(
    "error",
    [
        UpstreamFailure("Gemini API error: 500 Internal Server Error", upstream_status=500),
        RuntimeError("connection reset"),
    ],
)
def test_quota_classification_negative(error):
    assert not is_quota_exceeded(error)


def run_service(settings, providers, call):
    async def scenario():
        async with providers.client() as client:
            return await call(GeminiService(client, settings))

    return asyncio.run(scenario())


def test_rephrase_returns_model_text(settings, providers):
    providers.generate_responses[PRIMARY] = (200, gemini_generate_body("  python asyncio tutorial \n"))

    rephrased = run_service(settings, providers, lambda s: s.rephrase_query("asyncio how"))

    assert rephrased == "python asyncio tutorial"
    body = json.loads(providers.requests[0].content)
    assert body["generationConfig"] == {"temperature": 0.3, "maxOutputTokens": 100}


def test_rephrase_empty_output_returns_query(settings, providers):
    providers.generate_responses[PRIMARY] = (200, gemini_generate_body(""))
    assert run_service(settings, providers, lambda s: s.rephrase_query("asyncio how")) == "asyncio how"


def test_transform_failure_raises(settings, providers):
    providers.generate_responses[PRIMARY] = (500, b"oops")
    with pytest.raises(UpstreamFailure):
        run_service(settings, providers, lambda s: s.transform_text("text", "simplify", "Simplify: text"))
