import json

import httpx
import pytest

from watchme.domain.ai import prompts, service
from watchme.domain.ai.client import GeminiClient
from watchme.domain.ai.exceptions import AIRateLimited, AIResponseInvalid, AIUnavailable
from watchme.domain.ai.schemas import (
    BlendRecommendationsInput,
    MovieSummaryInput,
    WatchlistRecommendationsInput,
)


def _answer(payload):
    return httpx.Response(
        200,
        json={"candidates": [{"content": {"parts": [{"text": json.dumps(payload)}]}}]},
    )


def _client(handler, api_key="test-key"):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiClient(http=http, api_key=api_key, model="gemini-test", base_url="https://gemini.test/v1beta")


@pytest.mark.asyncio
async def test_generate_json_posts_prompt_with_schema():
    seen = []

    def handler(request):
        seen.append(request)
        return _answer({"summary": "Streaming on Netflix."})

    client = _client(handler)
    result = await client.generate_json("prompt text", prompts.SUMMARY_SCHEMA)

    assert result == {"summary": "Streaming on Netflix."}
    request = seen[0]
    assert request.url.path == "/v1beta/models/gemini-test:generateContent"
    assert request.url.params["key"] == "test-key"
    body = json.loads(request.content)
    assert body["contents"][0]["parts"][0]["text"] == "prompt text"
    assert body["generationConfig"]["responseMimeType"] == "application/json"


@pytest.mark.asyncio
async def test_generate_json_without_key():
    client = _client(lambda request: _answer({}), api_key=None)
    with pytest.raises(AIUnavailable) as excinfo:
        await client.generate_json("p", {})
    assert excinfo.value.reason == "ai_not_configured"


@pytest.mark.asyncio
async def test_generate_json_error_status():
    client = _client(lambda request: httpx.Response(500, json={"error": "boom"}))
    with pytest.raises(AIUnavailable) as excinfo:
        await client.generate_json("p", {})
    assert excinfo.value.reason == "ai_status_500"
    assert excinfo.value.status_code == 503


@pytest.mark.asyncio
async def test_generate_json_transport_error():
    def handler(request):
        raise httpx.ConnectError("down", request=request)

    with pytest.raises(AIUnavailable) as excinfo:
        await _client(handler).generate_json("p", {})
    assert excinfo.value.reason == "ai_unreachable"


@pytest.mark.asyncio
async def test_generate_json_rejects_non_json_answers():
    def not_json(request):
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "sure!"}]}}]})

    with pytest.raises(AIResponseInvalid):
        await _client(not_json).generate_json("p", {})
    with pytest.raises(AIResponseInvalid):
        await _client(lambda request: _answer(["a", "b"])).generate_json("p", {})
    with pytest.raises(AIResponseInvalid):
        await _client(lambda request: httpx.Response(200, json={"candidates": []})).generate_json("p", {})


@pytest.mark.asyncio
async def test_movie_summary_flow():
    prompts_seen = []

    def handler(request):
        prompts_seen.append(json.loads(request.content)["contents"][0]["parts"][0]["text"])
        return _answer({"summary": "Rent it on Prime Video."})

    service.set_client(_client(handler))
    result = await service.movie_summary(MovieSummaryInput(title="Heat"))

    assert result.summary == "Rent it on Prime Video."
    assert '"Heat"' in prompts_seen[0]


@pytest.mark.asyncio
async def test_output_failing_validation_is_invalid():
    service.set_client(_client(lambda request: _answer({"summary": ""})))
    with pytest.raises(AIResponseInvalid):
        await service.movie_summary(MovieSummaryInput(title="Heat"))


@pytest.mark.asyncio
async def test_recommendations_are_cleaned():
    service.set_client(_client(lambda request: _answer({"recommendations": ["Ronin", " Ronin ", "", "Thief"]})))
    result = await service.watchlist_recommendations(WatchlistRecommendationsInput(titles=["Heat"]))
    assert result.recommendations == ["Ronin", "Thief"]


@pytest.mark.asyncio
async def test_empty_inputs_skip_the_model():
    def handler(request):
        raise AssertionError("model must not be called")

    service.set_client(_client(handler))
    assert (await service.watchlist_recommendations(WatchlistRecommendationsInput(titles=[" "]))).recommendations == []
    result = await service.blend_recommendations(BlendRecommendationsInput(user1_titles=["Heat"], user2_titles=[]))
    assert result.recommendations == []


def test_prompts_carry_counts_and_titles():
    watchlist = prompts.watchlist_recommendations(["Heat", "Ronin"])
    assert str(prompts.WATCHLIST_COUNT) in watchlist
    assert "Heat" in watchlist and "Ronin" in watchlist

    blend = prompts.blend_recommendations(["Heat"], ["Alien"])
    assert str(prompts.BLEND_COUNT) in blend
    assert "Heat" in blend and "Alien" in blend


@pytest.mark.asyncio
async def test_quota_is_per_user_per_minute(monkeypatch):
    monkeypatch.setattr(service.settings, "ai_requests_per_minute", 2)
    await service.enforce_quota("alice")
    await service.enforce_quota("alice")
    with pytest.raises(AIRateLimited) as excinfo:
        await service.enforce_quota("alice")
    assert excinfo.value.reason == "ai_rate_limited"
    await service.enforce_quota("bob")
