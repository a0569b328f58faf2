import pytest

from watchme.settings import settings

HEADERS = {"X-User-Id": "alice"}


@pytest.mark.asyncio
async def test_ai_without_key_is_unavailable(api_client, monkeypatch):
	monkeypatch.setattr(settings, "gemini_api_key", None)
	response = await api_client.post("/ai/summary", headers=HEADERS, json={"title": "Heat"})
	assert response.status_code == 503
	assert response.json()["detail"] == "ai_not_configured"


@pytest.mark.asyncio
async def test_ai_quota_returns_429(api_client, monkeypatch):
	monkeypatch.setattr(settings, "ai_requests_per_minute", 0)
	response = await api_client.post("/ai/summary", headers=HEADERS, json={"title": "Heat"})
	assert response.status_code == 429
	assert response.json()["detail"] == "ai_rate_limited"


@pytest.mark.asyncio
async def test_empty_watchlist_prompt_skips_model(api_client, monkeypatch):
	monkeypatch.setattr(settings, "gemini_api_key", None)
	response = await api_client.post("/ai/watchlist-recommendations", headers=HEADERS, json={"titles": []})
	assert response.status_code == 200
	assert response.json() == {"recommendations": []}
