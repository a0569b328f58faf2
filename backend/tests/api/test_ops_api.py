import pytest

from watchme.settings import settings


@pytest.mark.asyncio
async def test_health_endpoints(api_client):
	response = await api_client.get("/health/live")
	assert response.json() == {"status": "ok"}

	response = await api_client.get("/health/ready")
	assert response.status_code == 200
	assert response.json()["checks"]["redis"]["ok"] is True


@pytest.mark.asyncio
async def test_metrics_require_admin_token(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_metrics_public", False)
	monkeypatch.setattr(settings, "obs_admin_token", "s3cret")

	assert (await api_client.get("/metrics")).status_code == 403
	assert (await api_client.get("/metrics", headers={"X-Admin-Token": "nope"})).status_code == 403

	response = await api_client.get("/metrics", headers={"Authorization": "Bearer s3cret"})
	assert response.status_code == 200
	assert "text/plain" in response.headers["content-type"]


@pytest.mark.asyncio
async def test_request_id_is_echoed(api_client):
	response = await api_client.get("/health/live", headers={"X-Request-Id": "req-123"})
	assert response.headers.get("X-Request-Id") == "req-123"
