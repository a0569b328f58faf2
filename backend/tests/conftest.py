import os
import sys
import tempfile
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

os.environ.setdefault("SECRET_KEY", "watchme-test-secret-key-with-enough-length")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("UPLOAD_ROOT", tempfile.mkdtemp(prefix="watchme-uploads-"))

from watchme.domain import live
from watchme.domain.ai import service as ai_service
from watchme.domain.catalog import service as catalog_service
from watchme.domain.identity.models import new_profile_doc, user_path, username_path
from watchme.infra import postgres
from watchme.infra.docstore import get_store, set_store
from watchme.infra.docstore.redis_store import RedisDocumentStore
from watchme.main import app
from watchme.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from watchme.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	set_store(RedisDocumentStore(redis_client))
	try:
		yield client
	finally:
		set_store(None)
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests authenticate via the X-User-Id header, which is only accepted in
	dev mode. Outbound clients never see real keys.
	"""
	original_env = settings.environment
	original_backend = settings.document_backend
	settings.environment = "test"
	settings.document_backend = "redis"
	try:
		yield
	finally:
		settings.environment = original_env
		settings.document_backend = original_backend


@pytest.fixture(autouse=True)
def reset_clients():
	catalog_service.set_client(None)
	ai_service.set_client(None)
	live.set_namespace(None)
	try:
		yield
	finally:
		catalog_service.set_client(None)
		ai_service.set_client(None)


@pytest.fixture
def create_user():
	"""Write a fresh ``users/{uid}`` document and its username claim; keyword overrides replace fields."""

	async def _create(uid: str, **fields):
		doc = new_profile_doc(
			uid,
			email=fields.pop("email", f"{uid}@example.com"),
			is_anonymous=fields.pop("is_anonymous", False),
			username=fields.pop("username", uid.lower()),
		)
		doc.update(fields)
		await get_store().set(user_path(uid), doc)
		await get_store().set(username_path(doc["username"]), {"uid": uid})
		return doc

	return _create


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
