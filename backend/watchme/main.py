"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.staticfiles import StaticFiles

from watchme.api import (
	ai,
	auth,
	blends,
	catalog,
	chat,
	discover,
	interactions,
	ops,
	profile,
	recommendations,
	social,
	watchlists,
)
from watchme.api.errors import install_error_handlers
from watchme.api.middleware_request_id import RequestIdMiddleware
from watchme.domain import live
from watchme.domain.ai import service as ai_service
from watchme.domain.catalog import service as catalog_service
from watchme.infra import postgres, storage
from watchme.infra.docstore import get_store
from watchme.obs import init as obs_init
from watchme.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	if settings.document_backend == "postgres":
		from watchme.infra.docstore.postgres_store import PostgresDocumentStore

		await postgres.init_pool()
		store = get_store()
		if isinstance(store, PostgresDocumentStore):
			await store.ensure_schema()
	store = get_store()
	store.add_listener(live.push_document_change)
	try:
		yield
	finally:
		store.remove_listener(live.push_document_change)
		await catalog_service.close_client()
		await ai_service.close_client()
		await store.close()
		if settings.document_backend == "postgres":
			await postgres.close_pool()


app = FastAPI(title="WatchMe API", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(getattr(settings, "cors_allow_origins", []))
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else ["https://app.watchme.example"]

# Starlette disallows wildcard '*' with allow_credentials=True. Replace '*' with explicit origins.
if "*" in allow_origins:
	if settings.is_dev():
		allow_origins = [
			"http://localhost:3000",
			"http://127.0.0.1:3000",
			"http://localhost:5173",
			"http://127.0.0.1:5173",
			"http://localhost:8081",
			"http://127.0.0.1:8081",
		]
	else:
		allow_origins = ["https://app.watchme.example"]

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

app.mount("/uploads", StaticFiles(directory=str(storage.upload_root()), check_dir=True), name="uploads")

# Use the same allowed origins for Socket.IO as for the REST API
sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
live_namespace = live.LiveNamespace()
sio.register_namespace(live_namespace)
live.set_namespace(live_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
obs_init(app)

# Ensure every request carries an X-Request-Id and make it available on request.state
app.add_middleware(RequestIdMiddleware)

app.include_router(auth.router, tags=["identity"])
app.include_router(profile.router, tags=["profile"])
app.include_router(catalog.router, tags=["catalog"])
app.include_router(interactions.router, tags=["interactions"])
app.include_router(discover.router, tags=["discover"])
app.include_router(watchlists.router, tags=["watchlists"])
app.include_router(social.router, tags=["social"])
app.include_router(chat.router, tags=["chat"])
app.include_router(recommendations.router, tags=["recommendations"])
app.include_router(blends.router, tags=["blends"])
app.include_router(ai.router, tags=["ai"])
app.include_router(ops.router, tags=["ops"])
