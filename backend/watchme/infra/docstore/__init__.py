"""Document database used by every feature: users, chats, requests, recommendations."""

from __future__ import annotations

from typing import Optional

from watchme.infra.docstore.core import (  # noqa: F401
	DELETE_FIELD,
	SERVER_TIMESTAMP,
	ArrayRemove,
	ArrayUnion,
	DocumentNotFound,
	DocumentSnapshot,
	DocumentStoreError,
	Filter,
	Increment,
	InvalidPath,
	TransactionAborted,
	TransactionConflict,
)
from watchme.infra.docstore.store import DocumentStore, Transaction, WriteBatch  # noqa: F401

_store: Optional[DocumentStore] = None


def _build_default() -> DocumentStore:
	from watchme.settings import settings

	if settings.document_backend == "postgres":
		from watchme.infra.docstore.postgres_store import PostgresDocumentStore

		return PostgresDocumentStore()
	from watchme.infra.docstore.redis_store import RedisDocumentStore
	from watchme.infra.redis import redis_client

	return RedisDocumentStore(redis_client)


def get_store() -> DocumentStore:
	global _store
	if _store is None:
		_store = _build_default()
	return _store


def set_store(store: Optional[DocumentStore]) -> None:
	global _store
	_store = store
