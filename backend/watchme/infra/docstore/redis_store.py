"""Redis-backed document store.

Each document is one JSON string at ``doc:{path}`` holding ``{"v": version,
"data": {...}}``; ``col:{collection}`` is the set of document ids in a
collection. Commits WATCH every touched key, verify the versions a
transaction read, and write everything in one MULTI/EXEC.

Fields listed in ``indexed_fields`` are also kept in secondary indexes,
updated in the same MULTI as the document:

* ``idx:{collection}:{field}:{json value}`` is the set of ids whose field holds
  that value (list fields get one entry per element), serving ``==``,
  ``in`` and ``array-contains``.
* ``lex:{collection}:{field}`` is a zero-score sorted set of
  ``{value}\\x00{id}`` members for string values, serving range filters
  through ZRANGEBYLEX.

Documents written before a field was indexed are not in its index.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from redis.exceptions import WatchError

from watchme.infra.docstore.core import (
	DocumentSnapshot,
	Filter,
	TransactionConflict,
	WriteOp,
	apply_writes,
	get_field,
	split_path,
	utcnow_iso,
)
from watchme.infra.docstore.store import Change, DocumentStore

logger = logging.getLogger(__name__)

_BLIND_WRITE_ATTEMPTS = 10
_LEX_SEPARATOR = "\x00"

DEFAULT_INDEXED_FIELDS: Mapping[str, Tuple[str, ...]] = {
	"users": ("username",),
	"chats": ("users",),
	"recommendations": ("to_user_id", "from_user_id"),
	"friendRequests": ("from_user_id", "to_user_id"),
	"blendRequests": ("from_user_id", "to_user_id"),
}

# (redis type, key, member)
IndexEntry = Tuple[str, str, str]


def _doc_key(path: str) -> str:
	return f"doc:{path}"


def _collection_key(collection: str) -> str:
	return f"col:{collection}"


def _value_key(collection: str, field: str, value: Any) -> str:
	return f"idx:{collection}:{field}:{json.dumps(value, separators=(',', ':'), sort_keys=True)}"


def _lex_key(collection: str, field: str) -> str:
	return f"lex:{collection}:{field}"


def _decode(raw: Optional[str]) -> Tuple[Optional[Dict[str, Any]], int]:
	if not raw:
		return None, 0
	envelope = json.loads(raw)
	return envelope.get("data"), int(envelope.get("v", 0))


def _indexable(value: Any) -> bool:
	return isinstance(value, str) or (isinstance(value, int) and not isinstance(value, bool))


def _lex_bounds(op: str, value: str) -> Tuple[str, str]:
	if op == ">=":
		return f"[{value}", "+"
	if op == ">":
		return f"[{value}\x01", "+"
	if op == "<":
		return "-", f"({value}"
	return "-", f"({value}\x01"


class RedisDocumentStore(DocumentStore):
	def __init__(self, client, indexed_fields: Optional[Mapping[str, Sequence[str]]] = None) -> None:
		super().__init__()
		self._client = client
		self._indexed = {
			collection: tuple(fields)
			for collection, fields in (DEFAULT_INDEXED_FIELDS if indexed_fields is None else indexed_fields).items()
		}

	async def _read(self, path: str) -> Tuple[Optional[Dict[str, Any]], int]:
		return _decode(await self._client.get(_doc_key(path)))

	def _index_entries(self, collection: str, doc_id: str, data: Optional[Mapping[str, Any]]) -> Set[IndexEntry]:
		entries: Set[IndexEntry] = set()
		if data is None:
			return entries
		for field in self._indexed.get(collection, ()):
			value = get_field(data, field)
			values = value if isinstance(value, list) else [value]
			for item in values:
				if _indexable(item):
					entries.add(("set", _value_key(collection, field, item), doc_id))
			if isinstance(value, str):
				entries.add(("zset", _lex_key(collection, field), f"{value}{_LEX_SEPARATOR}{doc_id}"))
		return entries

	async def _candidates(self, collection: str, item: Filter) -> Optional[Set[str]]:
		"""Ids that may match ``item``, or None when no index serves it."""
		if item.field not in self._indexed.get(collection, ()):
			return None
		if item.op in ("==", "array-contains") and _indexable(item.value):
			return set(await self._client.smembers(_value_key(collection, item.field, item.value)))
		if item.op == "in" and isinstance(item.value, (list, tuple, set)) and all(_indexable(v) for v in item.value):
			keys = [_value_key(collection, item.field, v) for v in item.value]
			return set(await self._client.sunion(keys)) if keys else set()
		if item.op in ("<", "<=", ">", ">=") and isinstance(item.value, str):
			low, high = _lex_bounds(item.op, item.value)
			members = await self._client.zrangebylex(_lex_key(collection, item.field), low, high)
			return {member.rsplit(_LEX_SEPARATOR, 1)[-1] for member in members}
		return None

	async def _scan(self, collection: str, filters: Sequence[Filter] = ()) -> List[DocumentSnapshot]:
		narrowed: Optional[Set[str]] = None
		for item in filters:
			candidates = await self._candidates(collection, item)
			if candidates is None:
				continue
			narrowed = candidates if narrowed is None else narrowed & candidates
			if not narrowed:
				return []
		if narrowed is None:
			narrowed = set(await self._client.smembers(_collection_key(collection)))
		ids = sorted(narrowed)
		if not ids:
			return []
		paths = [f"{collection}/{doc_id}" for doc_id in ids]
		raws = await self._client.mget([_doc_key(path) for path in paths])
		snapshots: List[DocumentSnapshot] = []
		for path, raw in zip(paths, raws):
			data, version = _decode(raw)
			if data is not None:
				snapshots.append(DocumentSnapshot(path=path, data=data, version=version))
		return snapshots

	def _queue_index_changes(self, pipe, path: str, old: Optional[Dict[str, Any]], new: Optional[Dict[str, Any]]) -> None:
		collection, doc_id = split_path(path)
		if collection not in self._indexed:
			return
		before = self._index_entries(collection, doc_id, old)
		after = self._index_entries(collection, doc_id, new)
		for kind, key, member in before - after:
			if kind == "set":
				pipe.srem(key, member)
			else:
				pipe.zrem(key, member)
		for kind, key, member in after - before:
			if kind == "set":
				pipe.sadd(key, member)
			else:
				pipe.zadd(key, {member: 0})

	async def _commit(self, ops: Sequence[WriteOp], expected: Mapping[str, int]) -> List[Change]:
		paths = list(dict.fromkeys([op.path for op in ops] + list(expected)))
		keys = [_doc_key(path) for path in paths]
		attempts = 1 if expected else _BLIND_WRITE_ATTEMPTS
		for _ in range(attempts):
			async with self._client.pipeline(transaction=True) as pipe:
				try:
					await pipe.watch(*keys)
					current: Dict[str, Optional[Dict[str, Any]]] = {}
					versions: Dict[str, int] = {}
					for path, key in zip(paths, keys):
						data, version = _decode(await pipe.get(key))
						current[path] = data
						versions[path] = version
					for path, version in expected.items():
						if versions.get(path, 0) != version:
							raise TransactionConflict(f"version_mismatch:{path}")
					touched = apply_writes(ops, current, utcnow_iso())
					pipe.multi()
					for path, data in touched.items():
						collection, doc_id = split_path(path)
						if data is None:
							pipe.delete(_doc_key(path))
							pipe.srem(_collection_key(collection), doc_id)
						else:
							envelope = {"v": versions[path] + 1, "data": data}
							pipe.set(_doc_key(path), json.dumps(envelope, separators=(",", ":")))
							pipe.sadd(_collection_key(collection), doc_id)
						self._queue_index_changes(pipe, path, current[path], data)
					await pipe.execute()
				except WatchError:
					if expected:
						raise TransactionConflict("watch_conflict") from None
					logger.debug("blind write raced, retrying", extra={"doc_paths": paths})
					continue
			return list(touched.items())
		raise TransactionConflict("write_contention")
