"""Postgres-backed document store using a single JSONB table."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import asyncpg

from watchme.infra import postgres
from watchme.infra.docstore.core import (
	DocumentSnapshot,
	Filter,
	TransactionConflict,
	WriteOp,
	apply_writes,
	split_path,
	utcnow_iso,
)
from watchme.infra.docstore.store import Change, DocumentStore

_BLIND_WRITE_ATTEMPTS = 10
_RANGE_OPS = ("<", "<=", ">", ">=")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS documents (
	path TEXT PRIMARY KEY,
	collection TEXT NOT NULL,
	doc_id TEXT NOT NULL,
	data JSONB NOT NULL,
	version BIGINT NOT NULL DEFAULT 1,
	updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS documents_collection_idx ON documents (collection);
CREATE INDEX IF NOT EXISTS documents_data_idx ON documents USING GIN (data jsonb_path_ops);
"""


def _loads(value: Any) -> Optional[Dict[str, Any]]:
	if value is None:
		return None
	if isinstance(value, (bytes, str)):
		return json.loads(value)
	return dict(value)


def _affected(status: str) -> int:
	try:
		return int(status.rsplit(" ", 1)[-1])
	except (ValueError, IndexError):
		return 0


def _pushable(value: Any) -> bool:
	return isinstance(value, str) or (isinstance(value, int) and not isinstance(value, bool))


def _nest(field_path: str, value: Any) -> Dict[str, Any]:
	for part in reversed(field_path.split(".")):
		value = {part: value}
	return value


def _scan_sql(collection: str, filters: Sequence[Filter]) -> Tuple[str, List[Any]]:
	"""SELECT for a collection with the filters SQL can serve pushed into WHERE.

	Equality and array membership become JSONB containment (GIN-indexed);
	string ranges compare the extracted text under the C collation. Other
	filters are left to the caller.
	"""
	clauses = ["collection = $1"]
	args: List[Any] = [collection]
	for item in filters:
		if item.op in ("==", "array-contains") and _pushable(item.value):
			value = [item.value] if item.op == "array-contains" else item.value
			args.append(json.dumps(_nest(item.field, value), separators=(",", ":")))
			clauses.append(f"data @> ${len(args)}::jsonb")
		elif item.op in _RANGE_OPS and isinstance(item.value, str):
			args.append(item.field.split("."))
			args.append(item.value)
			clauses.append(f'(data #>> ${len(args) - 1}::text[]) COLLATE "C" {item.op} ${len(args)}')
	return f"SELECT path, data, version FROM documents WHERE {' AND '.join(clauses)} ORDER BY path", args


class PostgresDocumentStore(DocumentStore):
	async def ensure_schema(self) -> None:
		pool = await postgres.get_pool()
		async with pool.acquire() as conn:
			await conn.execute(SCHEMA_SQL)

	async def _read(self, path: str) -> Tuple[Optional[Dict[str, Any]], int]:
		pool = await postgres.get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow("SELECT data, version FROM documents WHERE path = $1", path)
		if not row:
			return None, 0
		return _loads(row["data"]), int(row["version"])

	async def _scan(self, collection: str, filters: Sequence[Filter] = ()) -> List[DocumentSnapshot]:
		sql, args = _scan_sql(collection, filters)
		pool = await postgres.get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(sql, *args)
		return [DocumentSnapshot(path=row["path"], data=_loads(row["data"]), version=int(row["version"])) for row in rows]

	async def _commit(self, ops: Sequence[WriteOp], expected: Mapping[str, int]) -> List[Change]:
		attempts = 1 if expected else _BLIND_WRITE_ATTEMPTS
		for _ in range(attempts):
			try:
				return await self._commit_once(ops, expected)
			except TransactionConflict:
				if expected:
					raise
		raise TransactionConflict("write_contention")

	async def _commit_once(self, ops: Sequence[WriteOp], expected: Mapping[str, int]) -> List[Change]:
		paths = list(dict.fromkeys([op.path for op in ops] + list(expected)))
		pool = await postgres.get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				rows = await conn.fetch(
					"SELECT path, data, version FROM documents WHERE path = ANY($1::text[]) FOR UPDATE",
					paths,
				)
				current: Dict[str, Optional[Dict[str, Any]]] = {path: None for path in paths}
				versions: Dict[str, int] = {path: 0 for path in paths}
				for row in rows:
					current[row["path"]] = _loads(row["data"])
					versions[row["path"]] = int(row["version"])
				for path, version in expected.items():
					if versions.get(path, 0) != version:
						raise TransactionConflict(f"version_mismatch:{path}")
				touched = apply_writes(ops, current, utcnow_iso())
				for path, data in touched.items():
					await self._write_row(conn, path, data, versions[path])
		return list(touched.items())

	@staticmethod
	async def _write_row(conn: asyncpg.Connection, path: str, data: Optional[Dict[str, Any]], version: int) -> None:
		collection, doc_id = split_path(path)
		if data is None:
			if not version:
				return
			status = await conn.execute("DELETE FROM documents WHERE path = $1 AND version = $2", path, version)
		elif version == 0:
			# A concurrent insert of the same path must surface as a conflict.
			payload = json.dumps(data, separators=(",", ":"))
			status = await conn.execute(
				"""
				INSERT INTO documents (path, collection, doc_id, data, version)
				VALUES ($1, $2, $3, $4::jsonb, 1)
				ON CONFLICT (path) DO NOTHING
				""",
				path,
				collection,
				doc_id,
				payload,
			)
		else:
			payload = json.dumps(data, separators=(",", ":"))
			status = await conn.execute(
				"""
				UPDATE documents
				SET data = $2::jsonb, version = version + 1, updated_at = NOW()
				WHERE path = $1 AND version = $3
				""",
				path,
				payload,
				version,
			)
		if _affected(status) != 1:
			raise TransactionConflict(f"write_conflict:{path}")
