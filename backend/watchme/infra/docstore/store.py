"""Backend-independent document store API: reads, writes, batches, transactions."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

import ulid

from watchme.infra.docstore.core import (
	DocumentSnapshot,
	DocumentStoreError,
	Filter,
	TransactionAborted,
	TransactionConflict,
	WriteOp,
	normalise_collection,
	sort_snapshots,
	split_path,
)
from watchme.obs import metrics as obs_metrics
from watchme.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

Change = Tuple[str, Optional[Dict[str, Any]]]
ChangeListener = Callable[[str, Optional[Dict[str, Any]]], Awaitable[None]]


class WriteBatch:
	"""Collects writes and commits them atomically."""

	def __init__(self, store: "DocumentStore") -> None:
		self._store = store
		self._ops: List[WriteOp] = []
		self._committed = False

	def set(self, path: str, data: Mapping[str, Any], *, merge: bool = False) -> "WriteBatch":
		split_path(path)
		self._ops.append(WriteOp("set", path, dict(data), merge=merge))
		return self

	def update(self, path: str, fields: Mapping[str, Any]) -> "WriteBatch":
		split_path(path)
		self._ops.append(WriteOp("update", path, dict(fields)))
		return self

	def delete(self, path: str) -> "WriteBatch":
		split_path(path)
		self._ops.append(WriteOp("delete", path))
		return self

	@property
	def ops(self) -> Sequence[WriteOp]:
		return tuple(self._ops)

	async def commit(self) -> None:
		if self._committed:
			raise DocumentStoreError("batch_already_committed")
		self._committed = True
		if self._ops:
			await self._store.commit(self._ops)


class Transaction(WriteBatch):
	"""Optimistic transaction: reads record versions, commit verifies them.

	All reads must happen before the first write, as with the managed store
	this replaces.
	"""

	def __init__(self, store: "DocumentStore") -> None:
		super().__init__(store)
		self._reads: Dict[str, int] = {}

	async def get(self, path: str) -> DocumentSnapshot:
		if self._ops:
			raise DocumentStoreError("transaction_read_after_write")
		snapshot = await self._store.get(path)
		self._reads.setdefault(snapshot.path, snapshot.version)
		return snapshot

	async def commit(self) -> None:
		if self._committed:
			raise DocumentStoreError("transaction_already_committed")
		self._committed = True
		if self._ops:
			await self._store.commit(self._ops, expected=self._reads)


class DocumentStore:
	"""Shared behaviour for the Redis and Postgres document stores.

	Backends implement ``_read``, ``_commit`` and ``_scan``. ``_scan`` may narrow
	the candidates with the query filters it can serve from an index; anything it
	returns is filtered again here, so a superset is fine.
	"""

	def __init__(self) -> None:
		self._listeners: List[ChangeListener] = []

	# -- backend hooks -----------------------------------------------------------

	async def _read(self, path: str) -> Tuple[Optional[Dict[str, Any]], int]:
		raise NotImplementedError

	async def _commit(self, ops: Sequence[WriteOp], expected: Mapping[str, int]) -> List[Change]:
		raise NotImplementedError

	async def _scan(self, collection: str, filters: Sequence[Filter] = ()) -> List[DocumentSnapshot]:
		raise NotImplementedError

	async def close(self) -> None:
		return None

	# -- change listeners --------------------------------------------------------

	def add_listener(self, listener: ChangeListener) -> None:
		self._listeners.append(listener)

	def remove_listener(self, listener: ChangeListener) -> None:
		if listener in self._listeners:
			self._listeners.remove(listener)

	async def _notify(self, changes: Iterable[Change]) -> None:
		for path, data in changes:
			for listener in list(self._listeners):
				try:
					await listener(path, data)
				except Exception:
					logger.exception("docstore listener failed", extra={"doc_path": path})

	# -- public API --------------------------------------------------------------

	async def get(self, path: str) -> DocumentSnapshot:
		collection, doc_id = split_path(path)
		normalised = f"{collection}/{doc_id}"
		data, version = await self._read(normalised)
		return DocumentSnapshot(path=normalised, data=data, version=version)

	async def get_many(self, paths: Iterable[str]) -> List[DocumentSnapshot]:
		return list(await asyncio.gather(*(self.get(path) for path in paths)))

	async def commit(self, ops: Sequence[WriteOp], *, expected: Optional[Mapping[str, int]] = None) -> None:
		changes = await self._commit(list(ops), dict(expected or {}))
		await self._notify(changes)

	async def set(self, path: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
		await self.batch().set(path, data, merge=merge).commit()

	async def update(self, path: str, fields: Mapping[str, Any]) -> None:
		await self.batch().update(path, fields).commit()

	async def delete(self, path: str) -> None:
		await self.batch().delete(path).commit()

	async def add(self, collection: str, data: Mapping[str, Any]) -> str:
		"""Create a document with a generated id and return the id."""
		doc_id = ulid.new().str
		await self.set(f"{normalise_collection(collection)}/{doc_id}", data)
		return doc_id

	async def query(
		self,
		collection: str,
		filters: Sequence[Filter] = (),
		*,
		order_by: Optional[str] = None,
		descending: bool = False,
		limit: Optional[int] = None,
	) -> List[DocumentSnapshot]:
		snapshots = await self._scan(normalise_collection(collection), filters)
		matched = [snap for snap in snapshots if snap.data is not None and all(f.matches(snap.data) for f in filters)]
		ordered = sort_snapshots(matched, order_by, descending)
		if limit is not None:
			ordered = ordered[: max(0, int(limit))]
		return ordered

	def batch(self) -> WriteBatch:
		return WriteBatch(self)

	def transaction(self) -> Transaction:
		return Transaction(self)

	async def run_transaction(
		self,
		fn: Callable[[Transaction], Awaitable[T]],
		*,
		max_attempts: Optional[int] = None,
	) -> T:
		"""Run ``fn`` inside an optimistic transaction, re-running it on conflict."""
		attempts = max(1, int(max_attempts or settings.transaction_max_attempts))
		for attempt in range(1, attempts + 1):
			tx = self.transaction()
			result = await fn(tx)
			try:
				await tx.commit()
			except TransactionConflict:
				obs_metrics.inc_transaction_retry()
				logger.debug("transaction conflict", extra={"attempt": attempt})
				await asyncio.sleep(random.uniform(0, 0.005 * attempt))
				continue
			return result
		raise TransactionAborted("too_many_conflicts")
