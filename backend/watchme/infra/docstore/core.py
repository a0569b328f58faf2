"""Document primitives shared by every document store backend.

Documents live at slash separated paths with an even number of segments
(``users/{uid}``, ``chats/{chat_id}/messages/{message_id}``). Writes are
expressed as operations that backends apply atomically against the current
stored value, so field transforms such as ArrayUnion never race with other
writers.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple


class DocumentStoreError(Exception):
	"""Base class for document store failures."""

	reason: str = "store_error"

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class DocumentNotFound(DocumentStoreError):
	reason = "document_not_found"


class TransactionConflict(DocumentStoreError):
	reason = "transaction_conflict"


class TransactionAborted(DocumentStoreError):
	reason = "transaction_aborted"


class InvalidPath(DocumentStoreError):
	reason = "invalid_path"


class _Sentinel:
	def __init__(self, name: str) -> None:
		self.name = name

	def __repr__(self) -> str:
		return self.name


SERVER_TIMESTAMP = _Sentinel("SERVER_TIMESTAMP")
DELETE_FIELD = _Sentinel("DELETE_FIELD")


class ArrayUnion:
	"""Append each value that is not already present in the array."""

	__slots__ = ("values",)

	def __init__(self, *values: Any) -> None:
		self.values = tuple(values)

	def __repr__(self) -> str:
		return f"ArrayUnion{self.values!r}"


class ArrayRemove:
	"""Remove every element equal to one of the values."""

	__slots__ = ("values",)

	def __init__(self, *values: Any) -> None:
		self.values = tuple(values)

	def __repr__(self) -> str:
		return f"ArrayRemove{self.values!r}"


class Increment:
	__slots__ = ("amount",)

	def __init__(self, amount: int | float = 1) -> None:
		self.amount = amount


def utcnow_iso() -> str:
	return datetime.now(timezone.utc).isoformat()


def split_path(path: str) -> Tuple[str, str]:
	"""Return ``(collection_path, doc_id)`` for a document path."""
	segments = [part for part in str(path).strip("/").split("/") if part]
	if not segments or len(segments) % 2 != 0:
		raise InvalidPath(f"invalid_document_path:{path}")
	return "/".join(segments[:-1]), segments[-1]


def normalise_collection(collection: str) -> str:
	segments = [part for part in str(collection).strip("/").split("/") if part]
	if not segments or len(segments) % 2 != 1:
		raise InvalidPath(f"invalid_collection_path:{collection}")
	return "/".join(segments)


def get_field(data: Mapping[str, Any] | None, field_path: str, default: Any = None) -> Any:
	current: Any = data
	for part in field_path.split("."):
		if not isinstance(current, Mapping) or part not in current:
			return default
		current = current[part]
	return current


@dataclass(slots=True)
class DocumentSnapshot:
	path: str
	data: Optional[Dict[str, Any]]
	version: int = 0

	@property
	def id(self) -> str:
		return split_path(self.path)[1]

	@property
	def collection(self) -> str:
		return split_path(self.path)[0]

	@property
	def exists(self) -> bool:
		return self.data is not None

	def get(self, field_path: str, default: Any = None) -> Any:
		return get_field(self.data, field_path, default)

	def to_dict(self) -> Dict[str, Any]:
		return copy.deepcopy(self.data) if self.data is not None else {}


FilterOp = Literal["==", "!=", "array-contains", "in", "<", "<=", ">", ">="]


@dataclass(frozen=True, slots=True)
class Filter:
	field: str
	op: FilterOp
	value: Any

	def matches(self, data: Mapping[str, Any]) -> bool:
		current = get_field(data, self.field, _MISSING)
		if self.op == "==":
			return current is not _MISSING and current == self.value
		if self.op == "!=":
			return current is _MISSING or current != self.value
		if self.op == "array-contains":
			return isinstance(current, list) and self.value in current
		if self.op == "in":
			return current is not _MISSING and current in self.value
		if current is _MISSING or current is None:
			return False
		if self.op == "<":
			return current < self.value
		if self.op == "<=":
			return current <= self.value
		if self.op == ">":
			return current > self.value
		if self.op == ">=":
			return current >= self.value
		raise DocumentStoreError(f"unsupported_filter_op:{self.op}")


_MISSING = object()


@dataclass(slots=True)
class WriteOp:
	kind: Literal["set", "update", "delete"]
	path: str
	data: Dict[str, Any] = field(default_factory=dict)
	merge: bool = False


def _resolve(value: Any, current: Any, now: str) -> Any:
	if value is SERVER_TIMESTAMP:
		return now
	if isinstance(value, ArrayUnion):
		base = list(current) if isinstance(current, list) else []
		for item in value.values:
			item = _resolve(item, None, now)
			if item not in base:
				base.append(copy.deepcopy(item))
		return base
	if isinstance(value, ArrayRemove):
		base = list(current) if isinstance(current, list) else []
		removed = [_resolve(item, None, now) for item in value.values]
		return [item for item in base if item not in removed]
	if isinstance(value, Increment):
		base = current if isinstance(current, (int, float)) and not isinstance(current, bool) else 0
		return base + value.amount
	if isinstance(value, Mapping):
		nested = current if isinstance(current, Mapping) else {}
		return {key: _resolve(item, nested.get(key), now) for key, item in value.items() if item is not DELETE_FIELD}
	if isinstance(value, (list, tuple)):
		return [_resolve(item, None, now) for item in value]
	return copy.deepcopy(value)


def _merge_into(target: Dict[str, Any], data: Mapping[str, Any], now: str) -> None:
	for key, value in data.items():
		if value is DELETE_FIELD:
			target.pop(key, None)
		elif isinstance(value, Mapping) and isinstance(target.get(key), dict):
			_merge_into(target[key], value, now)
		else:
			target[key] = _resolve(value, target.get(key), now)


def _update_into(target: Dict[str, Any], field_path: str, value: Any, now: str) -> None:
	parts = field_path.split(".")
	node = target
	for part in parts[:-1]:
		child = node.get(part)
		if not isinstance(child, dict):
			if value is DELETE_FIELD:
				return
			child = {}
			node[part] = child
		node = child
	leaf = parts[-1]
	if value is DELETE_FIELD:
		node.pop(leaf, None)
	else:
		node[leaf] = _resolve(value, node.get(leaf), now)


def apply_write(op: WriteOp, current: Optional[Dict[str, Any]], now: str) -> Optional[Dict[str, Any]]:
	"""Return the new document value after applying ``op`` to ``current``."""
	if op.kind == "delete":
		return None
	if op.kind == "set":
		if op.merge and current is not None:
			result = copy.deepcopy(current)
			_merge_into(result, op.data, now)
			return result
		result = {}
		_merge_into(result, op.data, now)
		return result
	if current is None:
		raise DocumentNotFound(f"document_not_found:{op.path}")
	result = copy.deepcopy(current)
	for field_path, value in op.data.items():
		_update_into(result, field_path, value, now)
	return result


def apply_writes(
	ops: Sequence[WriteOp],
	current: Mapping[str, Optional[Dict[str, Any]]],
	now: str,
) -> Dict[str, Optional[Dict[str, Any]]]:
	"""Apply ``ops`` in order and return the final value per touched path."""
	state: Dict[str, Optional[Dict[str, Any]]] = {path: current.get(path) for path in current}
	touched: Dict[str, Optional[Dict[str, Any]]] = {}
	for op in ops:
		value = apply_write(op, state.get(op.path), now)
		state[op.path] = value
		touched[op.path] = value
	return touched


def sort_snapshots(
	snapshots: Iterable[DocumentSnapshot],
	order_by: Optional[str],
	descending: bool = False,
) -> List[DocumentSnapshot]:
	items = list(snapshots)
	if not order_by:
		return sorted(items, key=lambda snap: snap.path)
	present = [snap for snap in items if snap.get(order_by) is not None]
	missing = [snap for snap in items if snap.get(order_by) is None]
	present.sort(key=lambda snap: (snap.get(order_by), snap.path), reverse=descending)
	return present + missing
