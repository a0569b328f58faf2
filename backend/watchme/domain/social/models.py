"""Request documents exchanged between users."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from watchme.infra.docstore import SERVER_TIMESTAMP, DocumentSnapshot

FRIEND_REQUESTS = "friendRequests"
BLEND_REQUESTS = "blendRequests"
REQUEST_PER_MINUTE = 15


def request_id(from_user_id: str, to_user_id: str) -> str:
	"""One pending request per direction: the id is derived from the pair."""
	return f"{from_user_id}_{to_user_id}"


def friend_request_path(rid: str) -> str:
	return f"{FRIEND_REQUESTS}/{rid}"


def blend_request_path(rid: str) -> str:
	return f"{BLEND_REQUESTS}/{rid}"


@dataclass(slots=True)
class PendingRequest:
	"""A friend or blend request awaiting the recipient's answer."""

	id: str
	from_user_id: str
	from_username: str
	to_user_id: str
	to_username: str
	status: str = "pending"
	created_at: Optional[str] = None

	@classmethod
	def from_snapshot(cls, snapshot: DocumentSnapshot) -> "PendingRequest":
		data: Mapping[str, Any] = snapshot.data or {}
		return cls(
			id=snapshot.id,
			from_user_id=str(data.get("from_user_id") or ""),
			from_username=str(data.get("from_username") or ""),
			to_user_id=str(data.get("to_user_id") or ""),
			to_username=str(data.get("to_username") or ""),
			status=str(data.get("status") or "pending"),
			created_at=data.get("created_at"),
		)

	def to_doc(self) -> Dict[str, Any]:
		return {
			"from_user_id": self.from_user_id,
			"from_username": self.from_username,
			"to_user_id": self.to_user_id,
			"to_username": self.to_username,
			"status": self.status,
			"created_at": self.created_at or SERVER_TIMESTAMP,
		}
