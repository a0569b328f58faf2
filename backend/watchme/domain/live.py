"""Socket.IO namespace pushing realtime updates to each signed-in user.

Clients join ``user:{uid}`` on connect. Feature modules emit through
``emit_to_user``; document writes on ``users/{uid}`` are pushed as
``profile:update`` so clients can drop their polling loops.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import socketio

from watchme.infra.auth import AuthenticatedUser, user_from_socket_auth
from watchme.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

_namespace: "LiveNamespace" | None = None


def _headers(environ: dict) -> Dict[str, str]:
	scope = environ.get("asgi.scope", environ)
	headers: Dict[str, str] = {}
	for key, value in scope.get("headers", []) or []:
		if isinstance(key, bytes):
			key = key.decode()
		if isinstance(value, bytes):
			value = value.decode()
		headers[str(key).lower()] = str(value)
	return headers


class LiveNamespace(socketio.AsyncNamespace):
	"""Namespace that keeps each client in their personal room."""

	def __init__(self) -> None:
		super().__init__("/live")
		self._sessions: dict[str, AuthenticatedUser] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		user = user_from_socket_auth(auth, _headers(environ))
		if user is None:
			raise ConnectionRefusedError("unauthenticated")
		obs_metrics.socket_connected(self.namespace)
		self._sessions[sid] = user
		await self.enter_room(sid, self.user_room(user.id))
		await self.emit("live:ack", {"ok": True, "user_id": user.id}, room=sid)

	async def on_disconnect(self, sid: str, *args: Any) -> None:
		user = self._sessions.pop(sid, None)
		if user:
			obs_metrics.socket_disconnected(self.namespace)
			await self.leave_room(sid, self.user_room(user.id))

	@staticmethod
	def user_room(user_id: str) -> str:
		return f"user:{user_id}"


def set_namespace(ns: Optional[LiveNamespace]) -> None:
	global _namespace
	_namespace = ns


async def emit_to_user(user_id: str, event: str, payload: dict) -> None:
	if _namespace is None:
		return
	obs_metrics.socket_event(_namespace.namespace, event)
	try:
		await _namespace.emit(event, payload, room=LiveNamespace.user_room(user_id))
	except Exception:
		logger.exception("realtime push failed", extra={"event": event, "user_id": user_id})


async def push_document_change(path: str, data: Optional[Dict[str, Any]]) -> None:
	"""Document store listener: forward user document writes to their owner."""
	segments = path.split("/")
	if len(segments) != 2 or segments[0] != "users":
		return
	await emit_to_user(segments[1], "profile:update", {"uid": segments[1], "profile": data})
