"""Realtime pushes for chat messages and read receipts."""

from __future__ import annotations

from watchme.domain import live


async def emit_message(user_id: str, payload: dict) -> None:
	await live.emit_to_user(user_id, "chat:message", payload)


async def emit_read(user_id: str, payload: dict) -> None:
	await live.emit_to_user(user_id, "chat:read", payload)
