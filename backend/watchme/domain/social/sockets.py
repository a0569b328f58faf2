"""Realtime pushes for friend and blend requests."""

from __future__ import annotations

from watchme.domain import live


async def emit_friend_request_new(user_id: str, payload: dict) -> None:
	await live.emit_to_user(user_id, "friend_request:new", payload)


async def emit_friend_request_update(user_id: str, payload: dict) -> None:
	await live.emit_to_user(user_id, "friend_request:update", payload)


async def emit_friend_update(user_id: str, payload: dict) -> None:
	await live.emit_to_user(user_id, "friend:update", payload)


async def emit_blend_request_new(user_id: str, payload: dict) -> None:
	await live.emit_to_user(user_id, "blend_request:new", payload)


async def emit_blend_update(user_id: str, payload: dict) -> None:
	await live.emit_to_user(user_id, "blend:update", payload)


async def emit_blend_request_update(user_id: str, payload: dict) -> None:
	await live.emit_to_user(user_id, "blend_request:update", payload)
