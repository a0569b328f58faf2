"""Chat and message documents."""

from __future__ import annotations

from typing import Iterable, Tuple

MESSAGE_MAX_LENGTH = 2000
RECOMMENDATION_PREVIEW = "Sent a movie recommendation."


def chat_id(user_a: str, user_b: str) -> str:
	"""Deterministic id for the conversation between two users."""
	return "_".join(sorted((str(user_a), str(user_b))))


def participants(chat: str) -> Tuple[str, ...]:
	return tuple(chat.split("_"))


def chat_path(cid: str) -> str:
	return f"chats/{cid}"


def messages_collection(cid: str) -> str:
	return f"chats/{cid}/messages"


def message_path(cid: str, message_id: str) -> str:
	return f"{messages_collection(cid)}/{message_id}"


def is_unread(last_message: dict | None, user_id: str) -> bool:
	if not last_message:
		return False
	read_by: Iterable[str] = last_message.get("read_by") or []
	return last_message.get("sender_id") != user_id and user_id not in read_by
