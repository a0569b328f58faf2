"""Chat errors."""

from __future__ import annotations


class ChatError(Exception):
	reason: str = "chat_error"

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class ChatForbidden(ChatError):
	reason = "not_friends"


class ChatNotFound(ChatError):
	reason = "chat_not_found"


class InvalidMessage(ChatError):
	reason = "invalid_message"
