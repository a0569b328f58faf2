"""Blend errors."""

from __future__ import annotations


class BlendError(Exception):
	reason: str = "blend_error"

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class FriendNotFound(BlendError):
	reason = "friend_not_found"


class BlendForbidden(BlendError):
	reason = "not_friends"
