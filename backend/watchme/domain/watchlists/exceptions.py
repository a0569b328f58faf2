"""Watchlist errors."""

from __future__ import annotations


class WatchlistError(Exception):
	reason: str = "watchlist_error"

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class WatchlistNotFound(WatchlistError):
	reason = "watchlist_not_found"


class AlreadyInList(WatchlistError):
	reason = "already_in_list"


class InvalidName(WatchlistError):
	reason = "invalid_name"
