"""Recommendation errors."""

from __future__ import annotations


class RecommendationError(Exception):
	reason: str = "recommendation_error"

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class RecommendationForbidden(RecommendationError):
	reason = "not_friends"


class RecommendationNotFound(RecommendationError):
	reason = "recommendation_not_found"
