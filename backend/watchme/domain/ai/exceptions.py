"""Errors raised by the generative-model flows."""

from __future__ import annotations

from watchme.infra.rate_limit import RateLimitExceeded


class AIError(Exception):
	reason: str = "ai_error"
	status_code: int = 500

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class AIUnavailable(AIError):
	reason = "ai_unavailable"
	status_code = 503


class AIResponseInvalid(AIError):
	reason = "ai_response_invalid"
	status_code = 502


class AIRateLimited(RateLimitExceeded):
	def __init__(self, reason: str = "ai_rate_limited") -> None:
		super().__init__(reason)
