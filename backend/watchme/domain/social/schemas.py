"""Pydantic schemas for friend and blend requests."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from watchme.domain.social.models import PendingRequest


class SendRequestBody(BaseModel):
	to_user_id: str = Field(..., min_length=1, max_length=64)


class RequestSummary(BaseModel):
	id: str
	from_user_id: str
	from_username: str
	to_user_id: str
	to_username: str
	status: Literal["pending", "accepted", "declined", "cancelled"] = "pending"
	created_at: Optional[str] = None

	@classmethod
	def from_model(cls, request: PendingRequest, *, status: Optional[str] = None) -> "RequestSummary":
		return cls(
			id=request.id,
			from_user_id=request.from_user_id,
			from_username=request.from_username,
			to_user_id=request.to_user_id,
			to_username=request.to_username,
			status=status or request.status,  # type: ignore[arg-type]
			created_at=request.created_at,
		)


class RequestUpdatePayload(BaseModel):
	id: str
	status: Literal["accepted", "declined", "cancelled"]


class FriendUpdatePayload(BaseModel):
	user_id: str
	friend_id: str
	status: Literal["accepted", "removed"]


class BlendUpdatePayload(BaseModel):
	user_id: str
	friend_id: str
	status: Literal["active", "ended"]
