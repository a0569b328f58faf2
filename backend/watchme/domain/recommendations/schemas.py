"""Schemas for friend-to-friend title recommendations."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, Field

from watchme.domain.identity.schemas import MediaType, PublicProfile


class SendRecommendationRequest(BaseModel):
	to_user_id: str = Field(..., min_length=1, max_length=64)
	movie_id: int = Field(..., ge=1)
	media_type: MediaType
	movie_title: str = Field(..., min_length=1, max_length=300)
	movie_poster: Optional[str] = Field(default=None, max_length=300)
	share_in_chat: bool = True


class RecommendationOut(BaseModel):
	id: str
	from_user_id: str
	from_username: str
	to_user_id: str
	movie_id: int
	movie_title: str
	movie_poster: Optional[str] = None
	media_type: MediaType
	created_at: Optional[str] = None

	@classmethod
	def from_doc(cls, rec_id: str, data: Mapping[str, Any]) -> "RecommendationOut":
		return cls(
			id=rec_id,
			from_user_id=str(data.get("from_user_id") or ""),
			from_username=str(data.get("from_username") or ""),
			to_user_id=str(data.get("to_user_id") or ""),
			movie_id=int(data.get("movie_id") or 0),
			movie_title=str(data.get("movie_title") or ""),
			movie_poster=data.get("movie_poster"),
			media_type=data.get("media_type") or "movie",
			created_at=data.get("created_at"),
		)


class RecommendationGroup(BaseModel):
	sender: PublicProfile
	latest_at: Optional[str] = None
	recommendations: List[RecommendationOut] = Field(default_factory=list)
