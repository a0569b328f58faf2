"""Schemas for like/dislike, watched and rating endpoints."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from watchme.domain.identity.schemas import MediaType, MovieRecord, RatedMovieOut

Reaction = Literal["liked", "disliked", "none"]


class ReactionResponse(BaseModel):
	movie_id: int
	media_type: MediaType
	reaction: Reaction


class WatchedResponse(BaseModel):
	movie_id: int
	media_type: MediaType
	watched: bool


class RatingRequest(BaseModel):
	movie_id: int = Field(..., ge=1)
	media_type: MediaType
	rating: int = Field(..., ge=1, le=5)


class RatingResponse(BaseModel):
	movie_id: int
	media_type: MediaType
	rating: Optional[int] = None


class TitleState(BaseModel):
	movie_id: int
	media_type: MediaType
	reaction: Reaction = "none"
	watched: bool = False
	rating: Optional[int] = None


class InteractionsOut(BaseModel):
	liked: List[MovieRecord] = Field(default_factory=list)
	disliked: List[MovieRecord] = Field(default_factory=list)
	watched: List[MovieRecord] = Field(default_factory=list)
	rated: List[RatedMovieOut] = Field(default_factory=list)
