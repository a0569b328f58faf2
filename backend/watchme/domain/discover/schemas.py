"""Schemas for the swipe deck and the for-you feed."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from watchme.domain.catalog.schemas import CatalogItem
from watchme.domain.identity.schemas import MediaType
from watchme.domain.interactions.schemas import Reaction

SwipeDirection = Literal["left", "right"]


class DeckResponse(BaseModel):
	cards: List[CatalogItem] = Field(default_factory=list)
	remaining: int = 0


class SwipeRequest(BaseModel):
	movie_id: int = Field(..., ge=1)
	media_type: MediaType
	direction: SwipeDirection
	title: str = Field(default="", max_length=300)
	poster_path: Optional[str] = Field(default=None, max_length=300)


class SwipeResponse(BaseModel):
	movie_id: int
	media_type: MediaType
	reaction: Reaction
	remaining: int
	refilled: bool = False


class ForYouFilters(BaseModel):
	genres: List[int] = Field(default_factory=list)
	providers: List[int] = Field(default_factory=list)
	year_from: Optional[int] = Field(default=1980, ge=1870, le=2100)
	year_to: Optional[int] = Field(default=None, ge=1870, le=2100)
	hide_watched: bool = True

	@model_validator(mode="after")
	def _check_years(self) -> "ForYouFilters":
		if self.year_from and self.year_to and self.year_from > self.year_to:
			raise ValueError("year_from must not be after year_to")
		return self


class ForYouResponse(BaseModel):
	genres: List[int] = Field(default_factory=list)
	results: List[CatalogItem] = Field(default_factory=list)


class SeedRecommendations(BaseModel):
	seed_title: Optional[str] = None
	results: List[CatalogItem] = Field(default_factory=list)
