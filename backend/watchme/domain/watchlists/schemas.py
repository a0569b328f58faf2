"""Request and response bodies for watchlist endpoints."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from watchme.domain.catalog.schemas import CatalogItem
from watchme.domain.identity.schemas import MovieRecord, WatchlistOut


class WatchlistNameRequest(BaseModel):
	name: str = Field(..., max_length=200)


class CreateAndAddRequest(BaseModel):
	name: str = Field(..., max_length=200)
	movie: MovieRecord


class WatchlistRecommendations(BaseModel):
	watchlist: WatchlistOut
	results: List[CatalogItem] = Field(default_factory=list)
