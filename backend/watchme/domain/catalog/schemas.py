"""Pydantic schemas for content-API results."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

MediaType = Literal["movie", "tv"]


class CatalogItem(BaseModel):
	id: int
	media_type: MediaType
	title: str
	overview: str = ""
	poster_path: Optional[str] = None
	poster_url: Optional[str] = None
	release_date: Optional[str] = None
	vote_average: float = 0.0
	popularity: float = 0.0
	genre_ids: List[int] = Field(default_factory=list)

	@property
	def key(self) -> tuple[int, str]:
		return (self.id, self.media_type)


class Genre(BaseModel):
	id: int
	name: str


class TitleDetails(CatalogItem):
	genres: List[Genre] = Field(default_factory=list)
	runtime: Optional[int] = None
	tagline: Optional[str] = None


class SearchPage(BaseModel):
	page: int = 1
	total_pages: int = 1
	results: List[CatalogItem] = Field(default_factory=list)


class Provider(BaseModel):
	provider_id: int
	provider_name: str
	logo_path: Optional[str] = None


class TitleProviders(BaseModel):
	region: str
	link: Optional[str] = None
	flatrate: List[Provider] = Field(default_factory=list)
	rent: List[Provider] = Field(default_factory=list)
	buy: List[Provider] = Field(default_factory=list)
