"""Blend request and result bodies."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from watchme.domain.catalog.schemas import CatalogItem
from watchme.domain.identity.schemas import PublicProfile


class BlendResult(BaseModel):
	friend: PublicProfile
	suggested_titles: List[str] = Field(default_factory=list)
	results: List[CatalogItem] = Field(default_factory=list)
