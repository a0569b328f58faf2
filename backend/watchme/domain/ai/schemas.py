"""Inputs and outputs of the three prompt flows."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, field_validator

WATCHLIST_TITLES_MAX = 200
BLEND_TITLES_MAX = 400


def clean_titles(values: List[str]) -> List[str]:
	"""Strip blanks and duplicates, keeping first-seen order."""
	cleaned: List[str] = []
	for value in values:
		text = str(value).strip()
		if text and text not in cleaned:
			cleaned.append(text)
	return cleaned


def most_recent_titles(values: List[str], limit: int) -> List[str]:
	"""Cleaned titles trimmed to the last ``limit``; arrays are kept oldest first."""
	return clean_titles(values)[-limit:]


class MovieSummaryInput(BaseModel):
	title: str = Field(..., min_length=1, max_length=300)


class MovieSummaryOutput(BaseModel):
	summary: str = Field(..., min_length=1)


class WatchlistRecommendationsInput(BaseModel):
	titles: List[str] = Field(default_factory=list, max_length=WATCHLIST_TITLES_MAX)

	@field_validator("titles")
	@classmethod
	def _clean(cls, value: List[str]) -> List[str]:
		return clean_titles(value)


class BlendRecommendationsInput(BaseModel):
	user1_titles: List[str] = Field(default_factory=list, max_length=BLEND_TITLES_MAX)
	user2_titles: List[str] = Field(default_factory=list, max_length=BLEND_TITLES_MAX)

	@field_validator("user1_titles", "user2_titles")
	@classmethod
	def _clean(cls, value: List[str]) -> List[str]:
		return clean_titles(value)


class RecommendedTitles(BaseModel):
	recommendations: List[str] = Field(default_factory=list)

	@field_validator("recommendations")
	@classmethod
	def _clean(cls, value: List[str]) -> List[str]:
		return clean_titles(value)
