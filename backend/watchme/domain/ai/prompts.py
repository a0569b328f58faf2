"""Prompt templates for the generative model."""

from __future__ import annotations

from typing import Iterable

WATCHLIST_COUNT = 15
BLEND_COUNT = 10

MOVIE_SUMMARY = (
	'You are a movie recommendation expert. A user is looking for where to watch the movie "{title}". '
	"Provide a short summary of why it's recommended and where they can watch it. "
	"Be concise. Focus on streaming services."
)

WATCHLIST_RECOMMENDATIONS = """You are a movie recommendation expert.

You will be given a list of movies from a user's watchlist. Your task is to analyze this list and recommend {count} other movies or TV shows that they would likely enjoy.

Do not recommend movies that are already in their list. Provide a diverse list of recommendations.

Watchlist movies:
{titles}

Based on this list, suggest {count} new titles.
"""

BLEND_RECOMMENDATIONS = """You are a movie recommendation expert who helps two friends find something to watch together.

You will be given two lists of movies that each person likes. Your task is to analyze these lists and recommend {count} other movies or TV shows that both of them would likely enjoy.

Do not recommend movies that are already in their lists. Provide a diverse list of recommendations, including both popular and less-known titles if possible.

User 1's liked movies:
{user1_titles}

User 2's liked movies:
{user2_titles}

Based on these combined tastes, suggest {count} new titles.
"""

SUMMARY_SCHEMA = {
	"type": "OBJECT",
	"properties": {"summary": {"type": "STRING"}},
	"required": ["summary"],
}

TITLES_SCHEMA = {
	"type": "OBJECT",
	"properties": {"recommendations": {"type": "ARRAY", "items": {"type": "STRING"}}},
	"required": ["recommendations"],
}


def bullet_list(titles: Iterable[str]) -> str:
	return "\n".join(f"- {title}" for title in titles)


def movie_summary(title: str) -> str:
	return MOVIE_SUMMARY.format(title=title)


def watchlist_recommendations(titles: Iterable[str]) -> str:
	return WATCHLIST_RECOMMENDATIONS.format(titles=bullet_list(titles), count=WATCHLIST_COUNT)


def blend_recommendations(user1_titles: Iterable[str], user2_titles: Iterable[str]) -> str:
	return BLEND_RECOMMENDATIONS.format(
		user1_titles=bullet_list(user1_titles),
		user2_titles=bullet_list(user2_titles),
		count=BLEND_COUNT,
	)
