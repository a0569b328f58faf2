"""Prompt flows: where-to-watch summary, watchlist and blend recommendations."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from watchme.domain.ai import prompts
from watchme.domain.ai.client import GeminiClient
from watchme.domain.ai.exceptions import AIError, AIRateLimited, AIResponseInvalid
from watchme.domain.ai.schemas import (
	BlendRecommendationsInput,
	MovieSummaryInput,
	MovieSummaryOutput,
	RecommendedTitles,
	WatchlistRecommendationsInput,
)
from watchme.infra import rate_limit
from watchme.obs import metrics as obs_metrics
from watchme.settings import settings

logger = logging.getLogger(__name__)

_client: Optional[GeminiClient] = None

ModelT = TypeVar("ModelT", bound=BaseModel)


def get_client() -> GeminiClient:
	global _client
	if _client is None:
		_client = GeminiClient(http=httpx.AsyncClient(timeout=settings.gemini_timeout_seconds))
	return _client


def set_client(client: Optional[GeminiClient]) -> None:
	global _client
	_client = client


async def close_client() -> None:
	global _client
	if _client is not None:
		await _client.http.aclose()
		_client = None


async def enforce_quota(user_id: str) -> None:
	if not await rate_limit.allow("ai", user_id, limit=settings.ai_requests_per_minute, window_seconds=60):
		raise AIRateLimited()


async def _run(flow: str, prompt: str, schema: Dict[str, Any], output: Type[ModelT]) -> ModelT:
	started = time.perf_counter()
	try:
		raw = await get_client().generate_json(prompt, schema)
		result = output.model_validate(raw)
	except ValidationError as exc:
		obs_metrics.observe_ai_call(flow, "invalid", time.perf_counter() - started)
		raise AIResponseInvalid() from exc
	except AIError as exc:
		obs_metrics.observe_ai_call(flow, exc.reason, time.perf_counter() - started)
		raise
	obs_metrics.observe_ai_call(flow, "ok", time.perf_counter() - started)
	return result


async def movie_summary(payload: MovieSummaryInput) -> MovieSummaryOutput:
	return await _run("movie_summary", prompts.movie_summary(payload.title), prompts.SUMMARY_SCHEMA, MovieSummaryOutput)


async def watchlist_recommendations(payload: WatchlistRecommendationsInput) -> RecommendedTitles:
	if not payload.titles:
		obs_metrics.observe_ai_call("watchlist", "skipped")
		return RecommendedTitles()
	return await _run(
		"watchlist",
		prompts.watchlist_recommendations(payload.titles),
		prompts.TITLES_SCHEMA,
		RecommendedTitles,
	)


async def blend_recommendations(payload: BlendRecommendationsInput) -> RecommendedTitles:
	"""Joint picks for two users; either list empty means no model call."""
	if not payload.user1_titles or not payload.user2_titles:
		obs_metrics.observe_ai_call("blend", "skipped")
		return RecommendedTitles()
	return await _run(
		"blend",
		prompts.blend_recommendations(payload.user1_titles, payload.user2_titles),
		prompts.TITLES_SCHEMA,
		RecommendedTitles,
	)
