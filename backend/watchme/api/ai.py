"""Direct access to the three prompt flows.

Each call counts against the caller's per-minute AI quota. Failures are
mapped by the global AIError handler.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from watchme.domain.ai import service
from watchme.domain.ai.schemas import (
	BlendRecommendationsInput,
	MovieSummaryInput,
	MovieSummaryOutput,
	RecommendedTitles,
	WatchlistRecommendationsInput,
)
from watchme.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/summary", response_model=MovieSummaryOutput)
async def movie_summary(
	payload: MovieSummaryInput,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> MovieSummaryOutput:
	await service.enforce_quota(auth_user.id)
	return await service.movie_summary(payload)


@router.post("/watchlist-recommendations", response_model=RecommendedTitles)
async def watchlist_recommendations(
	payload: WatchlistRecommendationsInput,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> RecommendedTitles:
	await service.enforce_quota(auth_user.id)
	return await service.watchlist_recommendations(payload)


@router.post("/blend-recommendations", response_model=RecommendedTitles)
async def blend_recommendations(
	payload: BlendRecommendationsInput,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> RecommendedTitles:
	await service.enforce_quota(auth_user.id)
	return await service.blend_recommendations(payload)
