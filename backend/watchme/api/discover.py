"""Swipe deck, for-you feed and seed recommendations."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError

from watchme.domain.discover import service
from watchme.domain.discover.schemas import (
	DeckResponse,
	ForYouFilters,
	ForYouResponse,
	SeedRecommendations,
	SwipeRequest,
	SwipeResponse,
)
from watchme.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/discover", tags=["discover"])


@router.get("/deck", response_model=DeckResponse)
async def next_cards(
	count: int = Query(default=10, ge=1, le=50),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> DeckResponse:
	return await service.next_cards(auth_user, count)


@router.delete("/deck", status_code=status.HTTP_204_NO_CONTENT)
async def reset_deck(auth_user: AuthenticatedUser = Depends(get_current_user)) -> None:
	await service.reset_deck(auth_user)


@router.post("/swipe", response_model=SwipeResponse)
async def swipe(payload: SwipeRequest, auth_user: AuthenticatedUser = Depends(get_current_user)) -> SwipeResponse:
	return await service.swipe(auth_user, payload)


@router.get("/for-you", response_model=ForYouResponse)
async def for_you(
	genres: List[int] = Query(default=[]),
	providers: List[int] = Query(default=[]),
	year_from: Optional[int] = Query(default=1980, ge=1870, le=2100),
	year_to: Optional[int] = Query(default=None, ge=1870, le=2100),
	hide_watched: bool = Query(default=True),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> ForYouResponse:
	try:
		filters = ForYouFilters(
			genres=genres,
			providers=providers,
			year_from=year_from,
			year_to=year_to,
			hide_watched=hide_watched,
		)
	except ValidationError:
		raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail="invalid_year_range") from None
	return await service.for_you(auth_user, filters)


@router.get("/seed", response_model=SeedRecommendations)
async def seed_recommendations(auth_user: AuthenticatedUser = Depends(get_current_user)) -> SeedRecommendations:
	return await service.seed_recommendations(auth_user)
