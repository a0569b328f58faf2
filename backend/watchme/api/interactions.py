"""Like/dislike, watched and rating endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from watchme.domain.identity.schemas import MediaType, MovieRecord
from watchme.domain.interactions import service
from watchme.domain.interactions.schemas import (
	InteractionsOut,
	RatingRequest,
	RatingResponse,
	ReactionResponse,
	TitleState,
	WatchedResponse,
)
from watchme.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/interactions", tags=["interactions"])


@router.get("/me", response_model=InteractionsOut)
async def my_interactions(auth_user: AuthenticatedUser = Depends(get_current_user)) -> InteractionsOut:
	return await service.get_interactions(auth_user.id)


@router.get("/{media_type}/{movie_id}", response_model=TitleState)
async def title_state(
	media_type: MediaType,
	movie_id: int,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> TitleState:
	return await service.get_title_state(auth_user, movie_id, media_type)


@router.post("/like", response_model=ReactionResponse)
async def like(payload: MovieRecord, auth_user: AuthenticatedUser = Depends(get_current_user)) -> ReactionResponse:
	reaction = await service.react(auth_user, payload.to_model(), "like")
	return ReactionResponse(movie_id=payload.movie_id, media_type=payload.media_type, reaction=reaction)


@router.post("/dislike", response_model=ReactionResponse)
async def dislike(payload: MovieRecord, auth_user: AuthenticatedUser = Depends(get_current_user)) -> ReactionResponse:
	reaction = await service.react(auth_user, payload.to_model(), "dislike")
	return ReactionResponse(movie_id=payload.movie_id, media_type=payload.media_type, reaction=reaction)


@router.delete("/reaction/{media_type}/{movie_id}", status_code=status.HTTP_204_NO_CONTENT)
async def clear_reaction(
	media_type: MediaType,
	movie_id: int,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	await service.clear_reaction(auth_user, movie_id, media_type)


@router.post("/watched", response_model=WatchedResponse)
async def toggle_watched(payload: MovieRecord, auth_user: AuthenticatedUser = Depends(get_current_user)) -> WatchedResponse:
	watched = await service.toggle_watched(auth_user, payload.to_model())
	return WatchedResponse(movie_id=payload.movie_id, media_type=payload.media_type, watched=watched)


@router.put("/ratings", response_model=RatingResponse)
async def rate(payload: RatingRequest, auth_user: AuthenticatedUser = Depends(get_current_user)) -> RatingResponse:
	rated = await service.rate(auth_user, payload.movie_id, payload.media_type, payload.rating)
	return RatingResponse(movie_id=rated.movie_id, media_type=payload.media_type, rating=rated.rating)


@router.delete("/ratings/{media_type}/{movie_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_rating(
	media_type: MediaType,
	movie_id: int,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	await service.remove_rating(auth_user, movie_id, media_type)
