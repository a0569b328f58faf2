"""Watchlist endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from watchme.domain.identity.schemas import MediaType, MovieRecord, WatchlistOut
from watchme.domain.watchlists import service
from watchme.domain.watchlists.exceptions import AlreadyInList, InvalidName, WatchlistError, WatchlistNotFound
from watchme.domain.watchlists.schemas import CreateAndAddRequest, WatchlistNameRequest, WatchlistRecommendations
from watchme.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/watchlists", tags=["watchlists"])


def _map_error(exc: WatchlistError) -> HTTPException:
	if isinstance(exc, WatchlistNotFound):
		return HTTPException(status.HTTP_404_NOT_FOUND, detail=exc.reason)
	if isinstance(exc, AlreadyInList):
		return HTTPException(status.HTTP_409_CONFLICT, detail=exc.reason)
	if isinstance(exc, InvalidName):
		return HTTPException(status.HTTP_400_BAD_REQUEST, detail=exc.reason)
	return HTTPException(status.HTTP_400_BAD_REQUEST, detail=exc.reason)


@router.get("", response_model=List[WatchlistOut])
async def list_watchlists(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[WatchlistOut]:
	return await service.list_watchlists(auth_user)


@router.post("", response_model=WatchlistOut, status_code=status.HTTP_201_CREATED)
async def create_watchlist(
	payload: WatchlistNameRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> WatchlistOut:
	try:
		return await service.create(auth_user, payload.name)
	except WatchlistError as exc:
		raise _map_error(exc) from None


@router.post("/create-and-add", response_model=WatchlistOut, status_code=status.HTTP_201_CREATED)
async def create_and_add(
	payload: CreateAndAddRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> WatchlistOut:
	try:
		return await service.create_and_add(auth_user, payload.name, payload.movie.to_model())
	except WatchlistError as exc:
		raise _map_error(exc) from None


@router.get("/{watchlist_id}", response_model=WatchlistOut)
async def get_watchlist(
	watchlist_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> WatchlistOut:
	try:
		return await service.get_watchlist(auth_user, watchlist_id)
	except WatchlistError as exc:
		raise _map_error(exc) from None


@router.patch("/{watchlist_id}", response_model=WatchlistOut)
async def rename_watchlist(
	watchlist_id: str,
	payload: WatchlistNameRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> WatchlistOut:
	try:
		return await service.rename(auth_user, watchlist_id, payload.name)
	except WatchlistError as exc:
		raise _map_error(exc) from None


@router.delete("/{watchlist_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_watchlist(
	watchlist_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await service.delete(auth_user, watchlist_id)
	except WatchlistError as exc:
		raise _map_error(exc) from None


@router.post("/{watchlist_id}/items", response_model=WatchlistOut)
async def add_item(
	watchlist_id: str,
	payload: MovieRecord,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> WatchlistOut:
	try:
		return await service.add_item(auth_user, watchlist_id, payload.to_model())
	except WatchlistError as exc:
		raise _map_error(exc) from None


@router.delete("/{watchlist_id}/items/{media_type}/{movie_id}", response_model=WatchlistOut)
async def remove_item(
	watchlist_id: str,
	media_type: MediaType,
	movie_id: int,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> WatchlistOut:
	try:
		return await service.remove_item(auth_user, watchlist_id, movie_id, media_type)
	except WatchlistError as exc:
		raise _map_error(exc) from None


@router.post("/{watchlist_id}/recommendations", response_model=WatchlistRecommendations)
async def recommend(
	watchlist_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> WatchlistRecommendations:
	try:
		return await service.recommend(auth_user, watchlist_id)
	except WatchlistError as exc:
		raise _map_error(exc) from None
