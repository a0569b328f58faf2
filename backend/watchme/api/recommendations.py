"""Friend-to-friend title recommendations."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from watchme.domain.chat.exceptions import ChatError
from watchme.domain.recommendations import service
from watchme.domain.recommendations.exceptions import (
	RecommendationError,
	RecommendationForbidden,
	RecommendationNotFound,
)
from watchme.domain.recommendations.schemas import RecommendationGroup, RecommendationOut, SendRecommendationRequest
from watchme.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


def _map_error(exc: RecommendationError | ChatError) -> HTTPException:
	if isinstance(exc, RecommendationNotFound):
		return HTTPException(status.HTTP_404_NOT_FOUND, detail=exc.reason)
	if isinstance(exc, RecommendationForbidden) or exc.reason == "not_friends":
		return HTTPException(status.HTTP_403_FORBIDDEN, detail=exc.reason)
	return HTTPException(status.HTTP_400_BAD_REQUEST, detail=exc.reason)


@router.post("", response_model=RecommendationOut, status_code=status.HTTP_201_CREATED)
async def send_recommendation(
	payload: SendRecommendationRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> RecommendationOut:
	try:
		return await service.send(auth_user, payload)
	except (RecommendationError, ChatError) as exc:
		raise _map_error(exc) from None


@router.get("", response_model=List[RecommendationGroup])
async def list_received(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[RecommendationGroup]:
	return await service.list_received(auth_user)


@router.delete("/{rec_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recommendation(
	rec_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await service.delete(auth_user, rec_id)
	except RecommendationError as exc:
		raise _map_error(exc) from None
