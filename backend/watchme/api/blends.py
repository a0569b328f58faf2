"""Blend generation for two friends."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from watchme.domain.blends import service
from watchme.domain.blends.exceptions import BlendError, FriendNotFound
from watchme.domain.blends.schemas import BlendResult
from watchme.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/blends", tags=["blends"])


def _map_error(exc: BlendError) -> HTTPException:
	if isinstance(exc, FriendNotFound):
		return HTTPException(status.HTTP_404_NOT_FOUND, detail=exc.reason)
	return HTTPException(status.HTTP_403_FORBIDDEN, detail=exc.reason)


@router.post("/{friend_id}", response_model=BlendResult)
async def generate_blend(
	friend_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> BlendResult:
	try:
		return await service.generate(auth_user, friend_id)
	except BlendError as exc:
		raise _map_error(exc) from None
