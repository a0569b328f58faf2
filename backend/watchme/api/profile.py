"""Profile endpoints: the caller's own profile, photo upload and user search."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, File, Query, UploadFile

from watchme.domain.identity import profile_service, schemas
from watchme.domain.interactions import service as interactions_service
from watchme.domain.interactions.schemas import InteractionsOut
from watchme.infra.auth import AuthenticatedUser, get_current_user
from watchme.infra.storage import MAX_PHOTO_BYTES

router = APIRouter(tags=["profile"])


@router.get("/profile/me", response_model=schemas.ProfileOut)
async def get_me(auth_user: AuthenticatedUser = Depends(get_current_user)) -> schemas.ProfileOut:
	return await profile_service.get_me(auth_user)


@router.patch("/profile/me", response_model=schemas.ProfileOut)
async def update_me(
	payload: schemas.ProfileUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.ProfileOut:
	return await profile_service.update_profile(auth_user, payload)


@router.post("/profile/photo", response_model=schemas.PhotoUploadResponse)
async def upload_photo(
	file: UploadFile = File(...),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.PhotoUploadResponse:
	data = await file.read(MAX_PHOTO_BYTES + 1)
	url = await profile_service.upload_photo(auth_user, file.content_type, data)
	return schemas.PhotoUploadResponse(photo_url=url)


@router.get("/users/search", response_model=List[schemas.PublicProfile])
async def search_users(
	q: str = Query(..., min_length=1, max_length=30),
	limit: int = Query(default=profile_service.SEARCH_LIMIT, ge=1, le=50),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[schemas.PublicProfile]:
	return await profile_service.search_users(auth_user, q, limit=limit)


@router.get("/users/{user_id}", response_model=schemas.PublicProfile)
async def get_user(
	user_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.PublicProfile:
	return await profile_service.get_public_profile(user_id)


@router.get("/users/{user_id}/interactions", response_model=InteractionsOut)
async def get_user_interactions(
	user_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> InteractionsOut:
	return await interactions_service.get_interactions(user_id)
