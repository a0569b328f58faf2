"""Content API passthrough: search, title details, providers and genres."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from watchme.domain.catalog import service
from watchme.domain.catalog.schemas import CatalogItem, Genre, Provider, SearchPage, TitleDetails, TitleProviders
from watchme.domain.identity.schemas import MediaType
from watchme.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/search", response_model=SearchPage)
async def search(
	q: str = Query(..., min_length=1, max_length=200),
	page: int = Query(default=1, ge=1, le=500),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> SearchPage:
	return await service.search(q, page)


@router.get("/genres", response_model=List[Genre])
async def genres(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[Genre]:
	return await service.genres()


@router.get("/providers", response_model=List[Provider])
async def providers(
	region: Optional[str] = Query(default=None, min_length=2, max_length=2),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[Provider]:
	return await service.providers(region)


@router.get("/{media_type}/{title_id}", response_model=TitleDetails)
async def details(
	media_type: MediaType,
	title_id: int,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> TitleDetails:
	return await service.details(media_type, title_id)


@router.get("/{media_type}/{title_id}/providers", response_model=TitleProviders)
async def title_providers(
	media_type: MediaType,
	title_id: int,
	region: Optional[str] = Query(default=None, min_length=2, max_length=2),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> TitleProviders:
	return await service.title_providers(media_type, title_id, region)


@router.get("/{media_type}/{title_id}/recommendations", response_model=List[CatalogItem])
async def title_recommendations(
	media_type: MediaType,
	title_id: int,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[CatalogItem]:
	return await service.recommendations(media_type, title_id)
