"""Shared content-API client and the catalog operations exposed over HTTP."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Set, Tuple

import httpx

from watchme.domain.catalog.client import TMDBClient
from watchme.domain.catalog.exceptions import CatalogError
from watchme.domain.catalog.schemas import CatalogItem, Genre, Provider, SearchPage, TitleDetails, TitleProviders
from watchme.settings import settings

logger = logging.getLogger(__name__)

TitleKey = Tuple[int, str]

_client: Optional[TMDBClient] = None


def get_client() -> TMDBClient:
	global _client
	if _client is None:
		_client = TMDBClient(http=httpx.AsyncClient(timeout=settings.tmdb_timeout_seconds))
	return _client


def set_client(client: Optional[TMDBClient]) -> None:
	global _client
	_client = client


async def close_client() -> None:
	global _client
	if _client is not None:
		await _client.http.aclose()
		_client = None


async def search(query: str, page: int = 1) -> SearchPage:
	return await get_client().search_multi(query, page)


async def details(media_type: str, title_id: int) -> TitleDetails:
	return await get_client().details(media_type, title_id)


async def title_providers(media_type: str, title_id: int, region: Optional[str] = None) -> TitleProviders:
	return await get_client().title_providers(media_type, title_id, region)


async def genres() -> List[Genre]:
	return await get_client().genres()


async def providers(region: Optional[str] = None) -> List[Provider]:
	return await get_client().providers(region)


async def _resolve(title: str) -> Optional[CatalogItem]:
	try:
		return await get_client().find_by_title(title)
	except CatalogError as exc:
		logger.warning("title lookup failed", extra={"title": title, "error": exc.reason})
		return None


async def resolve_titles(titles: List[str], *, exclude: Optional[Set[TitleKey]] = None) -> List[CatalogItem]:
	"""Look each suggested title up; misses and repeats are dropped."""
	found = await asyncio.gather(*(_resolve(title) for title in titles))
	skip = set(exclude or ())
	results: List[CatalogItem] = []
	for item in found:
		if item is None or item.key in skip:
			continue
		skip.add(item.key)
		results.append(item)
	return results


async def recommendations(media_type: str, title_id: int) -> List[CatalogItem]:
	return await get_client().recommendations(media_type, title_id)
