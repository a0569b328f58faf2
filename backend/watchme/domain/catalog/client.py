"""TMDB v3 client."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import httpx

from watchme.domain.catalog.exceptions import CatalogUnavailable, TitleNotFound
from watchme.domain.catalog.schemas import (
	CatalogItem,
	Genre,
	Provider,
	SearchPage,
	TitleDetails,
	TitleProviders,
)
from watchme.obs import metrics as obs_metrics
from watchme.settings import settings

logger = logging.getLogger(__name__)

MEDIA_TYPES = ("movie", "tv")


@dataclass
class TMDBClient:
	"""Client for The Movie Database (TMDB) API."""

	http: httpx.AsyncClient
	api_key: Optional[str] = field(default_factory=lambda: settings.tmdb_api_key)
	base_url: str = field(default_factory=lambda: settings.tmdb_base_url)
	image_base_url: str = field(default_factory=lambda: settings.tmdb_image_base_url)
	language: str = field(default_factory=lambda: settings.tmdb_language)
	region: str = field(default_factory=lambda: settings.tmdb_region)

	async def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None, *, group: str) -> Dict[str, Any]:
		"""GET an endpoint and return the decoded JSON body."""
		if not self.api_key:
			obs_metrics.inc_catalog_call(group, "unconfigured")
			raise CatalogUnavailable("tmdb_not_configured")
		query: Dict[str, Any] = {"api_key": self.api_key, "language": self.language}
		query.update({key: value for key, value in (params or {}).items() if value not in (None, "")})
		try:
			response = await self.http.get(f"{self.base_url.rstrip('/')}{endpoint}", params=query)
		except httpx.HTTPError as exc:
			obs_metrics.inc_catalog_call(group, "transport_error")
			logger.warning("TMDB request failed", extra={"endpoint": endpoint, "error": str(exc)})
			raise CatalogUnavailable("tmdb_unreachable") from exc
		if response.status_code == 404:
			obs_metrics.inc_catalog_call(group, "not_found")
			raise TitleNotFound()
		if response.status_code >= 400:
			obs_metrics.inc_catalog_call(group, "error")
			logger.warning("TMDB error response", extra={"endpoint": endpoint, "status": response.status_code})
			raise CatalogUnavailable(f"tmdb_status_{response.status_code}")
		try:
			payload = response.json()
		except ValueError as exc:
			obs_metrics.inc_catalog_call(group, "invalid_response")
			logger.warning("TMDB returned a non-JSON body", extra={"endpoint": endpoint})
			raise CatalogUnavailable("tmdb_invalid_response") from exc
		obs_metrics.inc_catalog_call(group, "ok")
		return payload

	def get_poster_url(self, poster_path: Optional[str]) -> Optional[str]:
		if not poster_path:
			return None
		return f"{self.image_base_url.rstrip('/')}{poster_path}"

	def normalise(self, raw: Dict[str, Any], media_type: Optional[str] = None) -> Optional[CatalogItem]:
		"""Map a TMDB movie/tv result to a CatalogItem; other result kinds give None."""
		kind = raw.get("media_type") or media_type
		if kind not in MEDIA_TYPES or raw.get("id") is None:
			return None
		title = raw.get("title") or raw.get("name") or ""
		return CatalogItem(
			id=int(raw["id"]),
			media_type=kind,
			title=title,
			overview=raw.get("overview") or "",
			poster_path=raw.get("poster_path"),
			poster_url=self.get_poster_url(raw.get("poster_path")),
			release_date=raw.get("release_date") or raw.get("first_air_date") or None,
			vote_average=float(raw.get("vote_average") or 0.0),
			popularity=float(raw.get("popularity") or 0.0),
			genre_ids=[int(g) for g in raw.get("genre_ids") or []],
		)

	def _normalise_many(self, results: Iterable[Dict[str, Any]], media_type: Optional[str] = None) -> List[CatalogItem]:
		items = (self.normalise(raw, media_type) for raw in results)
		return [item for item in items if item is not None]

	async def search_multi(self, query: str, page: int = 1) -> SearchPage:
		"""Search movies and TV shows; people are dropped."""
		data = await self._get(
			"/search/multi",
			{"query": query, "page": page, "include_adult": "false"},
			group="search",
		)
		return SearchPage(
			page=int(data.get("page") or page),
			total_pages=int(data.get("total_pages") or 1),
			results=self._normalise_many(data.get("results") or []),
		)

	async def discover(
		self,
		media_type: str,
		*,
		page: int = 1,
		sort_by: str = "popularity.desc",
		genres: Iterable[int] = (),
		providers: Iterable[int] = (),
		year_from: Optional[int] = None,
		year_to: Optional[int] = None,
		region: Optional[str] = None,
		any_genre: bool = False,
	) -> List[CatalogItem]:
		"""One page of /discover results; ``any_genre`` matches any listed genre instead of all."""
		params: Dict[str, Any] = {"sort_by": sort_by, "include_adult": "false", "page": page}
		genre_ids = [str(g) for g in genres]
		provider_ids = [str(p) for p in providers]
		if genre_ids:
			params["with_genres"] = ("|" if any_genre else ",").join(genre_ids)
		if provider_ids:
			params["with_watch_providers"] = "|".join(provider_ids)
		if region:
			params["watch_region"] = region
		date_field = "primary_release_date" if media_type == "movie" else "first_air_date"
		if year_from:
			params[f"{date_field}.gte"] = f"{int(year_from)}-01-01"
		if year_to:
			params[f"{date_field}.lte"] = f"{int(year_to)}-12-31"
		data = await self._get(f"/discover/{media_type}", params, group="discover")
		return self._normalise_many(data.get("results") or [], media_type)

	async def popular(self, media_type: str, page: int = 1) -> List[CatalogItem]:
		return await self.discover(media_type, page=page)

	async def details(self, media_type: str, title_id: int) -> TitleDetails:
		data = await self._get(f"/{media_type}/{int(title_id)}", group="details")
		item = self.normalise(data, media_type)
		if item is None:
			raise TitleNotFound()
		runtime = data.get("runtime")
		if runtime is None and data.get("episode_run_time"):
			runtime = data["episode_run_time"][0]
		return TitleDetails(
			**item.model_dump(exclude={"genre_ids"}),
			genre_ids=[int(g["id"]) for g in data.get("genres") or []],
			genres=[Genre(id=int(g["id"]), name=g.get("name", "")) for g in data.get("genres") or []],
			runtime=runtime,
			tagline=data.get("tagline") or None,
		)

	async def get_title(self, media_type: str, title_id: int) -> Optional[str]:
		"""Title or name for a title id; None when the lookup fails."""
		try:
			data = await self._get(f"/{media_type}/{int(title_id)}", group="details")
		except (CatalogUnavailable, TitleNotFound):
			return None
		return data.get("title") or data.get("name") or None

	async def recommendations(self, media_type: str, title_id: int) -> List[CatalogItem]:
		data = await self._get(f"/{media_type}/{int(title_id)}/recommendations", group="recommendations")
		return self._normalise_many(data.get("results") or [], media_type)

	async def genres(self) -> List[Genre]:
		"""Movie and TV genre lists merged and de-duplicated by id."""
		merged: Dict[int, Genre] = {}
		for media_type in MEDIA_TYPES:
			data = await self._get(f"/genre/{media_type}/list", group="genres")
			for raw in data.get("genres") or []:
				merged.setdefault(int(raw["id"]), Genre(id=int(raw["id"]), name=raw.get("name", "")))
		return sorted(merged.values(), key=lambda genre: genre.name)

	async def providers(self, region: Optional[str] = None) -> List[Provider]:
		data = await self._get(
			"/watch/providers/movie",
			{"watch_region": region or self.region},
			group="providers",
		)
		providers = [
			Provider(
				provider_id=int(raw["provider_id"]),
				provider_name=raw.get("provider_name", ""),
				logo_path=raw.get("logo_path"),
			)
			for raw in data.get("results") or []
		]
		return sorted(providers, key=lambda provider: provider.provider_name)

	async def title_providers(self, media_type: str, title_id: int, region: Optional[str] = None) -> TitleProviders:
		region_code = (region or self.region).upper()
		data = await self._get(f"/{media_type}/{int(title_id)}/watch/providers", group="providers")
		entry = (data.get("results") or {}).get(region_code) or {}

		def _providers(kind: str) -> List[Provider]:
			return [
				Provider(
					provider_id=int(raw["provider_id"]),
					provider_name=raw.get("provider_name", ""),
					logo_path=raw.get("logo_path"),
				)
				for raw in entry.get(kind) or []
			]

		return TitleProviders(
			region=region_code,
			link=entry.get("link"),
			flatrate=_providers("flatrate"),
			rent=_providers("rent"),
			buy=_providers("buy"),
		)

	async def find_by_title(self, title: str) -> Optional[CatalogItem]:
		"""First movie/TV search hit with a poster, or None."""
		page = await self.search_multi(title)
		for item in page.results:
			if item.poster_path:
				return item
		return None
