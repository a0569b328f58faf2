"""Swipe deck, for-you feed and seed recommendations.

The deck is kept per user in Redis as a JSON list of catalog items plus a
cursor pointing at the next page window to fetch when it runs low.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
from datetime import date
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from watchme.domain.catalog import service as catalog_service
from watchme.domain.catalog.client import MEDIA_TYPES
from watchme.domain.catalog.exceptions import CatalogError, CatalogUnavailable
from watchme.domain.catalog.schemas import CatalogItem
from watchme.domain.discover.schemas import (
	DeckResponse,
	ForYouFilters,
	ForYouResponse,
	SeedRecommendations,
	SwipeRequest,
	SwipeResponse,
)
from watchme.domain.identity.models import MovieInteractionRecord, TitleKey, UserProfile
from watchme.domain.identity.profile_service import require_profile
from watchme.domain.interactions import service as interactions
from watchme.infra.auth import AuthenticatedUser
from watchme.infra.redis import redis_client
from watchme.obs import metrics as obs_metrics
from watchme.settings import settings

logger = logging.getLogger(__name__)

HIGH_RATING = 4
PREFERRED_GENRE_SEEDS = 5
SEED_RESULTS = 10


def _deck_key(uid: str) -> str:
	return f"discover:deck:{uid}"


def _cursor_key(uid: str) -> str:
	return f"discover:cursor:{uid}"


def seen_keys(profile: UserProfile) -> Set[TitleKey]:
	"""Keys the user already reacted to."""
	return {item.key for item in profile.liked_movies} | {item.key for item in profile.disliked_movies}


def assemble_deck(
	items: Iterable[CatalogItem],
	*,
	seen: Set[TitleKey],
	exclude: Iterable[TitleKey] = (),
	limit: int,
) -> List[CatalogItem]:
	"""Drop incomplete, duplicate and already-seen items, shuffle and cap."""
	skip = set(seen) | set(exclude)
	deck: List[CatalogItem] = []
	for item in items:
		if not item.poster_path or not item.overview:
			continue
		if item.key in skip:
			continue
		skip.add(item.key)
		deck.append(item)
	random.shuffle(deck)
	return deck[: max(0, limit)]


async def _fetch_window(start_page: int) -> List[CatalogItem]:
	client = catalog_service.get_client()
	pages = range(start_page, start_page + max(1, settings.discover_pages))
	calls = [client.popular(media_type, page) for page in pages for media_type in MEDIA_TYPES]
	results = await asyncio.gather(*calls, return_exceptions=True)
	items: List[CatalogItem] = []
	failures = 0
	for result in results:
		if isinstance(result, BaseException):
			if not isinstance(result, CatalogError):
				raise result
			failures += 1
			logger.warning("discover page fetch failed", extra={"start_page": start_page, "error": str(result)})
			continue
		items.extend(result)
	if failures == len(results):
		raise CatalogUnavailable("discover_unavailable")
	return items


async def _load_deck(uid: str) -> Tuple[Optional[List[CatalogItem]], int]:
	raw_deck, raw_cursor = await redis_client.mget(_deck_key(uid), _cursor_key(uid))
	if raw_deck is None:
		return None, 1
	deck = [CatalogItem.model_validate(item) for item in json.loads(raw_deck)]
	return deck, int(raw_cursor or 1)


async def _save_deck(uid: str, deck: Sequence[CatalogItem], cursor: int) -> None:
	ttl = settings.discover_deck_ttl_seconds
	payload = json.dumps([item.model_dump(mode="json") for item in deck])
	async with redis_client.pipeline(transaction=True) as pipe:
		pipe.set(_deck_key(uid), payload, ex=ttl)
		pipe.set(_cursor_key(uid), cursor, ex=ttl)
		await pipe.execute()


async def _refill(profile: UserProfile, deck: List[CatalogItem], cursor: int, *, reason: str) -> Tuple[List[CatalogItem], int]:
	fetched = await _fetch_window(cursor)
	fresh = assemble_deck(
		fetched,
		seen=seen_keys(profile),
		exclude=[item.key for item in deck],
		limit=settings.discover_deck_size - len(deck),
	)
	obs_metrics.inc_deck_refill(reason)
	logger.info("discover deck refilled", extra={"uid": profile.uid, "added": len(fresh), "cursor": cursor, "reason": reason})
	return deck + fresh, cursor + max(1, settings.discover_pages)


async def _current_deck(profile: UserProfile) -> Tuple[List[CatalogItem], int]:
	deck, cursor = await _load_deck(profile.uid)
	if deck is None:
		deck, cursor = await _refill(profile, [], 1, reason="initial")
		await _save_deck(profile.uid, deck, cursor)
	return deck, cursor


async def _maybe_refill(profile: UserProfile, deck: List[CatalogItem], cursor: int) -> Tuple[List[CatalogItem], int, bool]:
	if len(deck) > settings.discover_refill_at:
		return deck, cursor, False
	try:
		refilled, cursor = await _refill(profile, deck, cursor, reason="low")
	except CatalogUnavailable:
		logger.warning("discover refill skipped", extra={"uid": profile.uid})
		return deck, cursor, False
	return refilled, cursor, len(refilled) > len(deck)


async def next_cards(auth_user: AuthenticatedUser, count: int = 10) -> DeckResponse:
	"""Pop up to ``count`` cards from the caller's deck, refilling when it runs low."""
	profile = await require_profile(auth_user.id)
	deck, cursor = await _current_deck(profile)
	seen = seen_keys(profile)
	deck = [item for item in deck if item.key not in seen]
	cards, deck = deck[: max(0, count)], deck[max(0, count):]
	deck, cursor, _ = await _maybe_refill(profile, deck, cursor)
	await _save_deck(profile.uid, deck, cursor)
	return DeckResponse(cards=cards, remaining=len(deck))


async def reset_deck(auth_user: AuthenticatedUser) -> None:
	await redis_client.delete(_deck_key(auth_user.id), _cursor_key(auth_user.id))


async def swipe(auth_user: AuthenticatedUser, payload: SwipeRequest) -> SwipeResponse:
	"""Right is a like, left a dislike; the card leaves the deck either way."""
	profile = await require_profile(auth_user.id)
	deck, cursor = await _load_deck(profile.uid)
	deck = deck or []
	key: TitleKey = (payload.movie_id, payload.media_type)
	card = next((item for item in deck if item.key == key), None)
	record = MovieInteractionRecord(
		movie_id=payload.movie_id,
		media_type=payload.media_type,
		title=card.title if card else payload.title,
		poster_path=card.poster_path if card else payload.poster_path,
	)
	action = "like" if payload.direction == "right" else "dislike"
	reaction = await interactions.react(auth_user, record, action, toggle=False)
	obs_metrics.inc_swipe(payload.direction)
	(profile.liked_movies if action == "like" else profile.disliked_movies).append(record)

	deck = [item for item in deck if item.key != key]
	deck, cursor, refilled = await _maybe_refill(profile, deck, cursor)
	await _save_deck(profile.uid, deck, cursor)
	return SwipeResponse(
		movie_id=payload.movie_id,
		media_type=payload.media_type,
		reaction=reaction,
		remaining=len(deck),
		refilled=refilled,
	)


async def preferred_genres(profile: UserProfile) -> List[int]:
	"""Genre ids of the user's best-rated titles, in first-seen order."""
	top = sorted(
		(item for item in profile.rated_movies if item.rating >= HIGH_RATING),
		key=lambda item: item.rating,
		reverse=True,
	)[:PREFERRED_GENRE_SEEDS]
	if not top:
		return []
	client = catalog_service.get_client()
	results = await asyncio.gather(
		*(client.details(item.media_type, item.movie_id) for item in top),
		return_exceptions=True,
	)
	genres: List[int] = []
	for result in results:
		if isinstance(result, CatalogError):
			continue
		if isinstance(result, BaseException):
			raise result
		for genre_id in result.genre_ids:
			if genre_id not in genres:
				genres.append(genre_id)
	return genres


async def for_you(auth_user: AuthenticatedUser, filters: ForYouFilters) -> ForYouResponse:
	profile = await require_profile(auth_user.id)
	any_genre = not filters.genres
	genres = list(filters.genres) or await preferred_genres(profile)
	year_to = filters.year_to or date.today().year
	client = catalog_service.get_client()
	calls = [
		client.discover(
			media_type,
			page=page,
			genres=genres,
			providers=filters.providers,
			year_from=filters.year_from,
			year_to=year_to,
			region=settings.tmdb_region,
			any_genre=any_genre,
		)
		for page in (1, 2)
		for media_type in MEDIA_TYPES
	]
	results = await asyncio.gather(*calls, return_exceptions=True)
	watched = {item.key for item in profile.watched_movies} if filters.hide_watched else set()
	merged: dict[TitleKey, CatalogItem] = {}
	failures = 0
	for result in results:
		if isinstance(result, CatalogError):
			failures += 1
			logger.warning("for-you page fetch failed", extra={"uid": profile.uid, "error": str(result)})
			continue
		if isinstance(result, BaseException):
			raise result
		for item in result:
			if item.poster_path and item.key not in watched:
				merged.setdefault(item.key, item)
	if failures == len(results):
		raise CatalogUnavailable("discover_unavailable")
	ordered = sorted(merged.values(), key=lambda item: item.popularity, reverse=True)
	return ForYouResponse(genres=genres, results=ordered)


async def seed_recommendations(auth_user: AuthenticatedUser) -> SeedRecommendations:
	"""Content-API recommendations for one random title the user rated highly."""
	profile = await require_profile(auth_user.id)
	candidates = [item for item in profile.rated_movies if item.rating >= HIGH_RATING]
	if not candidates:
		return SeedRecommendations()
	seed = random.choice(candidates)
	client = catalog_service.get_client()
	items = await client.recommendations(seed.media_type, seed.movie_id)
	title = await client.get_title(seed.media_type, seed.movie_id)
	ranked = sorted((item for item in items if item.poster_path), key=lambda item: item.popularity, reverse=True)
	return SeedRecommendations(seed_title=title, results=ranked[:SEED_RESULTS])
