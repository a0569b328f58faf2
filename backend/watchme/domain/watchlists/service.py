"""Named watchlists embedded in ``users/{uid}.watchlists``.

Every mutation reads the whole array inside a transaction and writes it back,
so concurrent edits from two devices are retried instead of lost.
"""

from __future__ import annotations

import logging
from typing import Callable, List, TypeVar

import ulid

from watchme.domain.ai import service as ai_service
from watchme.domain.ai.schemas import WATCHLIST_TITLES_MAX, WatchlistRecommendationsInput, most_recent_titles
from watchme.domain.catalog import service as catalog_service
from watchme.domain.identity.exceptions import ProfileNotFound
from watchme.domain.identity.models import MovieInteractionRecord, TitleKey, Watchlist, user_path
from watchme.domain.identity.profile_service import require_profile
from watchme.domain.identity.schemas import WatchlistOut
from watchme.domain.watchlists.exceptions import AlreadyInList, InvalidName, WatchlistNotFound
from watchme.domain.watchlists.schemas import WatchlistRecommendations
from watchme.infra.auth import AuthenticatedUser
from watchme.infra.docstore import Transaction, get_store
from watchme.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 60

T = TypeVar("T")


def normalise_name(name: str) -> str:
	cleaned = " ".join((name or "").split())
	if not cleaned or len(cleaned) > NAME_MAX_LENGTH:
		raise InvalidName()
	return cleaned


def _find(watchlists: List[Watchlist], watchlist_id: str) -> Watchlist:
	for watchlist in watchlists:
		if watchlist.id == watchlist_id:
			return watchlist
	raise WatchlistNotFound()


async def _mutate(uid: str, action: str, change: Callable[[List[Watchlist]], T]) -> T:
	"""Run ``change`` on the caller's watchlists and persist the result."""

	async def _txn(tx: Transaction) -> T:
		snapshot = await tx.get(user_path(uid))
		if not snapshot.exists:
			raise ProfileNotFound()
		watchlists = [Watchlist.from_doc(item) for item in snapshot.get("watchlists") or []]
		result = change(watchlists)
		tx.update(user_path(uid), {"watchlists": [item.to_doc() for item in watchlists]})
		return result

	result = await get_store().run_transaction(_txn)
	obs_metrics.inc_watchlist_write(action)
	return result


async def list_watchlists(auth_user: AuthenticatedUser) -> List[WatchlistOut]:
	profile = await require_profile(auth_user.id)
	return [WatchlistOut.from_model(item) for item in profile.watchlists]


async def get_watchlist(auth_user: AuthenticatedUser, watchlist_id: str) -> WatchlistOut:
	profile = await require_profile(auth_user.id)
	return WatchlistOut.from_model(_find(profile.watchlists, watchlist_id))


async def create(auth_user: AuthenticatedUser, name: str) -> WatchlistOut:
	watchlist = Watchlist(id=ulid.new().str, name=normalise_name(name))

	def _append(watchlists: List[Watchlist]) -> Watchlist:
		watchlists.append(watchlist)
		return watchlist

	created = await _mutate(auth_user.id, "create", _append)
	logger.info("watchlist created", extra={"uid": auth_user.id, "watchlist_id": created.id})
	return WatchlistOut.from_model(created)


async def rename(auth_user: AuthenticatedUser, watchlist_id: str, name: str) -> WatchlistOut:
	new_name = normalise_name(name)

	def _rename(watchlists: List[Watchlist]) -> Watchlist:
		target = _find(watchlists, watchlist_id)
		target.name = new_name
		return target

	return WatchlistOut.from_model(await _mutate(auth_user.id, "rename", _rename))


async def delete(auth_user: AuthenticatedUser, watchlist_id: str) -> None:
	def _remove(watchlists: List[Watchlist]) -> None:
		watchlists.remove(_find(watchlists, watchlist_id))

	await _mutate(auth_user.id, "delete", _remove)


async def add_item(auth_user: AuthenticatedUser, watchlist_id: str, record: MovieInteractionRecord) -> WatchlistOut:
	def _add(watchlists: List[Watchlist]) -> Watchlist:
		target = _find(watchlists, watchlist_id)
		if target.contains(record.key):
			raise AlreadyInList()
		target.movies.append(record)
		return target

	return WatchlistOut.from_model(await _mutate(auth_user.id, "add_item", _add))


async def create_and_add(auth_user: AuthenticatedUser, name: str, record: MovieInteractionRecord) -> WatchlistOut:
	watchlist = Watchlist(id=ulid.new().str, name=normalise_name(name), movies=[record])

	def _append(watchlists: List[Watchlist]) -> Watchlist:
		watchlists.append(watchlist)
		return watchlist

	return WatchlistOut.from_model(await _mutate(auth_user.id, "create", _append))


async def remove_item(auth_user: AuthenticatedUser, watchlist_id: str, movie_id: int, media_type: str) -> WatchlistOut:
	key: TitleKey = (int(movie_id), media_type)

	def _drop(watchlists: List[Watchlist]) -> Watchlist:
		target = _find(watchlists, watchlist_id)
		target.movies = [movie for movie in target.movies if movie.key != key]
		return target

	return WatchlistOut.from_model(await _mutate(auth_user.id, "remove_item", _drop))


async def recommend(auth_user: AuthenticatedUser, watchlist_id: str) -> WatchlistRecommendations:
	profile = await require_profile(auth_user.id)
	watchlist = _find(profile.watchlists, watchlist_id)
	titles = most_recent_titles([movie.title for movie in watchlist.movies if movie.title], WATCHLIST_TITLES_MAX)
	out = WatchlistOut.from_model(watchlist)
	if not titles:
		return WatchlistRecommendations(watchlist=out)
	await ai_service.enforce_quota(auth_user.id)
	suggested = await ai_service.watchlist_recommendations(WatchlistRecommendationsInput(titles=titles))
	results = await catalog_service.resolve_titles(suggested.recommendations, exclude={movie.key for movie in watchlist.movies})
	return WatchlistRecommendations(watchlist=out, results=results)
