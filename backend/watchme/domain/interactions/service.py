"""Per-user title interactions stored as arrays on ``users/{uid}``.

Every write is one transaction on the user document so that a title's key
appears at most once per array and never in both liked and disliked.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from watchme.domain.identity.exceptions import ProfileNotFound
from watchme.domain.identity.models import MovieInteractionRecord, RatedMovie, TitleKey, UserProfile, record_key, user_path
from watchme.domain.identity.profile_service import require_profile
from watchme.domain.identity.schemas import MovieRecord, RatedMovieOut
from watchme.domain.interactions.schemas import InteractionsOut, Reaction, TitleState
from watchme.infra.auth import AuthenticatedUser
from watchme.infra.docstore import Transaction, get_store
from watchme.obs import metrics as obs_metrics


LIKED = "liked_movies"
DISLIKED = "disliked_movies"
WATCHED = "watched_movies"
RATED = "rated_movies"

_TARGETS = {"like": (LIKED, DISLIKED, "liked"), "dislike": (DISLIKED, LIKED, "disliked")}


def _without(items: List[Dict[str, Any]], key: TitleKey) -> List[Dict[str, Any]]:
	return [item for item in items if record_key(item) != key]


def _contains(items: List[Dict[str, Any]], key: TitleKey) -> bool:
	return any(record_key(item) == key for item in items)


async def _load_for_update(tx: Transaction, uid: str):
	snapshot = await tx.get(user_path(uid))
	if not snapshot.exists:
		raise ProfileNotFound()
	return snapshot


async def react(
	auth_user: AuthenticatedUser,
	record: MovieInteractionRecord,
	action: Literal["like", "dislike"],
	*,
	toggle: bool = True,
) -> Reaction:
	"""Like or dislike a title in one write, clearing the opposite array.

	With ``toggle`` a repeated like (or dislike) removes the title again.
	"""
	target_field, opposite_field, state = _TARGETS[action]
	key = record.key

	async def _txn(tx: Transaction) -> Reaction:
		snapshot = await _load_for_update(tx, auth_user.id)
		target = list(snapshot.get(target_field) or [])
		opposite = list(snapshot.get(opposite_field) or [])
		if _contains(target, key):
			if not toggle:
				if _contains(opposite, key):
					tx.update(user_path(auth_user.id), {opposite_field: _without(opposite, key)})
				return state  # type: ignore[return-value]
			tx.update(user_path(auth_user.id), {target_field: _without(target, key), opposite_field: _without(opposite, key)})
			return "none"
		target.append(record.to_doc())
		tx.update(user_path(auth_user.id), {target_field: target, opposite_field: _without(opposite, key)})
		return state  # type: ignore[return-value]

	result = await get_store().run_transaction(_txn)
	obs_metrics.inc_interaction(action if result != "none" else f"un{action}")
	return result


async def clear_reaction(auth_user: AuthenticatedUser, movie_id: int, media_type: str) -> None:
	key = (int(movie_id), media_type)

	async def _txn(tx: Transaction) -> None:
		snapshot = await _load_for_update(tx, auth_user.id)
		liked = list(snapshot.get(LIKED) or [])
		disliked = list(snapshot.get(DISLIKED) or [])
		if _contains(liked, key) or _contains(disliked, key):
			tx.update(user_path(auth_user.id), {LIKED: _without(liked, key), DISLIKED: _without(disliked, key)})

	await get_store().run_transaction(_txn)


async def toggle_watched(auth_user: AuthenticatedUser, record: MovieInteractionRecord) -> bool:
	key = record.key

	async def _txn(tx: Transaction) -> bool:
		snapshot = await _load_for_update(tx, auth_user.id)
		watched = list(snapshot.get(WATCHED) or [])
		if _contains(watched, key):
			tx.update(user_path(auth_user.id), {WATCHED: _without(watched, key)})
			return False
		watched.append(record.to_doc())
		tx.update(user_path(auth_user.id), {WATCHED: watched})
		return True

	result = await get_store().run_transaction(_txn)
	obs_metrics.inc_interaction("watched" if result else "unwatched")
	return result


async def rate(auth_user: AuthenticatedUser, movie_id: int, media_type: str, rating: int) -> RatedMovie:
	"""Insert or replace the caller's star rating for a title."""
	rated = RatedMovie(movie_id=int(movie_id), media_type=media_type, rating=int(rating))

	async def _txn(tx: Transaction) -> None:
		snapshot = await _load_for_update(tx, auth_user.id)
		ratings = list(snapshot.get(RATED) or [])
		for item in ratings:
			if record_key(item) == rated.key and int(item.get("rating") or 0) == rated.rating:
				return
		updated = _without(ratings, rated.key)
		updated.append(rated.to_doc())
		tx.update(user_path(auth_user.id), {RATED: updated})

	await get_store().run_transaction(_txn)
	obs_metrics.inc_interaction("rating")
	return rated


async def remove_rating(auth_user: AuthenticatedUser, movie_id: int, media_type: str) -> None:
	key = (int(movie_id), media_type)

	async def _txn(tx: Transaction) -> None:
		snapshot = await _load_for_update(tx, auth_user.id)
		ratings = list(snapshot.get(RATED) or [])
		if _contains(ratings, key):
			tx.update(user_path(auth_user.id), {RATED: _without(ratings, key)})

	await get_store().run_transaction(_txn)


def _state_for(profile: UserProfile, key: TitleKey) -> TitleState:
	reaction: Reaction = "none"
	if any(item.key == key for item in profile.liked_movies):
		reaction = "liked"
	elif any(item.key == key for item in profile.disliked_movies):
		reaction = "disliked"
	rating: Optional[int] = next((item.rating for item in profile.rated_movies if item.key == key), None)
	return TitleState(
		movie_id=key[0],
		media_type=key[1],  # type: ignore[arg-type]
		reaction=reaction,
		watched=any(item.key == key for item in profile.watched_movies),
		rating=rating,
	)


async def get_title_state(auth_user: AuthenticatedUser, movie_id: int, media_type: str) -> TitleState:
	profile = await require_profile(auth_user.id)
	return _state_for(profile, (int(movie_id), media_type))


async def get_interactions(uid: str) -> InteractionsOut:
	profile = await require_profile(uid)
	return InteractionsOut(
		liked=[MovieRecord.from_model(item) for item in profile.liked_movies],
		disliked=[MovieRecord.from_model(item) for item in profile.disliked_movies],
		watched=[MovieRecord.from_model(item) for item in profile.watched_movies],
		rated=[RatedMovieOut.from_model(item) for item in profile.rated_movies],
	)
