"""Profile reads and edits on ``users/{uid}``."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from watchme.domain.identity import policy
from watchme.domain.identity.exceptions import InvalidInput, ProfileNotFound, UsernameTaken
from watchme.domain.identity.models import UserProfile, user_path, username_path
from watchme.domain.identity.schemas import ProfileOut, ProfileUpdateRequest, PublicProfile
from watchme.infra import storage
from watchme.infra.auth import AuthenticatedUser
from watchme.infra.docstore import SERVER_TIMESTAMP, Filter, Transaction, get_store

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 20


async def load_profile(uid: str) -> Optional[UserProfile]:
	snapshot = await get_store().get(user_path(uid))
	if not snapshot.exists:
		return None
	return UserProfile.from_snapshot(snapshot)


async def require_profile(uid: str) -> UserProfile:
	profile = await load_profile(uid)
	if profile is None:
		raise ProfileNotFound()
	return profile


async def load_profiles(uids: Iterable[str]) -> List[UserProfile]:
	"""Profiles for the given uids in input order; missing users are skipped."""
	snapshots = await get_store().get_many(user_path(uid) for uid in dict.fromkeys(uids))
	return [UserProfile.from_snapshot(snap) for snap in snapshots if snap.exists]


async def username_owner(username: str) -> Optional[str]:
	claim = await get_store().get(username_path(username))
	return str(claim.get("uid")) if claim.exists else None


def default_username_candidates(uid: str, email: Optional[str]) -> List[str]:
	"""Preferred default username first, then uid-suffixed fallbacks."""
	candidate = policy.default_username(uid, email)
	fallbacks = [f"{candidate[:23]}_{uid[-6:].lower()}", uid.lower()[:30]]
	return list(dict.fromkeys([candidate, *fallbacks]))


async def claim_default_username(tx: Transaction, uid: str, email: Optional[str]) -> Optional[str]:
	"""Read the default candidates' claims inside ``tx``; return the first one free for ``uid``.

	Only reads, so the caller can still read before writing. None when every
	candidate belongs to someone else.
	"""
	for candidate in default_username_candidates(uid, email):
		claim = await tx.get(username_path(candidate))
		if not claim.exists or claim.get("uid") == uid:
			return candidate
	return None


def _claim_writes(tx: Transaction, uid: str, username: str, previous: Optional[str], previous_owned: bool) -> None:
	tx.set(username_path(username), {"uid": uid, "claimed_at": SERVER_TIMESTAMP})
	if previous and previous != username and previous_owned:
		tx.delete(username_path(previous))


async def get_me(auth_user: AuthenticatedUser) -> ProfileOut:
	return ProfileOut.from_model(await require_profile(auth_user.id))


async def get_public_profile(uid: str) -> PublicProfile:
	return PublicProfile.from_model(await require_profile(uid))


async def update_profile(auth_user: AuthenticatedUser, payload: ProfileUpdateRequest) -> ProfileOut:
	await require_profile(auth_user.id)
	fields: dict = {}
	if payload.display_name is not None:
		fields["display_name"] = payload.display_name.strip() or None
	if payload.bio is not None:
		fields["bio"] = payload.bio.strip() or None
	if payload.username is None:
		if fields:
			await get_store().update(user_path(auth_user.id), fields)
		return await get_me(auth_user)

	username = policy.normalise_username(payload.username)

	async def _txn(tx: Transaction) -> None:
		user = await tx.get(user_path(auth_user.id))
		if not user.exists:
			raise ProfileNotFound()
		claim = await tx.get(username_path(username))
		if claim.exists and claim.get("uid") != auth_user.id:
			raise UsernameTaken()
		previous = user.get("username")
		previous_owned = False
		if previous and previous != username:
			old_claim = await tx.get(username_path(previous))
			previous_owned = old_claim.exists and old_claim.get("uid") == auth_user.id
		_claim_writes(tx, auth_user.id, username, previous, previous_owned)
		tx.update(user_path(auth_user.id), {**fields, "username": username})

	await get_store().run_transaction(_txn)
	return await get_me(auth_user)


async def search_users(auth_user: AuthenticatedUser, query: str, *, limit: int = SEARCH_LIMIT) -> List[PublicProfile]:
	"""Username prefix search, excluding the caller."""
	prefix = (query or "").strip().lower()
	if not prefix:
		return []
	snapshots = await get_store().query(
		"users",
		[Filter("username", ">=", prefix), Filter("username", "<", prefix + "\uf8ff")],
		order_by="username",
		limit=limit + 1,
	)
	results = [
		PublicProfile.from_model(UserProfile.from_snapshot(snap))
		for snap in snapshots
		if snap.id != auth_user.id
	]
	return results[:limit]


async def upload_photo(auth_user: AuthenticatedUser, content_type: Optional[str], data: bytes) -> str:
	await require_profile(auth_user.id)
	try:
		url = storage.save_profile_photo(auth_user.id, content_type, data)
	except storage.StorageError as exc:
		raise InvalidInput(exc.reason) from exc
	await get_store().update(user_path(auth_user.id), {"photo_url": url})
	logger.info("profile photo updated", extra={"uid": auth_user.id})
	return url
