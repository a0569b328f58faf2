"""Guard checks for friend and blend requests."""

from __future__ import annotations

from watchme.domain.identity.models import UserProfile
from watchme.domain.identity.profile_service import load_profile
from watchme.domain.social.exceptions import (
	AlreadyFriends,
	NotFriends,
	RequestForbidden,
	RequestRateLimitExceeded,
	SelfRequest,
	UserNotFound,
)
from watchme.domain.social.models import REQUEST_PER_MINUTE, PendingRequest
from watchme.infra import rate_limit


async def enforce_request_limits(kind: str, user_id: str) -> None:
	if not await rate_limit.allow(f"{kind}:send", user_id, limit=REQUEST_PER_MINUTE, window_seconds=60):
		raise RequestRateLimitExceeded("per_minute")


def guard_not_self(user_id: str, target_id: str) -> None:
	if str(user_id) == str(target_id):
		raise SelfRequest()


async def load_user(uid: str) -> UserProfile:
	profile = await load_profile(uid)
	if profile is None:
		raise UserNotFound()
	return profile


def guard_not_friends(profile: UserProfile, target_id: str) -> None:
	if profile.is_friend(target_id):
		raise AlreadyFriends()


def guard_friends(profile: UserProfile, target_id: str) -> None:
	if not profile.is_friend(target_id):
		raise NotFriends()


def guard_recipient(request: PendingRequest, user_id: str) -> None:
	if request.to_user_id != user_id:
		raise RequestForbidden()


def guard_sender(request: PendingRequest, user_id: str) -> None:
	if request.from_user_id != user_id:
		raise RequestForbidden()
