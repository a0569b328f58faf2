"""Blend: joint recommendations for two friends from both liked lists."""

from __future__ import annotations

import asyncio
import logging
from typing import List

from watchme.domain.ai import service as ai_service
from watchme.domain.ai.schemas import BLEND_TITLES_MAX, BlendRecommendationsInput, most_recent_titles
from watchme.domain.blends.exceptions import BlendForbidden, FriendNotFound
from watchme.domain.blends.schemas import BlendResult
from watchme.domain.catalog import service as catalog_service
from watchme.domain.identity.models import UserProfile
from watchme.domain.identity.profile_service import load_profile, require_profile
from watchme.domain.identity.schemas import PublicProfile
from watchme.infra.auth import AuthenticatedUser

logger = logging.getLogger(__name__)

HIGH_RATING = 4


async def liked_titles(profile: UserProfile) -> List[str]:
	"""Liked titles plus titles rated 4 or 5, deduplicated and capped to the most recent."""
	titles = [item.title for item in profile.liked_movies if item.title]
	liked_keys = {item.key for item in profile.liked_movies}
	rated = [item for item in profile.rated_movies if item.rating >= HIGH_RATING and item.key not in liked_keys]
	rated = rated[-BLEND_TITLES_MAX:]
	if rated:
		client = catalog_service.get_client()
		names = await asyncio.gather(*(client.get_title(item.media_type, item.movie_id) for item in rated))
		titles.extend(name for name in names if name)
	return most_recent_titles(titles, BLEND_TITLES_MAX)


async def generate(auth_user: AuthenticatedUser, friend_id: str) -> BlendResult:
	me = await require_profile(auth_user.id)
	friend = await load_profile(friend_id)
	if friend is None:
		raise FriendNotFound()
	if not (me.is_friend(friend.uid) or friend.uid in me.active_blends_with):
		raise BlendForbidden()

	mine, theirs = await asyncio.gather(liked_titles(me), liked_titles(friend))
	out = BlendResult(friend=PublicProfile.from_model(friend))
	if not mine or not theirs:
		logger.info("blend skipped, empty side", extra={"uid": me.uid, "friend": friend.uid})
		return out

	await ai_service.enforce_quota(auth_user.id)
	suggested = await ai_service.blend_recommendations(
		BlendRecommendationsInput(user1_titles=mine, user2_titles=theirs)
	)
	out.suggested_titles = suggested.recommendations
	out.results = await catalog_service.resolve_titles(suggested.recommendations)
	return out
