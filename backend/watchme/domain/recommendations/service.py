"""Titles recommended from one friend to another."""

from __future__ import annotations

import logging
from typing import Dict, List

from watchme.domain import live
from watchme.domain.chat import service as chat_service
from watchme.domain.chat.schemas import MovieRef
from watchme.domain.identity.profile_service import load_profiles, require_profile
from watchme.domain.identity.schemas import PublicProfile
from watchme.domain.recommendations.exceptions import RecommendationForbidden, RecommendationNotFound
from watchme.domain.recommendations.schemas import RecommendationGroup, RecommendationOut, SendRecommendationRequest
from watchme.infra.auth import AuthenticatedUser
from watchme.infra.docstore import SERVER_TIMESTAMP, Filter, get_store
from watchme.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

COLLECTION = "recommendations"


async def send(auth_user: AuthenticatedUser, payload: SendRecommendationRequest) -> RecommendationOut:
	"""Recommend a title to a friend, optionally posting it in the chat too."""
	sender = await require_profile(auth_user.id)
	if payload.to_user_id == sender.uid or not sender.is_friend(payload.to_user_id):
		raise RecommendationForbidden()
	store = get_store()
	rec_id = await store.add(
		COLLECTION,
		{
			"from_user_id": sender.uid,
			"from_username": sender.username,
			"to_user_id": payload.to_user_id,
			"movie_id": payload.movie_id,
			"movie_title": payload.movie_title,
			"movie_poster": payload.movie_poster,
			"media_type": payload.media_type,
			"created_at": SERVER_TIMESTAMP,
		},
	)
	snapshot = await store.get(f"{COLLECTION}/{rec_id}")
	out = RecommendationOut.from_doc(rec_id, snapshot.data or {})
	obs_metrics.inc_recommendation_sent()
	await live.emit_to_user(payload.to_user_id, "recommendation:new", out.model_dump(mode="json"))
	if payload.share_in_chat:
		movie = MovieRef(
			id=payload.movie_id,
			title=payload.movie_title,
			poster_path=payload.movie_poster,
			media_type=payload.media_type,
		)
		await chat_service.send_recommendation_message(auth_user, payload.to_user_id, movie)
	logger.info("recommendation sent", extra={"uid": sender.uid, "to": payload.to_user_id, "rec_id": rec_id})
	return out


def group_by_sender(items: List[RecommendationOut], senders: Dict[str, PublicProfile]) -> List[RecommendationGroup]:
	"""Group newest-first per sender; groups ordered by each sender's latest send."""
	grouped: Dict[str, List[RecommendationOut]] = {}
	for item in items:
		grouped.setdefault(item.from_user_id, []).append(item)
	groups: List[RecommendationGroup] = []
	for sender_id, recs in grouped.items():
		recs.sort(key=lambda rec: rec.created_at or "", reverse=True)
		sender = senders.get(sender_id) or PublicProfile(uid=sender_id, username=recs[0].from_username)
		groups.append(RecommendationGroup(sender=sender, latest_at=recs[0].created_at, recommendations=recs))
	groups.sort(key=lambda group: group.latest_at or "", reverse=True)
	return groups


async def list_received(auth_user: AuthenticatedUser) -> List[RecommendationGroup]:
	snapshots = await get_store().query(COLLECTION, [Filter("to_user_id", "==", auth_user.id)])
	items = [RecommendationOut.from_doc(snap.id, snap.data or {}) for snap in snapshots]
	profiles = await load_profiles(item.from_user_id for item in items)
	senders = {profile.uid: PublicProfile.from_model(profile) for profile in profiles}
	return group_by_sender(items, senders)


async def delete(auth_user: AuthenticatedUser, rec_id: str) -> None:
	store = get_store()
	snapshot = await store.get(f"{COLLECTION}/{rec_id}")
	if not snapshot.exists or snapshot.get("to_user_id") != auth_user.id:
		raise RecommendationNotFound()
	await store.delete(f"{COLLECTION}/{rec_id}")
