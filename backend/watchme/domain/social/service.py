"""Friend requests and friendships.

Requests live in ``friendRequests/{from}_{to}`` and their ids are mirrored in
``outgoing_requests``/``incoming_requests`` on both users. Every state change
touching two users commits as one batch.
"""

from __future__ import annotations

import logging
from typing import List

from watchme.domain.identity.models import user_path
from watchme.domain.identity.profile_service import load_profiles, require_profile
from watchme.domain.identity.schemas import PublicProfile
from watchme.domain.social import audit, policy, sockets
from watchme.domain.social.exceptions import RequestAlreadySent, RequestNotFound
from watchme.domain.social.models import (
	FRIEND_REQUESTS,
	PendingRequest,
	blend_request_path,
	friend_request_path,
	request_id,
)
from watchme.domain.social.schemas import FriendUpdatePayload, RequestSummary, RequestUpdatePayload
from watchme.infra.auth import AuthenticatedUser
from watchme.infra.docstore import ArrayRemove, ArrayUnion, Filter, get_store

logger = logging.getLogger(__name__)


async def _load_request(rid: str) -> PendingRequest:
	snapshot = await get_store().get(friend_request_path(rid))
	if not snapshot.exists:
		raise RequestNotFound()
	return PendingRequest.from_snapshot(snapshot)


async def _list(field: str, user_id: str) -> List[RequestSummary]:
	snapshots = await get_store().query(
		FRIEND_REQUESTS,
		[Filter(field, "==", user_id), Filter("status", "==", "pending")],
		order_by="created_at",
		descending=True,
	)
	return [RequestSummary.from_model(PendingRequest.from_snapshot(snap)) for snap in snapshots]


async def _emit_request_update(request: PendingRequest, status: str) -> None:
	payload = RequestUpdatePayload(id=request.id, status=status).model_dump(mode="json")  # type: ignore[arg-type]
	await sockets.emit_friend_request_update(request.from_user_id, payload)
	await sockets.emit_friend_request_update(request.to_user_id, payload)


async def _emit_friend_update(user_a: str, user_b: str, status: str) -> None:
	await sockets.emit_friend_update(
		user_a,
		FriendUpdatePayload(user_id=user_a, friend_id=user_b, status=status).model_dump(mode="json"),  # type: ignore[arg-type]
	)
	await sockets.emit_friend_update(
		user_b,
		FriendUpdatePayload(user_id=user_b, friend_id=user_a, status=status).model_dump(mode="json"),  # type: ignore[arg-type]
	)


async def send_request(auth_user: AuthenticatedUser, to_user_id: str) -> RequestSummary:
	"""Send a friend request; a pending request the other way is accepted instead."""
	policy.guard_not_self(auth_user.id, to_user_id)
	await policy.enforce_request_limits("friend_request", auth_user.id)
	sender = await policy.load_user(auth_user.id)
	recipient = await policy.load_user(to_user_id)
	policy.guard_not_friends(sender, recipient.uid)

	store = get_store()
	reverse = await store.get(friend_request_path(request_id(recipient.uid, sender.uid)))
	if reverse.exists:
		logger.info("mutual friend request auto-accepted", extra={"uid": sender.uid, "peer": recipient.uid})
		return await accept_request(auth_user, reverse.id)

	rid = request_id(sender.uid, recipient.uid)
	existing = await store.get(friend_request_path(rid))
	if existing.exists:
		audit.inc_friend_request("already_sent")
		raise RequestAlreadySent()

	request = PendingRequest(
		id=rid,
		from_user_id=sender.uid,
		from_username=sender.username,
		to_user_id=recipient.uid,
		to_username=recipient.username,
	)
	batch = store.batch()
	batch.set(friend_request_path(rid), request.to_doc())
	batch.update(user_path(sender.uid), {"outgoing_requests": ArrayUnion(rid)})
	batch.update(user_path(recipient.uid), {"incoming_requests": ArrayUnion(rid)})
	await batch.commit()

	summary = RequestSummary.from_model(await _load_request(rid))
	audit.inc_friend_request("sent")
	await audit.log_request_event("friend_requests", "sent", {"id": rid, "from": sender.uid, "to": recipient.uid})
	await sockets.emit_friend_request_new(recipient.uid, summary.model_dump(mode="json"))
	return summary


async def incoming_requests(auth_user: AuthenticatedUser) -> List[RequestSummary]:
	return await _list("to_user_id", auth_user.id)


async def outgoing_requests(auth_user: AuthenticatedUser) -> List[RequestSummary]:
	return await _list("from_user_id", auth_user.id)


def _close_request(batch, request: PendingRequest) -> None:
	batch.update(user_path(request.from_user_id), {"outgoing_requests": ArrayRemove(request.id)})
	batch.update(user_path(request.to_user_id), {"incoming_requests": ArrayRemove(request.id)})
	batch.delete(friend_request_path(request.id))


async def accept_request(auth_user: AuthenticatedUser, rid: str) -> RequestSummary:
	request = await _load_request(rid)
	policy.guard_recipient(request, auth_user.id)
	await require_profile(request.from_user_id)

	batch = get_store().batch()
	batch.update(user_path(request.from_user_id), {"friends": ArrayUnion(request.to_user_id)})
	batch.update(user_path(request.to_user_id), {"friends": ArrayUnion(request.from_user_id)})
	_close_request(batch, request)
	await batch.commit()

	audit.inc_friend_request("accepted")
	await audit.log_request_event("friend_requests", "accepted", {"id": rid, "by": auth_user.id})
	await _emit_request_update(request, "accepted")
	await _emit_friend_update(request.from_user_id, request.to_user_id, "accepted")
	return RequestSummary.from_model(request, status="accepted")


async def decline_request(auth_user: AuthenticatedUser, rid: str) -> RequestSummary:
	request = await _load_request(rid)
	policy.guard_recipient(request, auth_user.id)
	batch = get_store().batch()
	_close_request(batch, request)
	await batch.commit()
	audit.inc_friend_request("declined")
	await audit.log_request_event("friend_requests", "declined", {"id": rid, "by": auth_user.id})
	await _emit_request_update(request, "declined")
	return RequestSummary.from_model(request, status="declined")


async def cancel_request(auth_user: AuthenticatedUser, rid: str) -> RequestSummary:
	request = await _load_request(rid)
	policy.guard_sender(request, auth_user.id)
	batch = get_store().batch()
	_close_request(batch, request)
	await batch.commit()
	audit.inc_friend_request("cancelled")
	await audit.log_request_event("friend_requests", "cancelled", {"id": rid, "by": auth_user.id})
	await _emit_request_update(request, "cancelled")
	return RequestSummary.from_model(request, status="cancelled")


async def remove_friend(auth_user: AuthenticatedUser, friend_id: str) -> None:
	"""End a friendship on both sides, along with any blend between the pair."""
	profile = await require_profile(auth_user.id)
	policy.guard_friends(profile, friend_id)
	store = get_store()
	pending_blends = await store.get_many(
		[
			blend_request_path(request_id(auth_user.id, friend_id)),
			blend_request_path(request_id(friend_id, auth_user.id)),
		]
	)
	batch = store.batch()
	batch.update(user_path(auth_user.id), {"friends": ArrayRemove(friend_id), "active_blends_with": ArrayRemove(friend_id)})
	friend = await store.get(user_path(friend_id))
	if friend.exists:
		batch.update(user_path(friend_id), {"friends": ArrayRemove(auth_user.id), "active_blends_with": ArrayRemove(auth_user.id)})
	for snapshot in pending_blends:
		if snapshot.exists:
			batch.delete(blend_request_path(snapshot.id))
	await batch.commit()
	await audit.log_request_event("friendships", "removed", {"user": auth_user.id, "friend": friend_id})
	await _emit_friend_update(auth_user.id, friend_id, "removed")


async def list_friends(auth_user: AuthenticatedUser) -> List[PublicProfile]:
	profile = await require_profile(auth_user.id)
	friends = await load_profiles(profile.friends)
	return [PublicProfile.from_model(friend) for friend in friends]
