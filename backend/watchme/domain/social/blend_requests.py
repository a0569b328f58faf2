"""Blend requests: friends opting in to joint recommendations."""

from __future__ import annotations

from typing import List

from watchme.domain.identity.models import user_path
from watchme.domain.identity.profile_service import require_profile
from watchme.domain.social import audit, policy, sockets
from watchme.domain.social.exceptions import BlendAlreadyActive, NotFriends, RequestAlreadySent, RequestNotFound
from watchme.domain.social.models import BLEND_REQUESTS, PendingRequest, blend_request_path, request_id
from watchme.domain.social.schemas import BlendUpdatePayload, RequestSummary, RequestUpdatePayload
from watchme.infra.auth import AuthenticatedUser
from watchme.infra.docstore import ArrayRemove, ArrayUnion, Filter, get_store


async def _load(rid: str) -> PendingRequest:
	snapshot = await get_store().get(blend_request_path(rid))
	if not snapshot.exists:
		raise RequestNotFound()
	return PendingRequest.from_snapshot(snapshot)


async def _emit_blend(user_a: str, user_b: str, status: str) -> None:
	for uid, peer in ((user_a, user_b), (user_b, user_a)):
		payload = BlendUpdatePayload(user_id=uid, friend_id=peer, status=status)  # type: ignore[arg-type]
		await sockets.emit_blend_update(uid, payload.model_dump(mode="json"))


async def send_blend_request(auth_user: AuthenticatedUser, friend_id: str) -> RequestSummary:
	policy.guard_not_self(auth_user.id, friend_id)
	await policy.enforce_request_limits("blend_request", auth_user.id)
	sender = await policy.load_user(auth_user.id)
	recipient = await policy.load_user(friend_id)
	policy.guard_friends(sender, recipient.uid)
	if recipient.uid in sender.active_blends_with:
		raise BlendAlreadyActive()

	store = get_store()
	rid = request_id(sender.uid, recipient.uid)
	pending = await store.get_many([blend_request_path(rid), blend_request_path(request_id(recipient.uid, sender.uid))])
	if any(snapshot.exists for snapshot in pending):
		audit.inc_blend_request("already_sent")
		raise RequestAlreadySent()

	request = PendingRequest(
		id=rid,
		from_user_id=sender.uid,
		from_username=sender.username,
		to_user_id=recipient.uid,
		to_username=recipient.username,
	)
	await store.set(blend_request_path(rid), request.to_doc())
	summary = RequestSummary.from_model(await _load(rid))
	audit.inc_blend_request("sent")
	await audit.log_request_event("blend_requests", "sent", {"id": rid, "from": sender.uid, "to": recipient.uid})
	await sockets.emit_blend_request_new(recipient.uid, summary.model_dump(mode="json"))
	return summary


async def list_blend_requests(auth_user: AuthenticatedUser) -> List[RequestSummary]:
	snapshots = await get_store().query(
		BLEND_REQUESTS,
		[Filter("to_user_id", "==", auth_user.id), Filter("status", "==", "pending")],
		order_by="created_at",
		descending=True,
	)
	return [RequestSummary.from_model(PendingRequest.from_snapshot(snap)) for snap in snapshots]


async def accept_blend_request(auth_user: AuthenticatedUser, rid: str) -> RequestSummary:
	request = await _load(rid)
	policy.guard_recipient(request, auth_user.id)
	recipient = await require_profile(auth_user.id)
	if not recipient.is_friend(request.from_user_id):
		raise NotFriends()

	batch = get_store().batch()
	batch.update(user_path(request.from_user_id), {"active_blends_with": ArrayUnion(request.to_user_id)})
	batch.update(user_path(request.to_user_id), {"active_blends_with": ArrayUnion(request.from_user_id)})
	batch.delete(blend_request_path(rid))
	await batch.commit()

	audit.inc_blend_request("accepted")
	await audit.log_request_event("blend_requests", "accepted", {"id": rid, "by": auth_user.id})
	await sockets.emit_blend_request_update(
		request.from_user_id,
		RequestUpdatePayload(id=rid, status="accepted").model_dump(mode="json"),
	)
	await _emit_blend(request.from_user_id, request.to_user_id, "active")
	return RequestSummary.from_model(request, status="accepted")


async def decline_blend_request(auth_user: AuthenticatedUser, rid: str) -> RequestSummary:
	request = await _load(rid)
	policy.guard_recipient(request, auth_user.id)
	await get_store().delete(blend_request_path(rid))
	audit.inc_blend_request("declined")
	await audit.log_request_event("blend_requests", "declined", {"id": rid, "by": auth_user.id})
	await sockets.emit_blend_request_update(
		request.from_user_id,
		RequestUpdatePayload(id=rid, status="declined").model_dump(mode="json"),
	)
	return RequestSummary.from_model(request, status="declined")


async def end_blend(auth_user: AuthenticatedUser, friend_id: str) -> None:
	profile = await require_profile(auth_user.id)
	if friend_id not in profile.active_blends_with:
		raise RequestNotFound("blend_not_active")
	store = get_store()
	batch = store.batch()
	batch.update(user_path(auth_user.id), {"active_blends_with": ArrayRemove(friend_id)})
	friend = await store.get(user_path(friend_id))
	if friend.exists:
		batch.update(user_path(friend_id), {"active_blends_with": ArrayRemove(auth_user.id)})
	await batch.commit()
	audit.inc_blend_request("ended")
	await _emit_blend(auth_user.id, friend_id, "ended")
