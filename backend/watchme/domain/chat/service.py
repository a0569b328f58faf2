"""One-to-one chats between friends."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import ulid

from watchme.domain.chat import sockets
from watchme.domain.chat.exceptions import ChatForbidden, ChatNotFound, InvalidMessage
from watchme.domain.chat.models import (
	MESSAGE_MAX_LENGTH,
	RECOMMENDATION_PREVIEW,
	chat_id,
	chat_path,
	is_unread,
	message_path,
	messages_collection,
)
from watchme.domain.chat.schemas import (
	ChatMessagePayload,
	ChatReadPayload,
	ChatSummary,
	LastMessage,
	MessageOut,
	MovieRef,
)
from watchme.domain.identity.profile_service import load_profiles, require_profile
from watchme.domain.identity.schemas import PublicProfile
from watchme.infra.auth import AuthenticatedUser
from watchme.infra.docstore import SERVER_TIMESTAMP, ArrayUnion, Filter, get_store
from watchme.obs import metrics as obs_metrics

DEFAULT_PAGE = 100


async def _require_friend(user_id: str, peer_id: str) -> None:
	if user_id == peer_id:
		raise ChatForbidden("self_chat")
	profile = await require_profile(user_id)
	if not profile.is_friend(peer_id):
		raise ChatForbidden()


async def _post(
	sender_id: str,
	peer_id: str,
	message: Dict[str, Any],
	preview: str,
) -> MessageOut:
	"""Write the message and the chat's last-message summary in one batch."""
	cid = chat_id(sender_id, peer_id)
	store = get_store()
	chat = await store.get(chat_path(cid))
	message_id = ulid.new().str
	last_message = {"text": preview, "sender_id": sender_id, "created_at": SERVER_TIMESTAMP, "read_by": [sender_id]}

	batch = store.batch()
	if chat.exists:
		batch.update(chat_path(cid), {"last_message": last_message})
	else:
		batch.set(
			chat_path(cid),
			{"users": sorted((sender_id, peer_id)), "created_at": SERVER_TIMESTAMP, "last_message": last_message},
		)
	batch.set(message_path(cid, message_id), {**message, "sender_id": sender_id, "created_at": SERVER_TIMESTAMP})
	await batch.commit()

	stored = await store.get(message_path(cid, message_id))
	out = MessageOut.from_doc(message_id, stored.data or {})
	obs_metrics.inc_chat_message(out.type)
	payload = ChatMessagePayload(chat_id=cid, message=out).model_dump(mode="json")
	await sockets.emit_message(peer_id, payload)
	await sockets.emit_message(sender_id, payload)
	return out


async def send_message(auth_user: AuthenticatedUser, peer_id: str, text: str) -> MessageOut:
	body = (text or "").strip()
	if not body or len(body) > MESSAGE_MAX_LENGTH:
		raise InvalidMessage()
	await _require_friend(auth_user.id, peer_id)
	return await _post(auth_user.id, peer_id, {"text": body, "type": "text"}, body)


async def send_recommendation_message(auth_user: AuthenticatedUser, peer_id: str, movie: MovieRef) -> MessageOut:
	await _require_friend(auth_user.id, peer_id)
	message = {
		"text": f"Recommended: {movie.title}",
		"type": "recommendation",
		"movie": movie.model_dump(mode="json"),
	}
	return await _post(auth_user.id, peer_id, message, RECOMMENDATION_PREVIEW)


def _summary(snapshot, user_id: str, peers: Dict[str, PublicProfile]) -> ChatSummary:
	users = [str(uid) for uid in snapshot.get("users") or []]
	last = snapshot.get("last_message")
	peer_id = next((uid for uid in users if uid != user_id), None)
	return ChatSummary(
		id=snapshot.id,
		users=users,
		peer=peers.get(peer_id) if peer_id else None,
		last_message=LastMessage.model_validate(last) if last else None,
		unread=is_unread(last, user_id),
		created_at=snapshot.get("created_at"),
	)


async def list_chats(auth_user: AuthenticatedUser) -> List[ChatSummary]:
	"""Chats the caller takes part in, most recent activity first."""
	snapshots = await get_store().query(
		"chats",
		[Filter("users", "array-contains", auth_user.id)],
		order_by="last_message.created_at",
		descending=True,
	)
	peer_ids = [uid for snap in snapshots for uid in snap.get("users") or [] if uid != auth_user.id]
	peers = {profile.uid: PublicProfile.from_model(profile) for profile in await load_profiles(peer_ids)}
	return [_summary(snap, auth_user.id, peers) for snap in snapshots]


async def list_messages(
	auth_user: AuthenticatedUser,
	peer_id: str,
	*,
	limit: Optional[int] = DEFAULT_PAGE,
) -> List[MessageOut]:
	cid = chat_id(auth_user.id, peer_id)
	chat = await get_store().get(chat_path(cid))
	if not chat.exists:
		await _require_friend(auth_user.id, peer_id)
		return []
	if auth_user.id not in (chat.get("users") or []):
		raise ChatNotFound()
	snapshots = await get_store().query(messages_collection(cid), order_by="created_at")
	if limit:
		snapshots = snapshots[-int(limit):]
	return [MessageOut.from_doc(snap.id, snap.data or {}) for snap in snapshots]


async def mark_read(auth_user: AuthenticatedUser, peer_id: str) -> None:
	cid = chat_id(auth_user.id, peer_id)
	store = get_store()
	chat = await store.get(chat_path(cid))
	if not chat.exists or auth_user.id not in (chat.get("users") or []):
		raise ChatNotFound()
	last = chat.get("last_message")
	if not last or not is_unread(last, auth_user.id):
		return
	await store.update(chat_path(cid), {"last_message.read_by": ArrayUnion(auth_user.id)})
	await sockets.emit_read(peer_id, ChatReadPayload(chat_id=cid, user_id=auth_user.id).model_dump(mode="json"))
