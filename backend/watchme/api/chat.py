"""REST endpoints for one-to-one chats. Live delivery goes over the socket namespace."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from watchme.domain.chat import service
from watchme.domain.chat.exceptions import ChatError, ChatForbidden, ChatNotFound
from watchme.domain.chat.schemas import ChatSummary, MessageOut, SendMessageRequest
from watchme.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/chats", tags=["chat"])


def _map_error(exc: ChatError) -> HTTPException:
	if isinstance(exc, ChatForbidden):
		return HTTPException(status.HTTP_403_FORBIDDEN, detail=exc.reason)
	if isinstance(exc, ChatNotFound):
		return HTTPException(status.HTTP_404_NOT_FOUND, detail=exc.reason)
	return HTTPException(status.HTTP_400_BAD_REQUEST, detail=exc.reason)


@router.get("", response_model=List[ChatSummary])
async def list_chats(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[ChatSummary]:
	return await service.list_chats(auth_user)


@router.get("/{peer_id}/messages", response_model=List[MessageOut])
async def list_messages(
	peer_id: str,
	limit: int = Query(default=100, ge=1, le=500),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[MessageOut]:
	try:
		return await service.list_messages(auth_user, peer_id, limit=limit)
	except ChatError as exc:
		raise _map_error(exc) from None


@router.post("/{peer_id}/messages", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
async def send_message(
	peer_id: str,
	payload: SendMessageRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> MessageOut:
	try:
		return await service.send_message(auth_user, peer_id, payload.text)
	except ChatError as exc:
		raise _map_error(exc) from None


@router.post("/{peer_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_read(
	peer_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await service.mark_read(auth_user, peer_id)
	except ChatError as exc:
		raise _map_error(exc) from None
