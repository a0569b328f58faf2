"""REST API surface for friend requests, friendships and blend requests."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from watchme.domain.identity.schemas import PublicProfile
from watchme.domain.social import blend_requests, service
from watchme.domain.social.exceptions import (
	RequestConflict,
	RequestForbidden,
	RequestNotFound,
	SocialError,
	UserNotFound,
)
from watchme.domain.social.schemas import RequestSummary, SendRequestBody
from watchme.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["social"])


def _map_error(exc: SocialError) -> HTTPException:
	if isinstance(exc, RequestConflict):
		return HTTPException(status.HTTP_409_CONFLICT, detail=exc.reason)
	if isinstance(exc, RequestForbidden):
		return HTTPException(status.HTTP_403_FORBIDDEN, detail=exc.reason)
	if isinstance(exc, (RequestNotFound, UserNotFound)):
		return HTTPException(status.HTTP_404_NOT_FOUND, detail=exc.reason)
	return HTTPException(status.HTTP_400_BAD_REQUEST, detail=exc.reason)


@router.get("/friends", response_model=List[PublicProfile])
async def list_friends(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[PublicProfile]:
	return await service.list_friends(auth_user)


@router.delete("/friends/{friend_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_friend(
	friend_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await service.remove_friend(auth_user, friend_id)
	except SocialError as exc:
		raise _map_error(exc) from None


@router.post("/friend-requests", response_model=RequestSummary, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
	payload: SendRequestBody,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> RequestSummary:
	try:
		return await service.send_request(auth_user, payload.to_user_id)
	except SocialError as exc:
		raise _map_error(exc) from None


@router.get("/friend-requests/incoming", response_model=List[RequestSummary])
async def incoming(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[RequestSummary]:
	return await service.incoming_requests(auth_user)


@router.get("/friend-requests/outgoing", response_model=List[RequestSummary])
async def outgoing(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[RequestSummary]:
	return await service.outgoing_requests(auth_user)


@router.post("/friend-requests/{request_id}/accept", response_model=RequestSummary)
async def accept_friend_request(
	request_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> RequestSummary:
	try:
		return await service.accept_request(auth_user, request_id)
	except SocialError as exc:
		raise _map_error(exc) from None


@router.post("/friend-requests/{request_id}/decline", response_model=RequestSummary)
async def decline_friend_request(
	request_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> RequestSummary:
	try:
		return await service.decline_request(auth_user, request_id)
	except SocialError as exc:
		raise _map_error(exc) from None


@router.post("/friend-requests/{request_id}/cancel", response_model=RequestSummary)
async def cancel_friend_request(
	request_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> RequestSummary:
	try:
		return await service.cancel_request(auth_user, request_id)
	except SocialError as exc:
		raise _map_error(exc) from None


@router.post("/blend-requests", response_model=RequestSummary, status_code=status.HTTP_201_CREATED)
async def send_blend_request(
	payload: SendRequestBody,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> RequestSummary:
	try:
		return await blend_requests.send_blend_request(auth_user, payload.to_user_id)
	except SocialError as exc:
		raise _map_error(exc) from None


@router.get("/blend-requests", response_model=List[RequestSummary])
async def list_blend_requests(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[RequestSummary]:
	return await blend_requests.list_blend_requests(auth_user)


@router.post("/blend-requests/{request_id}/accept", response_model=RequestSummary)
async def accept_blend_request(
	request_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> RequestSummary:
	try:
		return await blend_requests.accept_blend_request(auth_user, request_id)
	except SocialError as exc:
		raise _map_error(exc) from None


@router.post("/blend-requests/{request_id}/decline", response_model=RequestSummary)
async def decline_blend_request(
	request_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> RequestSummary:
	try:
		return await blend_requests.decline_blend_request(auth_user, request_id)
	except SocialError as exc:
		raise _map_error(exc) from None


@router.delete("/blends/{friend_id}", status_code=status.HTTP_204_NO_CONTENT)
async def end_blend(
	friend_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await blend_requests.end_blend(auth_user, friend_id)
	except SocialError as exc:
		raise _map_error(exc) from None
