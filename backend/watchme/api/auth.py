"""Authentication endpoints: email/password, Google, anonymous, linking and sessions."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from watchme.domain.identity import schemas, service
from watchme.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/auth", tags=["identity"])


def _client_ip(request: Request) -> str:
	client = request.client
	return client.host if client else "unknown"


@router.post("/register", response_model=schemas.SessionResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: schemas.RegisterRequest) -> schemas.SessionResponse:
	return await service.register(payload.email, payload.password, display_name=payload.display_name)


@router.post("/login", response_model=schemas.SessionResponse)
async def login(payload: schemas.LoginRequest) -> schemas.SessionResponse:
	return await service.login(payload.email, payload.password)


@router.post("/google", response_model=schemas.SessionResponse)
async def google_sign_in(payload: schemas.GoogleSignInRequest) -> schemas.SessionResponse:
	return await service.sign_in_with_google(payload.id_token)


@router.post("/anonymous", response_model=schemas.SessionResponse, status_code=status.HTTP_201_CREATED)
async def anonymous_sign_in(request: Request) -> schemas.SessionResponse:
	return await service.sign_in_anonymously(client_ip=_client_ip(request))


@router.post("/link/password", response_model=schemas.SessionResponse)
async def link_password(
	payload: schemas.LinkPasswordRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.SessionResponse:
	return await service.link_with_password(auth_user, payload.email, payload.password)


@router.post("/link/google", response_model=schemas.SessionResponse)
async def link_google(
	payload: schemas.GoogleSignInRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.SessionResponse:
	return await service.link_with_google(auth_user, payload.id_token)


@router.post("/refresh", response_model=schemas.SessionResponse)
async def refresh(payload: schemas.RefreshRequest) -> schemas.SessionResponse:
	return await service.refresh(payload.refresh_token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
	payload: schemas.LogoutRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	await service.logout(auth_user, payload.refresh_token)
