"""Authentication helpers for FastAPI endpoints.

- Bearer JWT verification (HS256) using settings.secret_key.
- Dev headers (X-User-Id) are only respected in development.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from watchme.infra import jwt as jwt_helper
from watchme.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	email: Optional[str] = None
	is_anonymous: bool = False
	session_id: Optional[str] = None


_bearer_scheme = HTTPBearer(auto_error=False)


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return an AuthenticatedUser.

	Requirements:
	- issuer="watchme-api", audience="watchme-app"
	- required claims: sub, sid, exp, iat
	"""
	try:
		payload = jwt_helper.decode_access(token)
	except Exception:
		# Normalise all decode failures to invalid_token for the API surface
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")

	sub = str(payload.get("sub") or "").strip()
	if not sub:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
	email = payload.get("email")
	return AuthenticatedUser(
		id=sub,
		email=str(email) if email else None,
		is_anonymous=bool(payload.get("anon", False)),
		session_id=str(payload.get("sid")),
	)


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user.

	In development we allow the X-User-Id header. In all other environments a
	valid Bearer JWT is required.
	"""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)

	if settings.is_dev() and x_user_id:
		return AuthenticatedUser(id=x_user_id)

	raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")


def user_from_socket_auth(auth: Optional[dict], headers: dict[str, str]) -> Optional[AuthenticatedUser]:
	"""Resolve a Socket.IO handshake into a user, mirroring get_current_user."""
	payload = auth or {}
	token = payload.get("token")
	header = headers.get("authorization") or ""
	if not token and header.lower().startswith("bearer "):
		token = header.split(" ", 1)[1]
	if token:
		try:
			return verify_access_jwt(str(token))
		except HTTPException:
			return None
	if settings.is_dev():
		user_id = payload.get("userId") or headers.get("x-user-id")
		if user_id:
			return AuthenticatedUser(id=str(user_id))
	return None
