"""Session tokens: JWT access tokens plus rotating refresh tokens.

Refresh tokens are ``{session_id}.{secret}``; only a peppered hash of the
secret is stored in Redis. Each refresh rotates the secret, and presenting a
stale secret revokes the whole session.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Optional

import ulid

from watchme.domain.identity import schemas
from watchme.domain.identity.exceptions import SessionInvalid
from watchme.infra import jwt as jwt_helper
from watchme.infra.redis import redis_client
from watchme.obs import metrics as obs_metrics
from watchme.settings import settings


def _h(secret: str) -> str:
	return hashlib.sha256((settings.refresh_pepper + secret).encode()).hexdigest()


def _session_key(session_id: str) -> str:
	return f"session:{session_id}"


def _refresh_ttl_seconds() -> int:
	return settings.refresh_ttl_days * 24 * 60 * 60


def _access_token(user_id: str, session_id: str, *, email: Optional[str], is_anonymous: bool) -> str:
	payload: dict[str, object] = {"sub": user_id, "sid": session_id, "anon": is_anonymous}
	if email:
		payload["email"] = email
	return jwt_helper.encode_access(payload)


async def issue_session(user_id: str, *, email: Optional[str], is_anonymous: bool) -> schemas.SessionResponse:
	session_id = ulid.new().str
	secret = secrets.token_urlsafe(32)
	key = _session_key(session_id)
	await redis_client.hset(
		key,
		mapping={
			"user_id": user_id,
			"email": email or "",
			"anon": "1" if is_anonymous else "0",
			"secret_hash": _h(secret),
		},
	)
	await redis_client.expire(key, _refresh_ttl_seconds())
	return schemas.SessionResponse(
		user_id=user_id,
		is_anonymous=is_anonymous,
		access_token=_access_token(user_id, session_id, email=email, is_anonymous=is_anonymous),
		refresh_token=f"{session_id}.{secret}",
		expires_in=settings.access_ttl_minutes * 60,
	)


def _split_refresh(token: str) -> tuple[str, str]:
	session_id, _, secret = (token or "").partition(".")
	if not session_id or not secret:
		raise SessionInvalid()
	return session_id, secret


async def refresh(refresh_token: str) -> schemas.SessionResponse:
	session_id, secret = _split_refresh(refresh_token)
	key = _session_key(session_id)
	record = await redis_client.hgetall(key)
	if not record:
		obs_metrics.inc_auth("refresh", "unknown_session")
		raise SessionInvalid()
	if not hmac.compare_digest(record.get("secret_hash", ""), _h(secret)):
		# A rotated secret came back: treat the session as stolen.
		await redis_client.delete(key)
		obs_metrics.inc_auth("refresh", "reuse_detected")
		raise SessionInvalid("refresh_reuse_detected")
	new_secret = secrets.token_urlsafe(32)
	await redis_client.hset(key, "secret_hash", _h(new_secret))
	await redis_client.expire(key, _refresh_ttl_seconds())
	user_id = record["user_id"]
	email = record.get("email") or None
	is_anonymous = record.get("anon") == "1"
	obs_metrics.inc_auth("refresh", "ok")
	return schemas.SessionResponse(
		user_id=user_id,
		is_anonymous=is_anonymous,
		access_token=_access_token(user_id, session_id, email=email, is_anonymous=is_anonymous),
		refresh_token=f"{session_id}.{new_secret}",
		expires_in=settings.access_ttl_minutes * 60,
	)


async def revoke(session_id: str) -> None:
	await redis_client.delete(_session_key(session_id))


async def revoke_refresh_token(refresh_token: str) -> None:
	session_id, _ = _split_refresh(refresh_token)
	await revoke(session_id)
