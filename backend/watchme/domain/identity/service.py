"""Sign-up, sign-in and account linking; every path ends in ensure_profile."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import asyncpg
import ulid
from redis.exceptions import RedisError

from watchme.domain.identity import google, policy, sessions
from watchme.domain.identity import profile_service
from watchme.domain.identity.exceptions import (
	CredentialInUse,
	EmailInUse,
	LoginFailed,
	NotAnonymous,
	ProfileNotFound,
	UsernameTaken,
)
from watchme.domain.identity.models import credentials_path, new_profile_doc, user_path, username_path
from watchme.domain.identity.schemas import SessionResponse
from watchme.infra.auth import AuthenticatedUser
from watchme.infra.docstore import SERVER_TIMESTAMP, DocumentStoreError, Transaction, get_store
from watchme.infra.password import hash_password, verify_password
from watchme.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

PROFILE_CREATE_ATTEMPTS = 3
PROFILE_RETRY_DELAY_SECONDS = 0.2


async def _upsert_profile(
	uid: str,
	*,
	email: Optional[str],
	is_anonymous: bool,
	display_name: Optional[str],
	photo_url: Optional[str],
) -> None:
	store = get_store()

	async def _txn(tx: Transaction) -> None:
		snapshot = await tx.get(user_path(uid))
		if not snapshot.exists:
			username = await profile_service.claim_default_username(tx, uid, email)
			if username is None:
				raise UsernameTaken()
			tx.set(username_path(username), {"uid": uid, "claimed_at": SERVER_TIMESTAMP})
			tx.set(
				user_path(uid),
				new_profile_doc(
					uid,
					email=email,
					is_anonymous=is_anonymous,
					username=username,
					display_name=display_name,
					photo_url=photo_url,
				),
			)
			return
		if snapshot.get("is_anonymous") and not is_anonymous:
			fields: dict = {"is_anonymous": False, "email": email}
			if display_name and not snapshot.get("display_name"):
				fields["display_name"] = display_name
			if photo_url and not snapshot.get("photo_url"):
				fields["photo_url"] = photo_url
			tx.update(user_path(uid), fields)

	await store.run_transaction(_txn)


async def ensure_profile(
	uid: str,
	*,
	email: Optional[str],
	is_anonymous: bool,
	display_name: Optional[str] = None,
	photo_url: Optional[str] = None,
) -> bool:
	"""Create ``users/{uid}`` on first sign-in, or record an anonymous upgrade.

	Store failures are retried with a growing delay and then logged and
	swallowed so that signing in never blocks on the profile document.
	Returns whether the profile is in place.
	"""
	for attempt in range(1, PROFILE_CREATE_ATTEMPTS + 1):
		try:
			await _upsert_profile(
				uid,
				email=email,
				is_anonymous=is_anonymous,
				display_name=display_name,
				photo_url=photo_url,
			)
			return True
		except (DocumentStoreError, RedisError, asyncpg.PostgresError, OSError):
			if attempt == PROFILE_CREATE_ATTEMPTS:
				obs_metrics.inc_profile_create_failure()
				logger.exception("profile creation failed", extra={"uid": uid, "attempts": attempt})
				return False
			await asyncio.sleep(PROFILE_RETRY_DELAY_SECONDS * attempt)
	return False


async def register(email: str, password: str, *, display_name: Optional[str] = None) -> SessionResponse:
	email = policy.normalise_email(email)
	policy.validate_password(password)
	await policy.enforce_signup_rate(email)
	password_hash = hash_password(password)
	uid = ulid.new().str
	cred_path = credentials_path("email", email)

	async def _txn(tx: Transaction) -> None:
		snapshot = await tx.get(cred_path)
		if snapshot.exists:
			raise EmailInUse()
		tx.set(cred_path, {"uid": uid, "provider": "password", "password_hash": password_hash, "created_at": SERVER_TIMESTAMP})

	try:
		await get_store().run_transaction(_txn)
	except EmailInUse:
		obs_metrics.inc_auth("register", "email_in_use")
		raise
	await ensure_profile(uid, email=email, is_anonymous=False, display_name=display_name)
	obs_metrics.inc_auth("register", "ok")
	return await sessions.issue_session(uid, email=email, is_anonymous=False)


async def login(email: str, password: str) -> SessionResponse:
	email = policy.normalise_email(email)
	await policy.enforce_login_rate(email)
	snapshot = await get_store().get(credentials_path("email", email))
	password_hash = snapshot.get("password_hash") if snapshot.exists else None
	# Same error for unknown email and wrong password to prevent enumeration
	if not password_hash or not verify_password(password_hash, password):
		obs_metrics.inc_auth("password", "invalid_credentials")
		raise LoginFailed()
	uid = str(snapshot.get("uid"))
	await ensure_profile(uid, email=email, is_anonymous=False)
	obs_metrics.inc_auth("password", "ok")
	return await sessions.issue_session(uid, email=email, is_anonymous=False)


async def _resolve_google_uid(identity: google.GoogleIdentity, *, link_uid: Optional[str] = None) -> str:
	google_path = credentials_path("google", identity.subject)
	email_path = credentials_path("email", identity.email)

	async def _txn(tx: Transaction) -> str:
		google_snap = await tx.get(google_path)
		email_snap = await tx.get(email_path)
		if google_snap.exists:
			existing = str(google_snap.get("uid"))
			if link_uid and existing != link_uid:
				raise CredentialInUse()
			return existing
		if link_uid:
			if email_snap.exists and str(email_snap.get("uid")) != link_uid:
				raise CredentialInUse()
			uid = link_uid
		elif email_snap.exists:
			# Verified Google email matching a password account signs into that account
			uid = str(email_snap.get("uid"))
		else:
			uid = ulid.new().str
		tx.set(google_path, {"uid": uid, "provider": "google", "email": identity.email, "created_at": SERVER_TIMESTAMP})
		return uid

	return await get_store().run_transaction(_txn)


async def sign_in_with_google(id_token: str) -> SessionResponse:
	identity = await google.verify_id_token(id_token)
	uid = await _resolve_google_uid(identity)
	await ensure_profile(
		uid,
		email=identity.email,
		is_anonymous=False,
		display_name=identity.name,
		photo_url=identity.picture,
	)
	obs_metrics.inc_auth("google", "ok")
	return await sessions.issue_session(uid, email=identity.email, is_anonymous=False)


async def sign_in_anonymously(*, client_ip: str = "unknown") -> SessionResponse:
	await policy.enforce_signup_rate(f"anon:{client_ip}")
	uid = ulid.new().str
	await ensure_profile(uid, email=None, is_anonymous=True)
	obs_metrics.inc_auth("anonymous", "ok")
	return await sessions.issue_session(uid, email=None, is_anonymous=True)


async def _require_anonymous(uid: str) -> None:
	snapshot = await get_store().get(user_path(uid))
	if not snapshot.exists:
		raise ProfileNotFound()
	if not snapshot.get("is_anonymous"):
		raise NotAnonymous()


async def link_with_password(auth_user: AuthenticatedUser, email: str, password: str) -> SessionResponse:
	"""Upgrade an anonymous account to email/password, keeping its uid and data."""
	uid = auth_user.id
	email = policy.normalise_email(email)
	policy.validate_password(password)
	await _require_anonymous(uid)
	password_hash = hash_password(password)
	cred_path = credentials_path("email", email)

	async def _txn(tx: Transaction) -> None:
		snapshot = await tx.get(cred_path)
		if snapshot.exists:
			raise EmailInUse()
		tx.set(cred_path, {"uid": uid, "provider": "password", "password_hash": password_hash, "created_at": SERVER_TIMESTAMP})

	await get_store().run_transaction(_txn)
	await ensure_profile(uid, email=email, is_anonymous=False)
	if auth_user.session_id:
		await sessions.revoke(auth_user.session_id)
	obs_metrics.inc_auth("link_password", "ok")
	return await sessions.issue_session(uid, email=email, is_anonymous=False)


async def link_with_google(auth_user: AuthenticatedUser, id_token: str) -> SessionResponse:
	uid = auth_user.id
	await _require_anonymous(uid)
	identity = await google.verify_id_token(id_token)
	await _resolve_google_uid(identity, link_uid=uid)
	await ensure_profile(
		uid,
		email=identity.email,
		is_anonymous=False,
		display_name=identity.name,
		photo_url=identity.picture,
	)
	if auth_user.session_id:
		await sessions.revoke(auth_user.session_id)
	obs_metrics.inc_auth("link_google", "ok")
	return await sessions.issue_session(uid, email=identity.email, is_anonymous=False)


async def refresh(refresh_token: str) -> SessionResponse:
	return await sessions.refresh(refresh_token)


async def logout(auth_user: AuthenticatedUser, refresh_token: Optional[str] = None) -> None:
	if refresh_token:
		await sessions.revoke_refresh_token(refresh_token)
	elif auth_user.session_id:
		await sessions.revoke(auth_user.session_id)
	obs_metrics.inc_auth("logout", "ok")
