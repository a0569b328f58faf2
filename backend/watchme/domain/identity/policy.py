"""Validation helpers and guards for identity flows."""

from __future__ import annotations

import re
from typing import Optional

from watchme.domain.identity.exceptions import IdentityRateLimited, InvalidInput
from watchme.infra import rate_limit

USERNAME_PATTERN = re.compile(r"^[a-z0-9_.]{3,30}$")
PASSWORD_MIN_LENGTH = 6
LOGIN_PER_MINUTE = 10
SIGNUP_PER_MINUTE = 20


def normalise_email(email: str) -> str:
	return (email or "").strip().lower()


def validate_password(password: str) -> None:
	if len(password or "") < PASSWORD_MIN_LENGTH:
		raise InvalidInput("weak_password")


def normalise_username(value: str) -> str:
	username = (value or "").strip().lower()
	if not USERNAME_PATTERN.match(username):
		raise InvalidInput("invalid_username")
	return username


def default_username(uid: str, email: Optional[str]) -> str:
	"""Email local part when available, otherwise ``user_`` plus the uid prefix."""
	if email and "@" in email:
		local = re.sub(r"[^a-z0-9_.]", "", email.split("@", 1)[0].lower())
		if len(local) >= 3:
			return local[:30]
	return f"user_{uid[:6].lower()}"


async def enforce_login_rate(email: str) -> None:
	if not await rate_limit.allow("login", email, limit=LOGIN_PER_MINUTE, window_seconds=60):
		raise IdentityRateLimited("login_rate_limited")


async def enforce_signup_rate(actor: str) -> None:
	if not await rate_limit.allow("signup", actor, limit=SIGNUP_PER_MINUTE, window_seconds=60):
		raise IdentityRateLimited("signup_rate_limited")
