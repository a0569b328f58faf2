"""Google sign-in: verify an ID token with Google's tokeninfo endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from watchme.domain.identity.exceptions import InvalidCredential, ProviderUnavailable
from watchme.settings import settings

logger = logging.getLogger(__name__)

_VALID_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


@dataclass(slots=True)
class GoogleIdentity:
	subject: str
	email: str
	email_verified: bool
	name: Optional[str] = None
	picture: Optional[str] = None


def _is_true(value: object) -> bool:
	return value is True or str(value).lower() == "true"


async def verify_id_token(id_token: str, *, http: Optional[httpx.AsyncClient] = None) -> GoogleIdentity:
	"""Return the verified identity or raise InvalidCredential/ProviderUnavailable."""
	client = http or httpx.AsyncClient(timeout=10.0)
	try:
		response = await client.get(settings.google_tokeninfo_url, params={"id_token": id_token})
	except httpx.HTTPError as exc:
		logger.warning("google tokeninfo unreachable: %s", exc)
		raise ProviderUnavailable() from exc
	finally:
		if http is None:
			await client.aclose()
	if response.status_code >= 500:
		raise ProviderUnavailable()
	if response.status_code != 200:
		raise InvalidCredential()
	claims = response.json()
	if claims.get("iss") not in _VALID_ISSUERS:
		raise InvalidCredential("invalid_issuer")
	if settings.google_client_id and claims.get("aud") != settings.google_client_id:
		raise InvalidCredential("invalid_audience")
	subject = str(claims.get("sub") or "")
	email = str(claims.get("email") or "").strip().lower()
	if not subject or not email:
		raise InvalidCredential()
	if not _is_true(claims.get("email_verified")):
		raise InvalidCredential("email_unverified")
	return GoogleIdentity(
		subject=subject,
		email=email,
		email_verified=True,
		name=claims.get("name"),
		picture=claims.get("picture"),
	)
