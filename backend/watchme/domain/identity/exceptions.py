"""Identity errors carrying the HTTP status the API surfaces for them."""

from __future__ import annotations


class IdentityError(Exception):
	"""Raised for identity issues with an HTTP status mapping."""

	def __init__(self, reason: str, *, status_code: int = 400) -> None:
		super().__init__(reason)
		self.reason = reason
		self.status_code = status_code


class LoginFailed(IdentityError):
	def __init__(self, reason: str = "invalid_credentials") -> None:
		super().__init__(reason, status_code=401)


class InvalidCredential(IdentityError):
	"""The identity provider rejected the presented token."""

	def __init__(self, reason: str = "invalid_credential") -> None:
		super().__init__(reason, status_code=401)


class ProviderUnavailable(IdentityError):
	def __init__(self, reason: str = "google_unavailable") -> None:
		super().__init__(reason, status_code=503)


class EmailInUse(IdentityError):
	def __init__(self) -> None:
		super().__init__("email_in_use", status_code=409)


class CredentialInUse(IdentityError):
	def __init__(self) -> None:
		super().__init__("credential_in_use", status_code=409)


class NotAnonymous(IdentityError):
	def __init__(self) -> None:
		super().__init__("account_not_anonymous", status_code=409)


class ProfileNotFound(IdentityError):
	def __init__(self) -> None:
		super().__init__("profile_not_found", status_code=404)


class UsernameTaken(IdentityError):
	def __init__(self) -> None:
		super().__init__("username_taken", status_code=409)


class InvalidInput(IdentityError):
	def __init__(self, reason: str) -> None:
		super().__init__(reason, status_code=400)


class SessionInvalid(IdentityError):
	def __init__(self, reason: str = "invalid_refresh") -> None:
		super().__init__(reason, status_code=401)


class IdentityRateLimited(IdentityError):
	def __init__(self, reason: str = "rate_limited") -> None:
		super().__init__(reason, status_code=429)
