"""Local object storage for profile photos.

Files land below ``settings.upload_root`` and are served by the app at
``/uploads``; the returned URL is what gets written onto the user document.
"""

from __future__ import annotations

import re
from pathlib import Path

import ulid

from watchme.settings import settings

PROFILE_PHOTO_PREFIX = "profile_photos"
MAX_PHOTO_BYTES = 5 * 1024 * 1024
ALLOWED_MIME_TYPES = {
	"image/jpeg": ".jpg",
	"image/png": ".png",
	"image/webp": ".webp",
	"image/gif": ".gif",
}
_SAFE_SEGMENT = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


class StorageError(Exception):
	reason: str = "storage_error"

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class UnsupportedMediaType(StorageError):
	reason = "unsupported_media_type"


class FileTooLarge(StorageError):
	reason = "file_too_large"


def upload_root() -> Path:
	root = Path(settings.upload_root).resolve()
	root.mkdir(parents=True, exist_ok=True)
	return root


def public_url(key: str) -> str:
	return f"{settings.upload_base_url.rstrip('/')}/{key}"


def save_profile_photo(user_id: str, content_type: str | None, data: bytes) -> str:
	"""Store a profile photo and return its public download URL."""
	mime = (content_type or "").lower()
	ext = ALLOWED_MIME_TYPES.get(mime)
	if ext is None:
		raise UnsupportedMediaType()
	if not data:
		raise StorageError("empty_file")
	if len(data) > MAX_PHOTO_BYTES:
		raise FileTooLarge()
	if not _SAFE_SEGMENT.match(user_id):
		raise StorageError("invalid_owner")
	key = f"{PROFILE_PHOTO_PREFIX}/{user_id}/{ulid.new().str}{ext}"
	target = upload_root() / key
	target.parent.mkdir(parents=True, exist_ok=True)
	target.write_bytes(data)
	return public_url(key)
