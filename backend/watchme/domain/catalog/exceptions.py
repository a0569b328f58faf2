"""Errors raised by the content-API client."""

from __future__ import annotations


class CatalogError(Exception):
	reason: str = "catalog_error"

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class CatalogUnavailable(CatalogError):
	reason = "catalog_unavailable"


class TitleNotFound(CatalogError):
	reason = "title_not_found"
