"""Global error handlers ensuring request_id is included in JSON responses.

Errors shared by every feature (missing profile, content API, model, rate
limits, exhausted transactions) are mapped here; routers map their own
domain errors with ``_map_error``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from watchme.api.request_id import get_request_id
from watchme.domain.ai.exceptions import AIError
from watchme.domain.catalog.exceptions import CatalogError, TitleNotFound
from watchme.domain.identity.exceptions import IdentityError
from watchme.infra.docstore import TransactionAborted
from watchme.infra.rate_limit import RateLimitExceeded

logger = logging.getLogger(__name__)


def _error(request: Request, status_code: int, detail: str) -> JSONResponse:
	return JSONResponse(status_code=status_code, content={"detail": detail, "request_id": get_request_id(request)})


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		payload = {"detail": exc.detail, "request_id": get_request_id(request)}
		return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		payload = {"detail": "validation_error", "errors": exc.errors(), "request_id": get_request_id(request)}
		return JSONResponse(status_code=422, content=payload)

	@app.exception_handler(IdentityError)
	async def identity_exc_handler(request: Request, exc: IdentityError):  # type: ignore[override]
		return _error(request, exc.status_code, exc.reason)

	@app.exception_handler(CatalogError)
	async def catalog_exc_handler(request: Request, exc: CatalogError):  # type: ignore[override]
		if isinstance(exc, TitleNotFound):
			return _error(request, status.HTTP_404_NOT_FOUND, exc.reason)
		return _error(request, status.HTTP_502_BAD_GATEWAY, exc.reason)

	@app.exception_handler(AIError)
	async def ai_exc_handler(request: Request, exc: AIError):  # type: ignore[override]
		return _error(request, exc.status_code, exc.reason)

	@app.exception_handler(RateLimitExceeded)
	async def rate_limit_handler(request: Request, exc: RateLimitExceeded):  # type: ignore[override]
		return _error(request, status.HTTP_429_TOO_MANY_REQUESTS, exc.reason)

	@app.exception_handler(TransactionAborted)
	async def transaction_handler(request: Request, exc: TransactionAborted):  # type: ignore[override]
		logger.warning("transaction aborted", extra={"path": request.url.path})
		return _error(request, status.HTTP_409_CONFLICT, "write_conflict")
