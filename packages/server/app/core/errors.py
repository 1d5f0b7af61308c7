"""
Store failure types and their HTTP rendering.

Failures of either backing store are per-request: they propagate to the
caller unchanged in meaning and are rendered as 503 by the API layer.
"""

from __future__ import annotations

from starlette.requests import Request
from starlette.responses import JSONResponse

from user_directory_shared.schemas.common import ErrorBody, ErrorResponse


class StoreUnavailableError(Exception):
    """A backing store could not serve the request."""

    code = "STORE_UNAVAILABLE"

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class SearchIndexUnavailableError(StoreUnavailableError):
    code = "SEARCH_INDEX_UNAVAILABLE"


class DirectoryUnavailableError(StoreUnavailableError):
    code = "DIRECTORY_UNAVAILABLE"


async def store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    body = ErrorResponse(error=ErrorBody(code=exc.code, message=exc.message, status=503))
    return JSONResponse(status_code=503, content=body.model_dump())
