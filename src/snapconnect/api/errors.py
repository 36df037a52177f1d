"""Reusable error primitives for API exception handling."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from fastapi import Request, status
from fastapi.responses import JSONResponse

from ..exceptions import RemoteStoreError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ApiError(Exception):
    """Structured application-level error for HTTP handlers."""

    status_code: int
    code: str
    message: str
    headers: Mapping[str, str] | None = None

    def to_response(self) -> JSONResponse:
        """Materialise the error into a ``JSONResponse`` instance."""

        return JSONResponse(
            status_code=self.status_code,
            content={"error": {"code": self.code, "message": self.message}},
            headers=dict(self.headers or {}),
        )


async def api_error_handler(_: Request, exc: ApiError) -> JSONResponse:
    """Convert :class:`ApiError` exceptions into JSON payloads."""

    return exc.to_response()


async def remote_store_error_handler(request: Request, exc: RemoteStoreError) -> JSONResponse:
    """Report hosted backend failures as ``502 Bad Gateway``."""

    logger.error(
        "api.remote_store_error",
        extra={"path": request.url.path, "status_code": exc.status_code, "error": exc.message},
    )
    return bad_gateway_error(exc.message).to_response()


def bad_request_error(message: str) -> ApiError:
    return ApiError(status.HTTP_400_BAD_REQUEST, "bad_request", message)


def bad_gateway_error(message: str) -> ApiError:
    return ApiError(status.HTTP_502_BAD_GATEWAY, "remote_store_error", message)


__all__ = [
    "ApiError",
    "api_error_handler",
    "bad_gateway_error",
    "bad_request_error",
    "remote_store_error_handler",
]
