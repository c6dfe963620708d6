"""
maui_care.api.errors

Translate service-layer exceptions into JSON error responses.

Every error body carries a stable `code` next to the human `detail`, so clients
classify failures structurally instead of matching message text.
"""

from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN, HTTP_404_NOT_FOUND

from maui_care.api.schemas import ErrorBody
from maui_care.observability.logging import get_logger
from maui_care.services.errors import CareServiceError

log = get_logger(__name__)

_HTTP_CODES = {
    HTTP_401_UNAUTHORIZED: "unauthorized",
    HTTP_403_FORBIDDEN: "unauthorized",
    HTTP_404_NOT_FOUND: "not_found",
}


async def _care_service_error(_: Request, exc: CareServiceError) -> JSONResponse:
    log.info("care_service_error", code=exc.code, detail=exc.message)
    body = ErrorBody(detail=exc.message, code=exc.code)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


async def _http_error(_: Request, exc: HTTPException) -> JSONResponse:
    body = ErrorBody(detail=str(exc.detail), code=_HTTP_CODES.get(exc.status_code, "unknown"))
    return JSONResponse(
        status_code=exc.status_code, content=body.model_dump(), headers=exc.headers
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CareServiceError, _care_service_error)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_error)  # type: ignore[arg-type]
