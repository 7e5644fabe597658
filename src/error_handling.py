from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PhotoServiceError(Exception):
    """Base error carrying the HTTP status and a machine-readable code."""

    status_code = 500
    code = "internal_error"
    message = "Erro interno do servidor."

    def __init__(self, message: Optional[str] = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class EmptyBatchError(PhotoServiceError):
    status_code = 400
    code = "no_files"
    message = "Nenhum arquivo foi enviado."


class TooManyFilesError(PhotoServiceError):
    status_code = 400
    code = "too_many_files"

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"Envie no máximo {limit} arquivos por vez.")


class FileTooLargeError(PhotoServiceError):
    status_code = 413
    code = "file_too_large"

    def __init__(self, filename: str, limit: int) -> None:
        self.filename = filename
        self.limit = limit
        if limit >= 1024 * 1024:
            readable = f"{limit // (1024 * 1024)} MB"
        else:
            readable = f"{limit} bytes"
        super().__init__(f"O arquivo '{filename}' excede o limite de {readable}.")


class UploadProcessingError(PhotoServiceError):
    code = "upload_failed"
    message = "Erro ao processar o upload."


class GalleryReadError(PhotoServiceError):
    code = "gallery_unavailable"
    message = "Erro ao listar as imagens."


def log_exception(
    exc: BaseException,
    *,
    file: Optional[str] = None,
    slug: Optional[str] = None,
    route: Optional[str] = None,
) -> None:
    """Log *exc* with its traceback and whatever upload context is known.

    *file* is the client-side file name, *slug* the submitter folder and
    *route* the ``"METHOD /path"`` of the request that failed.
    """
    if file:
        where = f" for {slug}" if slug else ""
        logger.error("Failed to store %s%s", file, where, exc_info=exc)
    elif route:
        logger.error("Unhandled error in %s", route, exc_info=exc)
    else:
        logger.error("Unhandled error", exc_info=exc)


def error_body(exc: PhotoServiceError) -> dict:
    return {"error": exc.message, "code": exc.code}


async def _service_error_handler(request: Request, exc: PhotoServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc))


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log_exception(exc, route=f"{request.method} {request.url.path}")
    return JSONResponse(status_code=500, content=error_body(PhotoServiceError()))


def register_exception_handlers(app: FastAPI) -> None:
    """Render service errors as ``{"error": ..., "code": ...}`` bodies."""
    app.add_exception_handler(PhotoServiceError, _service_error_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)


__all__ = [
    "EmptyBatchError",
    "FileTooLargeError",
    "GalleryReadError",
    "PhotoServiceError",
    "TooManyFilesError",
    "UploadProcessingError",
    "log_exception",
    "register_exception_handlers",
]
