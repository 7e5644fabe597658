from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, File, Form, Request, UploadFile

from config import UPLOAD_FIELD_NAME
from ingest import ReceivedFile, UploadIngestor, stream_size
from models import ErrorResponse, FailedFile, MessageResponse, UploadedFile, UploadResponse

router = APIRouter(prefix="/api")

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Upload realizado com sucesso!"
PARTIAL_MESSAGE = "Upload concluído, mas alguns arquivos falharam."


def _received(upload: UploadFile) -> ReceivedFile:
    """Обернуть уже буферизованную часть multipart-запроса."""
    size = upload.size if upload.size is not None else stream_size(upload.file)
    return ReceivedFile(
        original_name=upload.filename or "",
        stream=upload.file,
        size=size,
        field_name=UPLOAD_FIELD_NAME,
    )


@router.get("", response_model=MessageResponse)
async def api_info():
    return MessageResponse(message="API de upload de fotos funcionando!")


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def upload_photos(
    request: Request,
    name: Optional[str] = Form(None),
    photos: Optional[List[UploadFile]] = File(None),
):
    """Сохранить фотографии участника и построить миниатюры."""
    ingestor: UploadIngestor = request.app.state.ingestor
    # a file input left empty by the browser still sends a part without a name
    received = [_received(p) for p in photos or [] if p.filename]

    report = await ingestor.ingest(name, received)

    files = [
        UploadedFile(
            filename=image.filename,
            original_url=image.original_url,
            thumbnail_url=image.thumbnail_url,
        )
        for image in report.stored
    ]
    errors = [
        FailedFile(filename=outcome.original_name, error=str(outcome.error))
        for outcome in report.failed
    ]
    return UploadResponse(
        message=PARTIAL_MESSAGE if errors else SUCCESS_MESSAGE,
        files=files,
        errors=errors,
    )
