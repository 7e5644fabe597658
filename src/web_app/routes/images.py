from __future__ import annotations

import asyncio
from typing import List

from fastapi import APIRouter, Request

from gallery import list_gallery
from models import ErrorResponse, GalleryEntry

router = APIRouter(prefix="/api")


@router.get(
    "/images",
    response_model=List[GalleryEntry],
    responses={500: {"model": ErrorResponse}},
)
async def list_images(request: Request):
    """Вернуть плоский список всех загруженных изображений."""
    return await asyncio.to_thread(list_gallery, request.app.state.layout)
