from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadedFile(_CamelModel):
    filename: str
    original_url: str
    thumbnail_url: str


class FailedFile(_CamelModel):
    filename: str
    error: str


class UploadResponse(_CamelModel):
    message: str
    files: List[UploadedFile] = Field(default_factory=list)
    errors: List[FailedFile] = Field(default_factory=list)


class GalleryEntry(_CamelModel):
    user: str
    original_url: str
    thumbnail_url: str


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
    code: Optional[str] = None
