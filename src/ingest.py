from __future__ import annotations

import asyncio
import logging
import random
import re
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence

from config import DEFAULT_FOLDER_NAME, UPLOAD_FIELD_NAME
from error_handling import (
    EmptyBatchError,
    FileTooLargeError,
    TooManyFilesError,
    UploadProcessingError,
    log_exception,
)
from storage import StorageLayout, UserDirs
from thumbnails import make_thumbnail
from utils.names import slugify_name

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
_EXTENSION_RE = re.compile(r"\.[A-Za-z0-9]{1,10}")


@dataclass
class ReceivedFile:
    """A file part already buffered by the transport layer."""

    original_name: str
    stream: BinaryIO
    size: int
    field_name: str = UPLOAD_FIELD_NAME


@dataclass
class StoredImage:
    slug: str
    filename: str
    original_path: Path
    thumbnail_path: Path
    original_url: str
    thumbnail_url: str


@dataclass
class FileOutcome:
    original_name: str
    image: Optional[StoredImage] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.image is not None


@dataclass
class BatchReport:
    slug: str
    outcomes: List[FileOutcome] = field(default_factory=list)

    @property
    def stored(self) -> List[StoredImage]:
        return [o.image for o in self.outcomes if o.image is not None]

    @property
    def failed(self) -> List[FileOutcome]:
        return [o for o in self.outcomes if not o.ok]


def stream_size(stream: BinaryIO) -> int:
    """Размер буферизованного потока без изменения текущей позиции."""
    position = stream.tell()
    stream.seek(0, 2)
    size = stream.tell()
    stream.seek(position)
    return size


def safe_extension(original_name: str) -> str:
    suffix = Path(original_name or "").suffix
    return suffix if _EXTENSION_RE.fullmatch(suffix) else ""


def generate_filename(field_name: str, extension: str) -> str:
    """``<field>-<unix ms>-<random>`` plus the original extension."""
    timestamp = int(time.time() * 1000)
    suffix = random.randint(0, 999_999_999)
    return f"{field_name}-{timestamp}-{suffix}{extension}"


def _persist(received: ReceivedFile, directory: Path) -> Path:
    extension = safe_extension(received.original_name)
    while True:
        target = directory / generate_filename(received.field_name, extension)
        try:
            # "x" never overwrites a file written by a concurrent request
            dest = open(target, "xb")
        except FileExistsError:
            logger.debug("Name clash on %s, generating another name", target.name)
            continue
        try:
            with dest:
                received.stream.seek(0)
                shutil.copyfileobj(received.stream, dest, CHUNK_SIZE)
        except BaseException:
            target.unlink(missing_ok=True)
            raise
        return target


def _remove(*paths: Optional[Path]) -> None:
    for path in paths:
        if path is None:
            continue
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.exception("Failed to remove %s", path)


class UploadIngestor:
    """Persist a batch of photos under a submitter folder with thumbnails."""

    def __init__(
        self,
        layout: StorageLayout,
        thumbnail_width: int = 400,
        max_files: int = 10,
        max_file_size: int = 15 * 1024 * 1024,
        partial_uploads: bool = False,
        default_slug: str = DEFAULT_FOLDER_NAME,
    ) -> None:
        self.layout = layout
        self.thumbnail_width = thumbnail_width
        self.max_files = max_files
        self.max_file_size = max_file_size
        self.partial_uploads = partial_uploads
        self.default_slug = slugify_name(default_slug)

    def validate(self, files: Sequence[ReceivedFile]) -> None:
        """Reject the batch before anything touches the disk."""
        if not files:
            raise EmptyBatchError()
        if len(files) > self.max_files:
            raise TooManyFilesError(self.max_files)
        for received in files:
            if received.size > self.max_file_size:
                raise FileTooLargeError(received.original_name, self.max_file_size)

    async def ingest(self, name: Optional[str], files: Sequence[ReceivedFile]) -> BatchReport:
        """Store *files* for the submitter *name* and return a per-file report.

        Unless ``partial_uploads`` is enabled, a single failing file makes the
        whole batch fail: files already stored are removed again and
        :class:`UploadProcessingError` is raised.
        """
        self.validate(files)
        slug = slugify_name(name, default=self.default_slug)
        dirs = await asyncio.to_thread(self.layout.ensure_user_dirs, slug)
        logger.info("Receiving %d file(s) for %s", len(files), slug)

        outcomes = await asyncio.gather(*(self._store_one(dirs, f) for f in files))
        report = BatchReport(slug=slug, outcomes=list(outcomes))

        if not report.failed:
            return report
        if self.partial_uploads and report.stored:
            logger.warning(
                "Batch for %s stored %d of %d file(s)",
                slug,
                len(report.stored),
                len(report.outcomes),
            )
            return report

        for image in report.stored:
            _remove(image.original_path, image.thumbnail_path)
        logger.error(
            "Batch for %s rejected, %d file(s) failed: %s",
            slug,
            len(report.failed),
            ", ".join(o.original_name for o in report.failed),
        )
        raise UploadProcessingError()

    async def _store_one(self, dirs: UserDirs, received: ReceivedFile) -> FileOutcome:
        original: Optional[Path] = None
        thumbnail: Optional[Path] = None
        try:
            original = await asyncio.to_thread(_persist, received, dirs.originals)
            thumbnail = dirs.thumbnails / original.name
            await asyncio.to_thread(
                make_thumbnail, original, thumbnail, self.thumbnail_width
            )
        except Exception as exc:
            log_exception(exc, file=received.original_name, slug=dirs.slug)
            _remove(original, thumbnail)
            return FileOutcome(original_name=received.original_name, error=exc)

        logger.info("Stored %s as %s/%s", received.original_name, dirs.slug, original.name)
        image = StoredImage(
            slug=dirs.slug,
            filename=original.name,
            original_path=original,
            thumbnail_path=thumbnail,
            original_url=self.layout.original_url(dirs.slug, original.name),
            thumbnail_url=self.layout.thumbnail_url(dirs.slug, original.name),
        )
        return FileOutcome(original_name=received.original_name, image=image)


__all__ = [
    "BatchReport",
    "FileOutcome",
    "ReceivedFile",
    "StoredImage",
    "UploadIngestor",
    "generate_filename",
    "safe_extension",
    "stream_size",
]
