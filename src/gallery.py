from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List, Tuple

from error_handling import GalleryReadError
from models import GalleryEntry
from storage import StorageLayout

logger = logging.getLogger(__name__)


def _is_listed(path: Path) -> bool:
    # thumbnails/ and any other folder are skipped together with dotfiles
    return not path.name.startswith(".") and path.is_file()


def _scan(layout: StorageLayout) -> Iterator[Tuple[float, str, str]]:
    root = layout.root
    if not root.exists():
        return
    try:
        user_dirs = [p for p in root.iterdir() if p.is_dir() and not p.name.startswith(".")]
    except OSError as exc:
        logger.exception("Cannot read upload root %s", root)
        raise GalleryReadError() from exc

    for user_dir in user_dirs:
        try:
            files = [p for p in user_dir.iterdir() if _is_listed(p)]
            for path in files:
                yield path.stat().st_mtime, user_dir.name, path.name
        except OSError:
            logger.exception("Skipping unreadable folder %s", user_dir)


def _entry(layout: StorageLayout, slug: str, filename: str) -> GalleryEntry:
    return GalleryEntry(
        user=slug,
        original_url=layout.original_url(slug, filename),
        thumbnail_url=layout.thumbnail_url(slug, filename),
    )


def iter_gallery(layout: StorageLayout) -> Iterator[GalleryEntry]:
    """Yield every stored original paired with its thumbnail URL.

    The pairing relies on the thumbnail having the same file name as the
    original, so no existence check is made.
    """
    for _, slug, filename in _scan(layout):
        yield _entry(layout, slug, filename)


def list_gallery(layout: StorageLayout) -> List[GalleryEntry]:
    """Все изображения в хронологическом порядке (затем по папке и имени)."""
    return [_entry(layout, slug, filename) for _, slug, filename in sorted(_scan(layout))]


__all__ = ["iter_gallery", "list_gallery"]
