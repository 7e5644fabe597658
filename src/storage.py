"""Directory layout of the upload root.

Every submitter gets ``<root>/<slug>/`` for originals and
``<root>/<slug>/thumbnails/`` for derived thumbnails. The tree itself is the
only record of what has been uploaded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from config import PUBLIC_PREFIX, THUMBNAILS_DIRNAME
from utils.names import is_slug

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserDirs:
    slug: str
    originals: Path
    thumbnails: Path


class StorageLayout:
    def __init__(self, root: str | Path, base_url: str = "") -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def user_dirs(self, slug: str) -> UserDirs:
        """Пути папок пользователя без создания на диске."""
        if not is_slug(slug):
            raise ValueError(f"Invalid folder slug: {slug!r}")
        originals = self.root / slug
        return UserDirs(slug=slug, originals=originals, thumbnails=originals / THUMBNAILS_DIRNAME)

    def ensure_user_dirs(self, slug: str) -> UserDirs:
        """Create the originals and thumbnails folders for *slug*.

        Safe to call repeatedly and from concurrent requests.
        """
        dirs = self.user_dirs(slug)
        dirs.thumbnails.mkdir(parents=True, exist_ok=True)
        logger.debug("Ensured folders for %s under %s", slug, self.root)
        return dirs

    def original_url(self, slug: str, filename: str) -> str:
        return f"{self.base_url}{PUBLIC_PREFIX}/{slug}/{filename}"

    def thumbnail_url(self, slug: str, filename: str) -> str:
        return f"{self.base_url}{PUBLIC_PREFIX}/{slug}/{THUMBNAILS_DIRNAME}/{filename}"


__all__ = ["StorageLayout", "UserDirs"]
