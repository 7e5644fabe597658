from __future__ import annotations

import logging
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from config import PUBLIC_PREFIX, Settings, config
from error_handling import register_exception_handlers
from ingest import UploadIngestor
from logging_config import setup_logging
from storage import StorageLayout
from .routes import images, upload

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Собрать приложение FastAPI без побочных эффектов на диске.

    The upload root is created on startup, so importing this module or
    building an app never touches the filesystem.
    """
    settings = settings or config
    layout = StorageLayout(settings.upload_dir, settings.base_url)

    app = FastAPI(title="Event Photos")
    app.state.settings = settings
    app.state.layout = layout
    app.state.ingestor = UploadIngestor(
        layout,
        thumbnail_width=settings.thumbnail_width,
        max_files=settings.max_files,
        max_file_size=settings.max_file_size,
        partial_uploads=settings.partial_uploads,
        default_slug=settings.default_folder_name,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.on_event("startup")
    async def _ensure_upload_root() -> None:
        root = layout.ensure_root()
        logger.info("Serving uploads from %s at %s", root.resolve(), settings.base_url)

    # --------- Подключение маршрутов ----------
    app.include_router(upload.router)
    app.include_router(images.router)
    app.mount(
        PUBLIC_PREFIX,
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads",
    )
    return app


app = create_app()


def run(settings: Optional[Settings] = None, *, listen: bool = True) -> FastAPI:
    """Build the application and, when *listen* is true, serve it with uvicorn."""
    settings = settings or config
    application = create_app(settings)
    if not listen:
        logger.info("Listener disabled, application built without binding port %s", settings.port)
        return application
    logger.info("Starting FastAPI server on %s:%s", settings.host, settings.port)
    # log_config=None keeps the handlers installed by setup_logging
    uvicorn.run(application, host=settings.host, port=settings.port, log_config=None)
    return application


def main() -> None:
    """Точка входа: логирование и запуск сервера по настройкам."""
    setup_logging(
        config.log_level,
        config.log_file,
        max_bytes=config.log_max_bytes,
        backup_count=config.log_backup_count,
    )
    try:
        run(config, listen=config.listen)
    except Exception:
        logger.exception("Не удалось запустить сервер")
        sys.exit(1)


if __name__ == "__main__":
    main()
