from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path


FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
# uvicorn installs its own handlers on these; they are routed to the root instead
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def setup_logging(
    level: str,
    log_file: Path | str | None,
    max_bytes: int = 1024 * 1024,
    backup_count: int = 3,
) -> None:
    """Send application and server logs to the console and an optional file.

    Parameters
    ----------
    level:
        Log level name (e.g., "INFO", "DEBUG"); unknown names mean INFO.
    log_file:
        Rotating log file, kept at ``max_bytes`` with ``backup_count``
        old copies. Its folder is created when missing.
    """
    resolved = getattr(logging, level.upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count)
        )

    logging.basicConfig(level=resolved, format=FORMAT, handlers=handlers, force=True)

    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers.clear()
        server_logger.setLevel(resolved)
        server_logger.propagate = True
