"""Process-wide logging configuration.

Modules only ever do ``logger = logging.getLogger(__name__)``; handlers are
attached once here, by the server entry point.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

from .settings import settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Attach a rotating file handler and a stderr handler to the root logger.

    Safe to call more than once; only the first call installs handlers.
    """
    global _configured
    if _configured:
        return

    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())
    formatter = logging.Formatter(_FORMAT)

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    root.addHandler(stream)

    if settings.log_to_file:
        try:
            settings.log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                settings.log_path,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
                encoding="utf-8",
            )
        except OSError as exc:
            root.warning("File logging disabled (%s): %s", settings.log_path, exc)
        else:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    _configured = True
