from __future__ import annotations

import logging

from video_compare.config import LoggingSettings

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(settings: LoggingSettings, *, verbose: bool = False) -> None:
    """Configure process-wide logging once at startup.

    Log records go to stderr so they never mix with the report on stdout.
    ``verbose`` forces DEBUG regardless of the configured level.
    """

    level = logging.DEBUG if verbose else getattr(logging, settings.level.upper(), logging.WARNING)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.file is not None:
        settings.file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.file, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format=DEFAULT_LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
