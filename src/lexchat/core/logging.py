"""Root logger setup for the server and CLI."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lexchat.config.schema import LoggingConfig

_PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_STRUCTURED_FORMAT = (
    'ts=%(asctime)s level=%(levelname)s logger=%(name)s msg="%(message)s"'
)


def setup_logging(config: LoggingConfig) -> None:
    """Configure the root logger. Call once at startup."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        path = Path(config.file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    logging.basicConfig(
        level=config.level.upper(),
        format=_STRUCTURED_FORMAT if config.structured else _PLAIN_FORMAT,
        handlers=handlers,
        force=True,
    )
    # The SDK logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
