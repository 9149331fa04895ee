"""Shared logging helpers for storemigrate."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger with a terse CLI format.

    ``level`` and ``force`` are handed to ``logging.basicConfig`` unchanged; pass
    ``force=True`` to reconfigure from tests or nested entry points.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
