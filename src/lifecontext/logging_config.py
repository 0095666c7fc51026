"""Logging setup shared by the CLI and the web app."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging once.

    Falls back to settings.log_level when no level is given.
    """
    if level is None:
        from lifecontext.config import settings

        level = settings.log_level

    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return

    logging.basicConfig(level=level, format=LOG_FORMAT)
