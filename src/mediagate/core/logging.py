"""Logging setup for the service process."""

from __future__ import annotations

import logging

from mediagate.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level to the root logger once."""
    global _configured
    if _configured:
        return
    logging.basicConfig(level=(level or settings.log_level).upper(), format=LOG_FORMAT)
    _configured = True
