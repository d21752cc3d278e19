from __future__ import annotations

import logging

from .errors import ConfigurationError


def configure_logging(level: str = "INFO") -> None:
    """
    Set the level of the ``oauth2_relay`` package logger.

    Handlers belong to the host application; this only picks the threshold.
    Tokens and secrets are never logged at any level.

    Raises:
        ConfigurationError: ``level`` is not a stdlib level name.
    """
    normalized = (level or "").strip().upper()
    if not isinstance(logging.getLevelName(normalized), int):
        raise ConfigurationError(f"unknown log level: {level!r}")
    logging.getLogger("oauth2_relay").setLevel(normalized)
