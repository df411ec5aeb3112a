"""
Logging setup

Every module asks for a named logger via ``get_logger(__name__)``.
Messages carry a bracketed component tag ("[RAG]", "[LLM]", "[Session]",
"[Agent]") so one request can be followed across the pipeline.

Credentials and message bodies must never be logged; log ids, provider
names, counts and error strings only.
"""

import logging
import sys

from docs_agent.core.config import get_settings

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    name = (level or get_settings().log_level).upper()
    resolved = getattr(logging, name, logging.INFO)
    return resolved if isinstance(resolved, int) else logging.INFO


def get_logger(name: str, level: str | int | None = None) -> logging.Logger:
    """
    Create and return a named logger with the shared formatter.

    Args:
        name:  Typically ``__name__`` of the calling module.
        level: Explicit level override; defaults to ``settings.log_level``.
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers when a module is re-imported
    if not logger.handlers:
        resolved = _resolve_level(level)
        logger.setLevel(resolved)

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(resolved)
        handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
        logger.addHandler(handler)

        # Keep records away from the root logger (uvicorn configures it too).
        logger.propagate = False

    return logger
