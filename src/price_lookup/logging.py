import logging
import os
import sys
from typing import List, Optional


FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def _level_for(name: str) -> int:
    """LOG_LEVEL_<NAME> (e.g. LOG_LEVEL_CATALOG_DB) wins over LOG_LEVEL."""
    override_key = "LOG_LEVEL_" + name.upper().replace("-", "_").replace(".", "_")
    raw: Optional[str] = os.environ.get(override_key) or os.environ.get("LOG_LEVEL")
    if not raw:
        return logging.INFO
    return _LEVELS.get(raw.strip().upper(), logging.INFO)


def _handlers(level: int) -> List[logging.Handler]:
    formatter = logging.Formatter(fmt=FORMAT, datefmt=DATE_FORMAT)
    # stdout carries CLI JSON output
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    log_file = os.environ.get("LOG_FILE")
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        except OSError as exc:
            sys.stderr.write(f"LOG_FILE {log_file!r} unusable ({exc}); logging to stderr only\n")
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def get_logger(name: str) -> logging.Logger:
    """Return a named logger configured once from the environment.

    Honors LOG_LEVEL (default INFO), per-logger LOG_LEVEL_<NAME> overrides
    and an optional appending LOG_FILE.
    """
    logger = logging.getLogger(name)
    if getattr(logger, "_price_lookup_configured", False):
        return logger

    level = _level_for(name)
    logger.setLevel(level)
    for handler in _handlers(level):
        logger.addHandler(handler)
    logger.propagate = False
    logger._price_lookup_configured = True  # type: ignore[attr-defined]
    return logger
