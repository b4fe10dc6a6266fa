# scriptdeps/core/logging/setup.py
from __future__ import annotations
import logging
import logging.handlers
from typing import TYPE_CHECKING

from .formatters import DevFormatter, JsonFormatter, RedactingFormatter

if TYPE_CHECKING:
    from scriptdeps.config.settings import ScriptDepsSettings

__all__ = [
    "NO_PROPAGATE",
    "configureLogging",
]



# Disable propagation from common libraries
NO_PROPAGATE = [
    "httpcore.connection", "httpcore.http11",
    "httpx",
]



def configureLogging(settings: ScriptDepsSettings, *, root: logging.Logger | None = None) -> logging.Logger:
    """
    Configure the `scriptdeps` logger tree from settings.

      - Console pretty logs at settings.logging.level
      - Optional JSON file log with rotation (settings.logging.jsonFile)
      - Credential scrubbing on every handler unless settings.logging.redact is False

    Returns the configured logger so callers can inject it into components.
    """
    logCfg = settings.logging
    level = getattr(logging, str(logCfg.level).upper(), logging.INFO)

    target = root if root is not None else logging.getLogger("scriptdeps")
    target.handlers.clear()
    target.setLevel(level)
    target.propagate = False

    for name in NO_PROPAGATE:
        logging.getLogger(name).propagate = False

    devFmt: logging.Formatter = DevFormatter()
    jsonFmt: logging.Formatter = JsonFormatter()
    if logCfg.redact:
        devFmt = RedactingFormatter(devFmt)
        jsonFmt = RedactingFormatter(jsonFmt)

    consoleHandler = logging.StreamHandler()
    consoleHandler.setLevel(level)
    consoleHandler.setFormatter(devFmt)
    target.addHandler(consoleHandler)

    if logCfg.jsonFile:
        fileHandler = logging.handlers.RotatingFileHandler(
            logCfg.jsonFile,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8"
        )
        fileHandler.setLevel(level)
        fileHandler.setFormatter(jsonFmt)
        target.addHandler(fileHandler)

    # Per-logger tweaks (reduce noise)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return target
