# scriptdeps/core/logging/__init__.py
from __future__ import annotations

from .context import setLogContext, clearLogContext, getLogContext
from .setup import configureLogging
from .util import componentLogger

__all__ = [
    "configureLogging",
    "componentLogger",
    "setLogContext",
    "clearLogContext",
    "getLogContext",
]
