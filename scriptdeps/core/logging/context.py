# scriptdeps/core/logging/context.py
from __future__ import annotations
import contextvars

# Per-resolution log context. The pipeline sets the script identity here.
_logContextVar: contextvars.ContextVar[dict[str, object] | None] = contextvars.ContextVar("scriptdeps.logctx", default=None)

def setLogContext(**kvs):
    """Set or update per-log context values (script, targetFramework, etc.)."""
    current = dict(_logContextVar.get() or {}) # use copy
    for key, value in kvs.items():
        if value is not None:
            current[key] = value
    _logContextVar.set(current)

def clearLogContext():
    """Clear context after a resolution request is fully handled."""
    _logContextVar.set(None)

def getLogContext():
    """Return current content dict or None."""
    return _logContextVar.get()
