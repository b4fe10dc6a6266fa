# scriptdeps/core/logging/util.py
from __future__ import annotations

import logging



def componentLogger(component: str, logger: logging.Logger | None = None) -> logging.Logger:
    """
    Returns the logger a pipeline component should use.

    Components take their logger as a constructor argument; when the caller
    does not pass one, the component gets its own child of the `scriptdeps`
    logger instead of reaching for shared state.
    """
    if logger is not None:
        return logger
    return logging.getLogger(f"scriptdeps.{component}")
