# scriptdeps/core/hashing.py
from __future__ import annotations

import hashlib
from pathlib import Path

__all__ = ["sha256Text", "stablePathKey"]



def sha256Text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()



def stablePathKey(path: str | Path, *, length: int = 16) -> str:
    """
    Short, stable directory name for a script identity.

    Same absolute path -> same key on every run, so repeated resolutions of one
    script reuse one temp directory while different scripts never collide.
    """
    resolved = str(Path(path).resolve(strict=False))
    return hashlib.sha256(resolved.encode("utf-8")).hexdigest()[:length]
