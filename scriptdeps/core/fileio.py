# scriptdeps/core/fileio.py
from __future__ import annotations

import os
import shutil
import time
from pathlib import Path

__all__ = ["atomicWriteBytes", "atomicWriteText", "atomicReplaceDir", "removePath"]



def atomicWriteBytes(path: Path, data: bytes) -> None:
    """Write to a sibling temp file, fsync, then rename into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f"{path.name}.tmp-{time.time_ns()}")
    try:
        with open(tmp, "wb") as file:
            file.write(data)
            file.flush()
            os.fsync(file.fileno())
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()



def atomicWriteText(path: Path, text: str, *, encoding: str = "utf-8") -> None:
    atomicWriteBytes(path, text.encode(encoding))



def atomicReplaceDir(staged: Path, target: Path) -> None:
    """
    Swap a fully populated staging directory into `target`.

    The previous target (if any) is renamed aside first and removed only after
    the staged directory is in place, so readers see either the old complete
    directory or the new complete one.
    """
    target.parent.mkdir(parents=True, exist_ok=True)
    trash: Path | None = None
    if target.exists():
        trash = target.with_name(f"{target.name}.old-{time.time_ns()}")
        os.replace(target, trash)
    os.replace(staged, target)
    if trash is not None:
        shutil.rmtree(trash, ignore_errors=True)



def removePath(path: Path) -> bool:
    """Remove a file or directory tree. Returns True if something was removed."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
        return True
    if path.exists() or path.is_symlink():
        path.unlink()
        return True
    return False
