# scriptdeps/project/paths.py
from __future__ import annotations

from pathlib import Path

from scriptdeps.core.hashing import stablePathKey

__all__ = [
    "MANIFEST_FILE_NAME",
    "RESTORED_MANIFEST_SUFFIX",
    "GRAPH_FILE_RELATIVE",
    "scriptTempDir",
    "graphPathFor",
    "restoredManifestPathFor",
]



MANIFEST_FILE_NAME = "script.csproj"
RESTORED_MANIFEST_SUFFIX = ".restored"
GRAPH_FILE_RELATIVE = Path("obj") / "project.assets.json"



def scriptTempDir(scriptPath: str | Path, *, cacheRoot: str | Path) -> Path:
    """Per-script working directory: `<cacheRoot>/<hash of absolute script path>`."""
    return Path(cacheRoot) / stablePathKey(scriptPath)



def graphPathFor(manifestPath: str | Path) -> Path:
    return Path(manifestPath).parent / GRAPH_FILE_RELATIVE



def restoredManifestPathFor(manifestPath: str | Path) -> Path:
    manifestPath = Path(manifestPath)
    return manifestPath.with_name(manifestPath.name + RESTORED_MANIFEST_SUFFIX)
