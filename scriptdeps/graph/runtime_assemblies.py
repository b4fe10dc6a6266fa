# scriptdeps/graph/runtime_assemblies.py
from __future__ import annotations

import logging
import os
import re
import shutil
from collections.abc import Mapping
from pathlib import Path

from scriptdeps.core.logging import componentLogger
from scriptdeps.graph.models import DEFAULT_DEPENDENCY_NAME, ScriptDependency
from scriptdeps.versioning.nugetversion import NuGetVersion, tryParseNuGetVersion

__all__ = ["RuntimeAssemblyProvider", "isAssemblyFile", "frameworkMajor", "SHARED_FRAMEWORK"]



SHARED_FRAMEWORK = "Microsoft.NETCore.App"

_TFM_VERSION_RE = re.compile(r"^net(?:coreapp)?(?P<major>\d+)\.(?P<minor>\d+)", re.IGNORECASE)



def frameworkMajor(targetFramework: str) -> int | None:
    mtch = _TFM_VERSION_RE.match(targetFramework.strip())
    return int(mtch.group("major")) if mtch else None



def isAssemblyFile(path: Path) -> bool:
    """Cheap PE check: managed assemblies start with the DOS 'MZ' header."""
    try:
        with path.open("rb") as file:
            return file.read(2) == b"MZ"
    except OSError:
        return False



class RuntimeAssemblyProvider:
    """
    Produces the synthetic default dependency: the shared framework assemblies
    the script host already ships with.
    """

    def __init__(
        self,
        *,
        runtimeDirectory: str | Path | None = None,
        dotnetPath: str = "dotnet",
        env: Mapping[str, str] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._runtimeDirectory = Path(runtimeDirectory) if runtimeDirectory else None
        self._dotnetPath = dotnetPath
        self._env = os.environ if env is None else env
        self._log = componentLogger("graph.runtime", logger)

    def locate(self, targetFramework: str) -> tuple[Path, str] | None:
        """(directory, version) of the shared framework to use, or None."""
        if self._runtimeDirectory is not None:
            if self._runtimeDirectory.is_dir():
                return self._runtimeDirectory, self._runtimeDirectory.name
            self._log.warning("Configured runtime directory '%s' does not exist", self._runtimeDirectory)
            return None

        dotnetRoot = self._dotnetRoot()
        if dotnetRoot is None:
            return None
        sharedDir = dotnetRoot / "shared" / SHARED_FRAMEWORK
        if not sharedDir.is_dir():
            return None

        wantedMajor = frameworkMajor(targetFramework)
        best: tuple[NuGetVersion, Path] | None = None
        for child in sharedDir.iterdir():
            version = tryParseNuGetVersion(child.name)
            if version is None or not child.is_dir():
                continue
            if wantedMajor is not None and version.major != wantedMajor:
                continue
            if best is None or version > best[0]:
                best = (version, child)
        if best is None:
            return None
        return best[1], best[1].name

    def getDefaultDependency(self, targetFramework: str) -> ScriptDependency:
        located = self.locate(targetFramework)
        if located is None:
            self._log.warning("No shared framework found for '%s'; default references will be empty", targetFramework)
            return ScriptDependency(name=DEFAULT_DEPENDENCY_NAME, version="0.0.0")

        directory, version = located
        assemblies = tuple(
            str(path)
            for path in sorted(directory.glob("*.dll"), key=lambda p: p.name.lower())
            if isAssemblyFile(path)
        )
        self._log.debug("Using %d framework assemblies from '%s'", len(assemblies), directory)
        return ScriptDependency(
            name=DEFAULT_DEPENDENCY_NAME,
            version=version,
            compileTimePaths=assemblies,
            runtimePaths=assemblies,
        )

    def _dotnetRoot(self) -> Path | None:
        fromEnv = self._env.get("DOTNET_ROOT")
        if fromEnv and Path(fromEnv).is_dir():
            return Path(fromEnv)
        executable = shutil.which(self._dotnetPath)
        if executable is None:
            return None
        return Path(executable).resolve().parent
