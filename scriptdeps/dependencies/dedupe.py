# scriptdeps/dependencies/dedupe.py
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import PurePath
from typing import Literal

from scriptdeps.core.logging import componentLogger
from scriptdeps.graph.models import RuntimeAssembly, ScriptDependency
from scriptdeps.versioning.nugetversion import NuGetVersion, pickHighest, tryParseNuGetVersion

__all__ = ["AssetKind", "assemblyName", "deduplicate", "AssemblyRedirectMap"]

AssetKind = Literal["runtime", "compile"]

_ZERO = NuGetVersion(0)



def assemblyName(path: str) -> str:
    """Simple assembly name of a file path (`lib/net8.0/Foo.Bar.dll` -> `Foo.Bar`)."""
    return PurePath(path.replace("\\", "/")).stem



def _assemblyPaths(dependency: ScriptDependency, kind: AssetKind) -> tuple[str, ...]:
    paths = dependency.runtimePaths if kind == "runtime" else dependency.compileTimePaths
    return tuple(p for p in paths if p.lower().endswith((".dll", ".exe")))



def deduplicate(dependencies: Iterable[ScriptDependency], *, kind: AssetKind = "runtime") -> dict[str, RuntimeAssembly]:
    """
    Collapse assemblies that several packages bring in under the same name.

    The highest version wins; on a tie the copy seen first stays. Keys are
    lower-cased simple names. An assembly's version is its package's version
    (the framework version for the default entry).
    """
    if kind not in ("runtime", "compile"):
        raise ValueError(f"Unknown asset kind '{kind}'")

    candidates: dict[str, list[tuple[NuGetVersion, RuntimeAssembly]]] = {}
    for dependency in dependencies:
        version = tryParseNuGetVersion(dependency.version) or _ZERO
        for path in _assemblyPaths(dependency, kind):
            name = assemblyName(path)
            assembly = RuntimeAssembly(name=name, version=version, path=path, package=dependency.name)
            candidates.setdefault(name.lower(), []).append((version, assembly))

    out: dict[str, RuntimeAssembly] = {}
    for key, items in candidates.items():
        best = pickHighest(items).best
        if best is not None:
            out[key] = best[1]
    return out



class AssemblyRedirectMap:
    """
    Answers "which file should satisfy a load of assembly X?" from a
    deduplicated map. Version mismatches are logged and the winner is used.
    """

    def __init__(self, deduped: Mapping[str, RuntimeAssembly], *, logger: logging.Logger | None = None) -> None:
        self._map = {key.lower(): value for key, value in deduped.items()}
        self._log = componentLogger("dependencies.redirect", logger)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._map

    def __len__(self) -> int:
        return len(self._map)

    def get(self, name: str) -> RuntimeAssembly | None:
        return self._map.get(name.lower())

    def resolve(self, name: str, requestedVersion: str | NuGetVersion | None = None) -> str | None:
        winner = self._map.get(name.lower())
        if winner is None:
            return None
        if requestedVersion is not None:
            requested = requestedVersion if isinstance(requestedVersion, NuGetVersion) else tryParseNuGetVersion(requestedVersion)
            if requested is not None and requested != winner.version:
                self._log.debug(
                    "Redirecting %s %s -> %s (%s)",
                    name,
                    requested,
                    winner.version,
                    winner.path,
                )
        return winner.path
