# scriptdeps/resolving/source_resolver.py
from __future__ import annotations

import io
import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import BinaryIO, Protocol

from scriptdeps.core.logging import componentLogger
from scriptdeps.directives.files import isPackagePath
from scriptdeps.graph.models import DependencyContext

__all__ = [
    "SourceResolver",
    "SourceFileResolver",
    "ScriptReferenceResolver",
    "buildAggregateScript",
    "buildScriptMap",
    "packageIdFromPath",
]

_PACKAGE_ID_RE = re.compile(r"^\s*nuget\s*:\s*(?P<id>[^,]*?)\s*(?:,.*)?$", re.IGNORECASE)



class SourceResolver(Protocol):
    def normalizePath(self, path: str, baseFilePath: str | None) -> str | None:
        ...

    def resolveReference(self, path: str, baseFilePath: str | None) -> str | None:
        ...

    def openRead(self, resolvedPath: str) -> BinaryIO:
        ...



def buildAggregateScript(scriptPaths: Iterable[str]) -> str:
    """One `#load "<path>"` line per script, in the order given."""
    return "".join(f'#load "{path}"\n' for path in scriptPaths)



def buildScriptMap(context: DependencyContext) -> dict[str, tuple[str, ...]]:
    """Package name (lower-cased) -> script payload paths, for packages that ship scripts."""
    return {dep.name.lower(): dep.scriptPaths for dep in context if dep.scriptPaths}



def packageIdFromPath(path: str) -> str | None:
    mtch = _PACKAGE_ID_RE.match(path)
    if not mtch or not mtch.group("id"):
        return None
    return mtch.group("id")



class SourceFileResolver:
    """Plain file resolution: relative to the including file, then the search paths."""

    def __init__(self, searchPaths: Sequence[str | Path] = (), baseDirectory: str | Path | None = None) -> None:
        self._searchPaths = tuple(Path(p) for p in searchPaths)
        self._baseDirectory = Path(baseDirectory) if baseDirectory is not None else None

    @property
    def searchPaths(self) -> tuple[Path, ...]:
        return self._searchPaths

    @property
    def baseDirectory(self) -> Path | None:
        return self._baseDirectory

    def normalizePath(self, path: str, baseFilePath: str | None) -> str | None:
        candidate = Path(path)
        if candidate.is_absolute():
            return str(candidate.resolve(strict=False))
        base = self._baseFor(baseFilePath)
        if base is None:
            return None
        return str((base / candidate).resolve(strict=False))

    def resolveReference(self, path: str, baseFilePath: str | None) -> str | None:
        candidate = Path(path)
        if candidate.is_absolute():
            return str(candidate) if candidate.is_file() else None
        probes: list[Path] = []
        base = self._baseFor(baseFilePath)
        if base is not None:
            probes.append(base)
        probes.extend(self._searchPaths)
        for directory in probes:
            full = directory / candidate
            if full.is_file():
                return str(full.resolve())
        return None

    def openRead(self, resolvedPath: str) -> BinaryIO:
        return open(resolvedPath, "rb")

    def _baseFor(self, baseFilePath: str | None) -> Path | None:
        if baseFilePath:
            return Path(baseFilePath).parent
        return self._baseDirectory



class ScriptReferenceResolver:
    """
    Lets the compiler's `#load "nuget: Id, ..."` land on the scripts a package ships.

    Package paths resolve through `scriptMap` (case-insensitive id, version text
    ignored). A package with several scripts is served as a generated script of
    `#load` lines. Everything else goes to the inner resolver. Two instances are
    never equal.
    """

    def __init__(
        self,
        inner: SourceResolver,
        scriptMap: Mapping[str, Sequence[str]],
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._inner = inner
        self._scriptMap = {key.lower(): tuple(value) for key, value in scriptMap.items()}
        self._log = componentLogger("resolving.scripts", logger)

    def normalizePath(self, path: str, baseFilePath: str | None) -> str | None:
        if isPackagePath(path):
            return path
        return self._inner.normalizePath(path, baseFilePath)

    def resolveReference(self, path: str, baseFilePath: str | None) -> str | None:
        if not isPackagePath(path):
            return self._inner.resolveReference(path, baseFilePath)

        scripts = self._scriptsFor(path)
        if scripts is None:
            self._log.debug("No scripts found for '%s'", path)
            return None
        if len(scripts) == 1:
            return scripts[0]
        return path

    def openRead(self, resolvedPath: str) -> BinaryIO:
        if isPackagePath(resolvedPath):
            scripts = self._scriptsFor(resolvedPath) or ()
            return io.BytesIO(buildAggregateScript(scripts).encode("utf-8"))
        return self._inner.openRead(resolvedPath)

    def _scriptsFor(self, path: str) -> tuple[str, ...] | None:
        packageId = packageIdFromPath(path)
        if packageId is None:
            return None
        return self._scriptMap.get(packageId.lower())
