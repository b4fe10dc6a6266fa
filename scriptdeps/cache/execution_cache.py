# scriptdeps/cache/execution_cache.py
from __future__ import annotations

import hashlib
import logging
import shutil
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from scriptdeps.core.fileio import atomicReplaceDir, atomicWriteText, removePath
from scriptdeps.core.logging import componentLogger
from scriptdeps.directives.files import ScriptFile, ScriptFilesResolver
from scriptdeps.graph.models import ScriptDependency
from scriptdeps.project.descriptor import ManifestDescriptor
from scriptdeps.project.paths import scriptTempDir

__all__ = [
    "CACHE_DIR_NAME",
    "HASH_MARKER_NAME",
    "ARTIFACT_INDEX_NAME",
    "CachedArtifacts",
    "CacheEntry",
    "ExecutionCache",
]

CACHE_DIR_NAME = "execution-cache"
HASH_MARKER_NAME = "script.sha256"
ARTIFACT_INDEX_NAME = "artifacts.json"
NATIVE_DIR_NAME = "native"



@dataclass(frozen=True)
class CachedArtifacts:
    """Compiled output of one script, either fresh from the compiler or loaded from the cache."""
    assemblyPath: Path
    pdbPath: Path | None = None
    nativeAssets: tuple[Path, ...] = field(default_factory=tuple)



@dataclass(frozen=True)
class CacheEntry:
    hash: str
    cacheDir: Path



class _ArtifactIndex(BaseModel):
    """What `store` put into a cache directory, relative to it."""
    model_config = ConfigDict(extra="forbid")

    hash: str
    assembly: str
    pdb: str | None = None
    native: list[str] = Field(default_factory=list)
    storedAt: float = 0.0



class ExecutionCache:
    """
    Content-addressed cache of compiled scripts, one directory per script.

    A directory counts as a hit only when its marker hash equals the freshly
    computed one and every artifact it lists is present. The marker is the
    last file written into a staged directory that is then swapped into place,
    so a half-written entry is never observed.
    """

    def __init__(self, *, filesResolver: ScriptFilesResolver | None = None, logger: logging.Logger | None = None) -> None:
        self._log = componentLogger("cache.execution", logger)
        self._files = filesResolver if filesResolver is not None else ScriptFilesResolver(logger=self._log)

    def cacheDirFor(self, scriptPath: str | Path, *, cacheRoot: str | Path) -> Path:
        return scriptTempDir(scriptPath, cacheRoot=cacheRoot) / CACHE_DIR_NAME

    # ----- Hashing -----

    def tryCreateHash(
        self,
        scriptPath: str | Path,
        descriptor: ManifestDescriptor,
        dependencies: Iterable[ScriptDependency],
        *,
        noCache: bool,
        targetFramework: str,
        optimization: str = "debug",
        closure: Sequence[ScriptFile] | None = None,
    ) -> tuple[str | None, bool]:
        """
        Hash of everything that determines the compiled output, or (None, False)
        when this run must not be cached (caching disabled, or a package
        reference floats).
        """
        if noCache:
            self._log.debug("Caching disabled for '%s'", scriptPath)
            return None, False

        if not descriptor.isCacheable:
            unpinned = [str(ref) for ref in descriptor.packageReferences if not ref.version.isPinned]
            self._log.debug("Not caching '%s': unpinned package reference(s) %s", scriptPath, ", ".join(unpinned))
            return None, False

        if closure is None:
            closure = self._files.getScriptFiles([scriptPath])

        sha = hashlib.sha256()
        for scriptFile in closure:
            sha.update(scriptFile.path.read_bytes())
            sha.update(b"\x00")
        for dep in dependencies:
            assets = ";".join(sorted(dep.allAssetPaths()))
            sha.update(f"{dep.name}|{dep.version}|{assets}\n".encode("utf-8"))
        sha.update(f"tfm={targetFramework}\n".encode("utf-8"))
        sha.update(f"optimization={optimization.lower()}\n".encode("utf-8"))
        return sha.hexdigest(), True

    def tryGetHash(self, cacheDir: str | Path) -> tuple[str | None, bool]:
        marker = Path(cacheDir) / HASH_MARKER_NAME
        try:
            value = marker.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None, False
        except OSError as err:
            self._log.debug("Unreadable cache marker '%s': %s", marker, err)
            return None, False
        return (value, True) if value else (None, False)

    # ----- Load / store -----

    def tryLoad(self, cacheDir: str | Path, hash: str) -> CachedArtifacts | None:
        cacheDir = Path(cacheDir)
        stored, ok = self.tryGetHash(cacheDir)
        if not ok or stored != hash:
            return None

        try:
            index = _ArtifactIndex.model_validate_json((cacheDir / ARTIFACT_INDEX_NAME).read_text(encoding="utf-8"))
        except (OSError, ValidationError, ValueError) as err:
            self._log.debug("Ignoring corrupt cache entry '%s': %s", cacheDir, err)
            return None
        if index.hash != hash:
            return None

        artifacts = CachedArtifacts(
            assemblyPath=cacheDir / index.assembly,
            pdbPath=cacheDir / index.pdb if index.pdb else None,
            nativeAssets=tuple(cacheDir / name for name in index.native),
        )
        required = [artifacts.assemblyPath, *artifacts.nativeAssets]
        if artifacts.pdbPath is not None:
            required.append(artifacts.pdbPath)
        missing = [str(path) for path in required if not path.is_file()]
        if missing:
            self._log.debug("Cache entry '%s' is missing %s", cacheDir, ", ".join(missing))
            return None

        self._log.debug("Cache hit for '%s'", cacheDir)
        return artifacts

    def store(self, cacheDir: str | Path, hash: str, artifacts: CachedArtifacts) -> CacheEntry:
        cacheDir = Path(cacheDir)
        staged = cacheDir.with_name(f"{cacheDir.name}.staged-{time.time_ns()}")
        staged.mkdir(parents=True)
        try:
            assemblyName = artifacts.assemblyPath.name
            shutil.copy2(artifacts.assemblyPath, staged / assemblyName)

            pdbName: str | None = None
            if artifacts.pdbPath is not None and artifacts.pdbPath.is_file():
                pdbName = artifacts.pdbPath.name
                shutil.copy2(artifacts.pdbPath, staged / pdbName)

            nativeNames: list[str] = []
            for native in artifacts.nativeAssets:
                if not native.is_file():
                    self._log.debug("Skipping missing native asset '%s'", native)
                    continue
                relative = f"{NATIVE_DIR_NAME}/{native.name}"
                if relative in nativeNames:
                    self._log.debug("Skipping duplicate native asset name '%s'", native)
                    continue
                (staged / NATIVE_DIR_NAME).mkdir(exist_ok=True)
                shutil.copy2(native, staged / relative)
                nativeNames.append(relative)

            index = _ArtifactIndex(hash=hash, assembly=assemblyName, pdb=pdbName, native=nativeNames, storedAt=time.time())
            atomicWriteText(staged / ARTIFACT_INDEX_NAME, index.model_dump_json(indent=2))
            # Marker last: its presence means the entry is complete
            atomicWriteText(staged / HASH_MARKER_NAME, hash)

            atomicReplaceDir(staged, cacheDir)
        except BaseException:
            removePath(staged)
            raise

        self._log.info("Cached compiled script in '%s'", cacheDir)
        return CacheEntry(hash=hash, cacheDir=cacheDir)

    def clear(self, cacheDir: str | Path) -> bool:
        return removePath(Path(cacheDir))
