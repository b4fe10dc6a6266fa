# scriptdeps/pipeline/runner.py
from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from scriptdeps.cache.execution_cache import CachedArtifacts, ExecutionCache
from scriptdeps.config.settings import ScriptDepsSettings
from scriptdeps.core.errors import CompilationFailedError
from scriptdeps.core.logging import clearLogContext, componentLogger, setLogContext
from scriptdeps.dependencies.compilation import CompilationDependencyResolver, CompilationReference, CompilationReferenceReader
from scriptdeps.dependencies.context import DependencyContextProvider
from scriptdeps.dependencies.dedupe import AssemblyRedirectMap
from scriptdeps.dependencies.runtime import RuntimeDependencyResolver
from scriptdeps.directives.parser import DirectiveParser
from scriptdeps.graph.models import RuntimeAssembly
from scriptdeps.graph.reader import DependencyGraphReader
from scriptdeps.project.paths import scriptTempDir
from scriptdeps.resolving.source_resolver import ScriptReferenceResolver, SourceFileResolver, buildScriptMap
from scriptdeps.restore.restorer import PackageRestorer

__all__ = [
    "CompilationRequest",
    "CompilationResult",
    "ScriptCompiler",
    "ExecutionOptions",
    "ExecutionPlan",
    "ScriptPipeline",
]



# ---------------------------------------------------------------- #
# Compiler boundary
# ---------------------------------------------------------------- #

@dataclass(frozen=True)
class CompilationRequest:
    scriptPath: Path
    targetFramework: str
    optimization: str
    references: tuple[CompilationReference, ...]
    sourceResolver: ScriptReferenceResolver
    redirects: AssemblyRedirectMap
    outputDirectory: Path



@dataclass(frozen=True)
class CompilationResult:
    success: bool
    diagnostics: tuple[str, ...] = ()
    assemblyPath: Path | None = None
    pdbPath: Path | None = None



class ScriptCompiler(Protocol):
    def compile(self, request: CompilationRequest) -> CompilationResult:
        ...



# ---------------------------------------------------------------- #
# Options / result
# ---------------------------------------------------------------- #

@dataclass(frozen=True)
class ExecutionOptions:
    """Per-run switches normally coming from the command line."""
    noCache: bool = False
    packageSources: tuple[str, ...] = ()
    targetFramework: str | None = None
    optimization: str = "debug"
    restoreTimeout: float | None = None
    cancelEvent: threading.Event | None = None



@dataclass(frozen=True)
class ExecutionPlan:
    """What the host needs to run the compiled script."""
    scriptPath: Path
    cacheHit: bool
    hash: str | None
    assemblyPath: Path
    pdbPath: Path | None = None
    runtimeAssemblies: dict[str, RuntimeAssembly] = field(default_factory=dict)
    nativeAssets: tuple[Path, ...] = ()
    diagnostics: tuple[str, ...] = ()



# ---------------------------------------------------------------- #
# Pipeline
# ---------------------------------------------------------------- #

class ScriptPipeline:
    """
    Turns a script path into a compiled, loadable assembly plus its runtime
    dependency set, compiling only when the execution cache misses.
    """

    def __init__(
        self,
        settings: ScriptDepsSettings,
        compiler: ScriptCompiler,
        restorer: PackageRestorer | None = None,
        *,
        parser: DirectiveParser | None = None,
        reader: DependencyGraphReader | None = None,
        cache: ExecutionCache | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings
        self._compiler = compiler
        self._log = componentLogger("pipeline", logger)
        self._provider = DependencyContextProvider(settings, parser=parser, restorer=restorer, reader=reader, logger=logger)
        self._references = CompilationReferenceReader(logger=logger)
        self._compilation = CompilationDependencyResolver(self._provider, self._references, logger=logger)
        self._runtime = RuntimeDependencyResolver(logger=logger)
        self._cache = cache if cache is not None else ExecutionCache(logger=logger)

    @property
    def provider(self) -> DependencyContextProvider:
        return self._provider

    def execute(self, scriptPath: str | Path, options: ExecutionOptions = ExecutionOptions()) -> ExecutionPlan:
        scriptPath = Path(scriptPath).resolve(strict=False)
        tfm = options.targetFramework or self._settings.targetFramework
        setLogContext(script=str(scriptPath), targetFramework=tfm)
        try:
            return self._execute(scriptPath, tfm, options)
        finally:
            clearLogContext()

    def _execute(self, scriptPath: Path, tfm: str, options: ExecutionOptions) -> ExecutionPlan:
        cacheRoot = self._settings.cacheRoot()
        cacheDir = self._cache.cacheDirFor(scriptPath, cacheRoot=cacheRoot)
        if options.noCache and self._cache.clear(cacheDir):
            self._log.debug("Removed execution cache '%s'", cacheDir)

        resolved = self._provider.resolve(
            scriptPath,
            targetFramework=tfm,
            packageSources=options.packageSources,
            timeout=options.restoreTimeout,
            cancelEvent=options.cancelEvent,
            forceRestore=options.noCache,
        )
        runtime = self._runtime.fromContext(resolved.context)
        nativeAssets = tuple(Path(p) for p in runtime.nativeAssets)

        hash, cacheable = self._cache.tryCreateHash(
            scriptPath,
            resolved.descriptor,
            resolved.context,
            noCache=options.noCache,
            targetFramework=tfm,
            optimization=options.optimization,
            closure=resolved.closure,
        )
        if cacheable and hash is not None:
            cached = self._cache.tryLoad(cacheDir, hash)
            if cached is not None:
                self._log.info("Using cached assembly for '%s'", scriptPath)
                return ExecutionPlan(
                    scriptPath=scriptPath,
                    cacheHit=True,
                    hash=hash,
                    assemblyPath=cached.assemblyPath,
                    pdbPath=cached.pdbPath,
                    runtimeAssemblies=runtime.assemblies,
                    nativeAssets=cached.nativeAssets or nativeAssets,
                )

        request = CompilationRequest(
            scriptPath=scriptPath,
            targetFramework=tfm,
            optimization=options.optimization,
            references=tuple(self._references.read(resolved.context, resolved.descriptor)),
            sourceResolver=ScriptReferenceResolver(
                SourceFileResolver(baseDirectory=scriptPath.parent),
                buildScriptMap(resolved.context),
                logger=self._log,
            ),
            redirects=runtime.redirectMap(logger=self._log),
            outputDirectory=scriptTempDir(scriptPath, cacheRoot=cacheRoot) / tfm / "bin" / options.optimization,
        )
        result = self._compiler.compile(request)
        if not result.success or result.assemblyPath is None:
            raise CompilationFailedError(f"Compilation of '{scriptPath}' failed", diagnostics=result.diagnostics)

        if not (cacheable and hash is not None):
            return self._uncachedPlan(scriptPath, result, runtime.assemblies, nativeAssets)

        try:
            entry = self._cache.store(
                cacheDir,
                hash,
                CachedArtifacts(assemblyPath=result.assemblyPath, pdbPath=result.pdbPath, nativeAssets=nativeAssets),
            )
        except OSError as err:
            self._log.debug("Could not cache compiled script in '%s': %s", cacheDir, err)
            return self._uncachedPlan(scriptPath, result, runtime.assemblies, nativeAssets)
        stored = self._cache.tryLoad(entry.cacheDir, hash)
        return ExecutionPlan(
            scriptPath=scriptPath,
            cacheHit=False,
            hash=hash,
            assemblyPath=stored.assemblyPath if stored else result.assemblyPath,
            pdbPath=stored.pdbPath if stored else result.pdbPath,
            runtimeAssemblies=runtime.assemblies,
            nativeAssets=(stored.nativeAssets if stored else nativeAssets),
            diagnostics=result.diagnostics,
        )

    @staticmethod
    def _uncachedPlan(
        scriptPath: Path,
        result: CompilationResult,
        runtimeAssemblies: dict[str, RuntimeAssembly],
        nativeAssets: tuple[Path, ...],
    ) -> ExecutionPlan:
        return ExecutionPlan(
            scriptPath=scriptPath,
            cacheHit=False,
            hash=None,
            assemblyPath=result.assemblyPath,
            pdbPath=result.pdbPath,
            runtimeAssemblies=runtimeAssemblies,
            nativeAssets=nativeAssets,
            diagnostics=result.diagnostics,
        )

    def references(self, scriptPath: str | Path, *, targetFramework: str | None = None, packageSources: Sequence[str] = ()) -> list[CompilationReference]:
        """Compile-time references only, without compiling (editor/tooling use)."""
        return self._compilation.getReferences(scriptPath, targetFramework=targetFramework, packageSources=packageSources)
