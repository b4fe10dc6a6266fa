# scriptdeps/dependencies/context.py
from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from scriptdeps.config.settings import ScriptDepsSettings
from scriptdeps.core.errors import RestoreCancelledError, RestoreFailedError, RestoreTimeoutError
from scriptdeps.core.logging import componentLogger
from scriptdeps.directives.files import ScriptFile
from scriptdeps.directives.parser import DirectiveParser
from scriptdeps.graph.models import DependencyContext
from scriptdeps.graph.reader import DependencyGraphReader
from scriptdeps.graph.runtime_assemblies import RuntimeAssemblyProvider
from scriptdeps.http.client import RemoteScriptDownloader
from scriptdeps.project.descriptor import ManifestDescriptor
from scriptdeps.project.manifest import ManifestSynthesizer
from scriptdeps.restore.restorer import CachedRestorer, DotnetRestorer, PackageRestorer, ProfiledRestorer

__all__ = ["ResolvedScript", "DependencyContextProvider", "defaultRestorer", "NO_CACHE_HINT"]

NO_CACHE_HINT = "Re-run with no-cache to force a clean restore."



def defaultRestorer(settings: ScriptDepsSettings, *, logger: logging.Logger | None = None) -> PackageRestorer:
    """Real restore tool, skipped when unchanged, with its duration logged."""
    return ProfiledRestorer(CachedRestorer(DotnetRestorer(settings, logger=logger), logger=logger), logger=logger)



@dataclass(frozen=True)
class ResolvedScript:
    """Everything learnt about a script before compilation."""
    scriptPath: Path
    closure: tuple[ScriptFile, ...]
    descriptor: ManifestDescriptor
    manifestPath: Path
    graphPath: Path
    context: DependencyContext



class DependencyContextProvider:
    """
    parse -> synthesize -> restore -> read, for one script at a time.

    A failed restore is retried once after the cached restore state for the
    manifest is invalidated.
    """

    def __init__(
        self,
        settings: ScriptDepsSettings,
        *,
        parser: DirectiveParser | None = None,
        synthesizer: ManifestSynthesizer | None = None,
        restorer: PackageRestorer | None = None,
        reader: DependencyGraphReader | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings
        self._log = componentLogger("dependencies.context", logger)
        if parser is None:
            downloader = RemoteScriptDownloader(settings.cacheRoot(), settings.remote, logger=logger) if settings.remote.enabled else None
            parser = DirectiveParser(downloader=downloader, logger=logger)
        self._parser = parser
        self._synthesizer = synthesizer if synthesizer is not None else ManifestSynthesizer(logger=logger)
        self._restorer = restorer if restorer is not None else defaultRestorer(settings, logger=logger)
        if reader is None:
            runtime = RuntimeAssemblyProvider(
                runtimeDirectory=settings.runtimeDirectory,
                dotnetPath=settings.dotnetPath,
                logger=logger,
            )
            reader = DependencyGraphReader(runtime, logger=logger)
        self._reader = reader

    @property
    def restorer(self) -> PackageRestorer:
        return self._restorer

    def resolve(
        self,
        scriptPath: str | Path,
        *,
        targetFramework: str | None = None,
        packageSources: Sequence[str] = (),
        timeout: float | None = None,
        cancelEvent: threading.Event | None = None,
        forceRestore: bool = False,
    ) -> ResolvedScript:
        scriptPath = Path(scriptPath).resolve(strict=False)
        tfm = targetFramework or self._settings.targetFramework

        closure = tuple(self._parser.files.getScriptFiles([scriptPath]))
        descriptor = self._parser.parseScriptFiles(closure, targetFramework=tfm)

        manifestPath = self._synthesizer.manifestPathFor(scriptPath, tfm, cacheRoot=self._settings.cacheRoot())
        self._synthesizer.synthesize(descriptor, manifestPath, scriptDirectory=scriptPath.parent)

        if forceRestore:
            self.invalidate(manifestPath)
        graphPath = self._restoreWithRetry(manifestPath, packageSources=packageSources, timeout=timeout, cancelEvent=cancelEvent)
        context = self._reader.read(graphPath, targetFramework=tfm)

        return ResolvedScript(
            scriptPath=scriptPath,
            closure=closure,
            descriptor=descriptor,
            manifestPath=manifestPath,
            graphPath=graphPath,
            context=context,
        )

    def invalidate(self, manifestPath: Path) -> None:
        invalidate = getattr(self._restorer, "invalidate", None)
        if invalidate is not None:
            invalidate(manifestPath)

    def _restoreWithRetry(
        self,
        manifestPath: Path,
        *,
        packageSources: Sequence[str],
        timeout: float | None,
        cancelEvent: threading.Event | None,
    ) -> Path:
        kwargs = {"packageSources": packageSources, "timeout": timeout, "cancelEvent": cancelEvent}
        try:
            return self._restorer.restore(manifestPath, **kwargs)
        except (RestoreCancelledError, RestoreTimeoutError):
            raise
        except RestoreFailedError as err:
            if not self._settings.restore.retryOnFailure:
                raise
            self._log.warning("Restore failed for '%s'; retrying once with a clean state", manifestPath)
            self._log.debug("First restore attempt output:\n%s", err.output)
            self.invalidate(manifestPath)

        try:
            return self._restorer.restore(manifestPath, **kwargs)
        except (RestoreCancelledError, RestoreTimeoutError):
            raise
        except RestoreFailedError as err:
            raise RestoreFailedError(
                f"{err.args[0] if err.args else 'Package restore failed'}. {NO_CACHE_HINT}",
                output=err.output,
                exitCode=err.exitCode,
                manifestPath=err.manifestPath,
            ) from err
