# scriptdeps/restore/restorer.py
from __future__ import annotations

import logging
import shutil
import subprocess
import threading
import time
import xml.etree.ElementTree as ET
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import psutil

from scriptdeps.config.settings import ScriptDepsSettings
from scriptdeps.core.errors import RestoreCancelledError, RestoreFailedError, RestoreTimeoutError
from scriptdeps.core.fileio import removePath
from scriptdeps.core.logging import componentLogger
from scriptdeps.core.redaction import redactText
from scriptdeps.project.manifest import readManifest
from scriptdeps.project.paths import graphPathFor, restoredManifestPathFor

__all__ = [
    "CommandResult",
    "CommandRunner",
    "PackageRestorer",
    "DotnetRestorer",
    "CachedRestorer",
    "ProfiledRestorer",
]



@dataclass(frozen=True, slots=True)
class CommandResult:
    exitCode: int
    output: str
    timedOut: bool = False
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.exitCode == 0 and not self.timedOut and not self.cancelled



class CommandRunner:
    """
    Runs a subprocess to completion, or kills it on timeout / cancellation.

    stdout and stderr are merged so failure output reads in order.
    """

    POLL_INTERVAL = 0.1

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._log = componentLogger("restore.command", logger)

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: str | Path | None = None,
        timeout: float | None = None,
        cancelEvent: threading.Event | None = None,
    ) -> CommandResult:
        self._log.debug("Running: %s", redactText(" ".join(args)))
        proc = psutil.Popen(
            list(args),
            cwd=str(cwd) if cwd is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
        deadline = time.monotonic() + timeout if timeout is not None else None
        chunks: list[str] = []

        while True:
            if cancelEvent is not None and cancelEvent.is_set():
                return CommandResult(exitCode=self._kill(proc, chunks), output="".join(chunks), cancelled=True)
            if deadline is not None and time.monotonic() >= deadline:
                return CommandResult(exitCode=self._kill(proc, chunks), output="".join(chunks), timedOut=True)
            try:
                stdout, _ = proc.communicate(timeout=self.POLL_INTERVAL)
            except subprocess.TimeoutExpired:
                continue
            chunks.append(stdout or "")
            return CommandResult(exitCode=proc.returncode, output="".join(chunks))

    def _kill(self, proc: psutil.Popen, chunks: list[str]) -> int:
        self.killProcessTree(proc)
        stdout, _ = proc.communicate()
        chunks.append(stdout or "")
        self._log.debug("Killed process %d", proc.pid)
        return proc.returncode

    @staticmethod
    def killProcessTree(proc: psutil.Popen) -> None:
        # the restore tool leaves build server children behind
        try:
            for child in proc.children(recursive=True):
                try:
                    child.kill()
                except psutil.NoSuchProcess:
                    pass
            proc.kill()
        except psutil.NoSuchProcess:
            pass



class PackageRestorer(Protocol):
    def restore(
        self,
        manifestPath: Path,
        *,
        packageSources: Sequence[str] = (),
        timeout: float | None = None,
        cancelEvent: threading.Event | None = None,
    ) -> Path:
        ...



class DotnetRestorer:
    """Drives `dotnet restore` for one manifest and returns the dependency graph path."""

    def __init__(
        self,
        settings: ScriptDepsSettings,
        runner: CommandRunner | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings
        self._log = componentLogger("restore.dotnet", logger)
        self._runner = runner if runner is not None else CommandRunner(logger=self._log)

    def buildArguments(self, manifestPath: Path, packageSources: Sequence[str] = ()) -> list[str]:
        args = [self._settings.dotnetPath, "restore", str(manifestPath), "-nologo"]
        seen: set[str] = set()
        for source in [*packageSources, *self._settings.packageSources]:
            if source and source not in seen:
                seen.add(source)
                args.extend(["-s", source])
        return args

    def restore(
        self,
        manifestPath: Path,
        *,
        packageSources: Sequence[str] = (),
        timeout: float | None = None,
        cancelEvent: threading.Event | None = None,
    ) -> Path:
        manifestPath = Path(manifestPath)
        graphPath = graphPathFor(manifestPath)
        if timeout is None:
            timeout = self._settings.restore.timeoutSeconds

        args = self.buildArguments(manifestPath, packageSources)
        self._log.info("Restoring packages for '%s'", manifestPath)
        try:
            result = self._runner.run(args, cwd=manifestPath.parent, timeout=timeout, cancelEvent=cancelEvent)
        except OSError as err:
            removePath(graphPath)
            raise RestoreFailedError(
                f"Unable to start restore tool '{self._settings.dotnetPath}': {err}",
                manifestPath=str(manifestPath),
            ) from err

        if result.ok:
            return graphPath

        # A partially written graph must never be read as a successful restore
        removePath(graphPath)
        output = redactText(result.output)
        if result.cancelled:
            raise RestoreCancelledError("Package restore was cancelled", output=output, exitCode=result.exitCode, manifestPath=str(manifestPath))
        if result.timedOut:
            raise RestoreTimeoutError(
                f"Package restore timed out after {timeout:g}s",
                output=output,
                exitCode=result.exitCode,
                manifestPath=str(manifestPath),
            )
        raise RestoreFailedError(
            f"Package restore failed with exit code {result.exitCode}",
            output=output,
            exitCode=result.exitCode,
            manifestPath=str(manifestPath),
        )



class CachedRestorer:
    """
    Skips the restore tool when nothing changed since the last successful restore.

    Only manifests whose package references are all pinned are eligible; a
    floating version could resolve differently today.
    """

    def __init__(self, inner: PackageRestorer, *, logger: logging.Logger | None = None) -> None:
        self._inner = inner
        self._log = componentLogger("restore.cached", logger)

    def restore(
        self,
        manifestPath: Path,
        *,
        packageSources: Sequence[str] = (),
        timeout: float | None = None,
        cancelEvent: threading.Event | None = None,
    ) -> Path:
        manifestPath = Path(manifestPath)
        restoredPath = restoredManifestPathFor(manifestPath)
        graphPath = graphPathFor(manifestPath)

        if self._canSkip(manifestPath, restoredPath, graphPath):
            self._log.debug("Using cached restore for '%s'", manifestPath)
            return graphPath

        removePath(restoredPath)
        graphPath = self._inner.restore(manifestPath, packageSources=packageSources, timeout=timeout, cancelEvent=cancelEvent)
        shutil.copyfile(manifestPath, restoredPath)
        return graphPath

    def invalidate(self, manifestPath: Path) -> None:
        manifestPath = Path(manifestPath)
        removePath(restoredManifestPathFor(manifestPath))
        removePath(graphPathFor(manifestPath))
        self._log.debug("Invalidated restore cache for '%s'", manifestPath)

    def _canSkip(self, manifestPath: Path, restoredPath: Path, graphPath: Path) -> bool:
        if not (restoredPath.is_file() and graphPath.is_file()):
            return False
        try:
            manifest = readManifest(manifestPath)
        except (ET.ParseError, ValueError) as err:
            self._log.debug("Restoring unreadable manifest '%s': %s", manifestPath, err)
            return False
        if not manifest.isCacheable:
            return False
        return restoredPath.read_bytes() == manifestPath.read_bytes()



class ProfiledRestorer:
    """Logs how long the wrapped restorer took, whether it succeeded or not."""

    def __init__(self, inner: PackageRestorer, *, logger: logging.Logger | None = None) -> None:
        self._inner = inner
        self._log = componentLogger("restore.profiled", logger)

    def restore(
        self,
        manifestPath: Path,
        *,
        packageSources: Sequence[str] = (),
        timeout: float | None = None,
        cancelEvent: threading.Event | None = None,
    ) -> Path:
        start = time.perf_counter()
        ok = False
        try:
            graphPath = self._inner.restore(manifestPath, packageSources=packageSources, timeout=timeout, cancelEvent=cancelEvent)
            ok = True
            return graphPath
        finally:
            elapsedMs = (time.perf_counter() - start) * 1000.0
            self._log.info("Restore of '%s' %s in %.0f ms", manifestPath, "finished" if ok else "failed", elapsedMs)

    def invalidate(self, manifestPath: Path) -> None:
        invalidate = getattr(self._inner, "invalidate", None)
        if invalidate is not None:
            invalidate(manifestPath)
