# scriptdeps/core/errors.py
from __future__ import annotations

from collections.abc import Sequence

__all__ = [
    "ScriptDepsError",
    "DirectiveParseError",
    "UnsupportedSdkError",
    "RestoreFailedError",
    "RestoreTimeoutError",
    "RestoreCancelledError",
    "DependencyResolutionError",
    "DependencyGraphNotFoundError",
    "MalformedDependencyGraphError",
    "CompilationFailedError",
    "RemoteScriptError",
]



class ScriptDepsError(Exception):
    """Base class for every failure surfaced by the resolution pipeline."""
    pass



# ------------------------------------------------------------------ #
# Directives
# ------------------------------------------------------------------ #

class DirectiveParseError(ScriptDepsError):
    """Malformed reference/load directive. Aborts resolution for that script."""

    def __init__(self, message: str, *, path: str | None = None, directive: str | None = None) -> None:
        super().__init__(message)
        self.path = path
        self.directive = directive



class UnsupportedSdkError(DirectiveParseError):
    """Raised when an `sdk:` reference names a preset that is not known."""

    def __init__(self, sdk: str, supported: Sequence[str], *, path: str | None = None) -> None:
        super().__init__(
            f"The sdk '{sdk}' is not supported. Supported SDKs: {', '.join(supported)}",
            path=path,
            directive=sdk,
        )
        self.sdk = sdk
        self.supported = tuple(supported)



# ------------------------------------------------------------------ #
# Restore
# ------------------------------------------------------------------ #

class RestoreFailedError(ScriptDepsError):
    """The external restore tool exited non-zero. Carries its raw output for display."""

    def __init__(self, message: str, *, output: str = "", exitCode: int | None = None, manifestPath: str | None = None) -> None:
        super().__init__(message)
        self.output = output
        self.exitCode = exitCode
        self.manifestPath = manifestPath

    def __str__(self) -> str:
        base = super().__str__()
        if self.output:
            return f"{base}\n{self.output.rstrip()}"
        return base



class RestoreTimeoutError(RestoreFailedError, TimeoutError):
    """Restore exceeded the caller's timeout and was killed."""



class RestoreCancelledError(RestoreFailedError):
    """Restore was cancelled by the caller and the subprocess terminated."""



# ------------------------------------------------------------------ #
# Dependency graph
# ------------------------------------------------------------------ #

class DependencyResolutionError(ScriptDepsError):
    """Base class for failures reading the restored dependency graph."""

    def __init__(self, message: str, *, graphPath: str | None = None) -> None:
        super().__init__(message)
        self.graphPath = graphPath



class DependencyGraphNotFoundError(DependencyResolutionError):
    """The dependency graph file is absent (restore never ran or was invalidated)."""



class MalformedDependencyGraphError(DependencyResolutionError):
    """The dependency graph file exists but cannot be parsed or has the wrong shape."""



# ------------------------------------------------------------------ #
# Compilation / remote
# ------------------------------------------------------------------ #

class CompilationFailedError(ScriptDepsError):
    """The external compiler reported errors. Nothing is cached."""

    def __init__(self, message: str, *, diagnostics: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.diagnostics = tuple(diagnostics)

    def __str__(self) -> str:
        base = super().__str__()
        if self.diagnostics:
            return base + "\n" + "\n".join(self.diagnostics)
        return base



class RemoteScriptError(ScriptDepsError):
    """A remote `#load` target could not be downloaded."""

    def __init__(self, message: str, *, url: str, status: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status
