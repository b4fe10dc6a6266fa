# scriptdeps/directives/parser.py
from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from scriptdeps.core.errors import DirectiveParseError, UnsupportedSdkError
from scriptdeps.core.logging import componentLogger
from scriptdeps.directives.files import (
    LOAD_DIRECTIVE_RE,
    REFERENCE_DIRECTIVE_RE,
    ScriptDownloader,
    ScriptFile,
    ScriptFilesResolver,
    isPackagePath,
    isRemotePath,
    stripShebang,
)
from scriptdeps.directives.references import AssemblyReference, PackageReference
from scriptdeps.project.descriptor import SUPPORTED_SDKS, ManifestDescriptor

__all__ = ["DirectiveParser", "ParseResult", "parsePackageValue"]



# "nuget: Id" / "nuget:Id, 1.2.3" / "nuget: Id, [1.0, 2.0)"
_PACKAGE_VALUE_RE = re.compile(r"^\s*nuget\s*:\s*(?P<id>[^,]*?)\s*(?:,\s*(?P<version>.*?))?\s*$", re.IGNORECASE)
_SDK_VALUE_RE = re.compile(r"^\s*sdk\s*:\s*(?P<sdk>.*?)\s*$", re.IGNORECASE)
_SDK_FAMILY_PREFIX = "microsoft.net.sdk"



@dataclass(slots=True)
class ParseResult:
    """Directives collected from one file or snippet before they become a descriptor."""
    packageReferences: list[PackageReference] = field(default_factory=list)
    assemblyReferences: list[AssemblyReference] = field(default_factory=list)
    sdk: str = ""



def parsePackageValue(value: str, *, path: str | None = None) -> PackageReference:
    mtch = _PACKAGE_VALUE_RE.match(value)
    if not mtch or not mtch.group("id"):
        raise DirectiveParseError(f"Invalid package reference '{value}': missing package id", path=path, directive=value)
    packageId = mtch.group("id")
    if any(ch.isspace() for ch in packageId):
        raise DirectiveParseError(f"Invalid package id '{packageId}' in '{value}'", path=path, directive=value)
    return PackageReference(packageId, mtch.group("version") or "")



def _matchSupportedSdk(name: str) -> str | None:
    for sdk in SUPPORTED_SDKS:
        if sdk.lower() == name.lower():
            return sdk
    return None



class DirectiveParser:
    """
    Extracts `#r` / `#load` directives and folds them into a ManifestDescriptor.

    Directives are matched textually, so a script that does not compile yet
    (for instance because a package is still unresolved) parses fine.
    """

    def __init__(
        self,
        *,
        downloader: ScriptDownloader | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._log = componentLogger("directives.parser", logger)
        self._files = ScriptFilesResolver(downloader=downloader, logger=self._log)

    # ----- Public API -----

    def parseFromCode(
        self,
        code: str,
        *,
        targetFramework: str,
        baseDirectory: str | Path | None = None,
    ) -> ManifestDescriptor:
        """
        Parse raw source text. Local `#load` targets are resolved against
        `baseDirectory` (default: current directory) and parsed as well.
        """
        if code is None:
            raise TypeError("code cannot be None")
        base = Path(baseDirectory) if baseDirectory is not None else Path.cwd()
        results = [self._parseCode(code, baseDirectory=base, path=None)]
        for scriptFile in self._files.getScriptFilesFromCode(code, baseDirectory=base):
            results.append(self._parseScriptFile(scriptFile))
        return self._merge(results, targetFramework=targetFramework)

    def parseFromFiles(self, paths: Iterable[str | Path], *, targetFramework: str) -> ManifestDescriptor:
        """Parse the given files plus everything they reach through local `#load` directives."""
        closure = self._files.getScriptFiles(paths)
        return self.parseScriptFiles(closure, targetFramework=targetFramework)

    def parseScriptFiles(self, closure: Iterable[ScriptFile], *, targetFramework: str) -> ManifestDescriptor:
        """Parse an already resolved load closure (see ScriptFilesResolver)."""
        results = [self._parseScriptFile(scriptFile) for scriptFile in closure]
        return self._merge(results, targetFramework=targetFramework)

    @property
    def files(self) -> ScriptFilesResolver:
        return self._files

    # ----- Helpers -----

    def _parseScriptFile(self, scriptFile: ScriptFile) -> ParseResult:
        code = scriptFile.path.read_text(encoding="utf-8-sig")
        # Assembly paths inside downloaded scripts are never local to us
        base = None if scriptFile.isRemote else scriptFile.path.parent
        return self._parseCode(code, baseDirectory=base, path=scriptFile.origin)

    def _parseCode(self, code: str, *, baseDirectory: Path | None, path: str | None) -> ParseResult:
        result = ParseResult()
        text = stripShebang(code)

        for mtch in REFERENCE_DIRECTIVE_RE.finditer(text):
            self._handleReference(mtch.group("value").strip(), result, baseDirectory=baseDirectory, path=path)

        for mtch in LOAD_DIRECTIVE_RE.finditer(text):
            value = mtch.group("value").strip()
            # Local and remote loads are walked by ScriptFilesResolver
            if isPackagePath(value):
                result.packageReferences.append(parsePackageValue(value, path=path))

        return result

    def _handleReference(self, value: str, result: ParseResult, *, baseDirectory: Path | None, path: str | None) -> None:
        if isPackagePath(value):
            result.packageReferences.append(parsePackageValue(value, path=path))
            return

        sdkMatch = _SDK_VALUE_RE.match(value)
        if sdkMatch:
            name = sdkMatch.group("sdk")
            sdk = _matchSupportedSdk(name)
            if sdk is None:
                raise UnsupportedSdkError(name, SUPPORTED_SDKS, path=path)
            self._setSdk(result, sdk, path=path)
            return

        sdk = _matchSupportedSdk(value)
        if sdk is not None:
            self._setSdk(result, sdk, path=path)
            return
        if value.lower().startswith(_SDK_FAMILY_PREFIX):
            raise UnsupportedSdkError(value, SUPPORTED_SDKS, path=path)

        if baseDirectory is not None and value and not isRemotePath(value):
            candidate = Path(value)
            if not candidate.is_absolute():
                candidate = baseDirectory / candidate
            if candidate.is_file():
                result.assemblyReferences.append(AssemblyReference.fromPath(candidate))
                return

        # Framework assembly names ("System.Net.Http") are the compiler's business
        self._log.debug("Leaving reference '%s' to the compiler (%s)", value, path or "<code>")

    def _setSdk(self, result: ParseResult, sdk: str, *, path: str | None) -> None:
        if result.sdk and result.sdk != sdk:
            raise DirectiveParseError(f"Conflicting sdk references '{result.sdk}' and '{sdk}'", path=path, directive=sdk)
        result.sdk = sdk

    def _merge(self, results: list[ParseResult], *, targetFramework: str) -> ManifestDescriptor:
        packages: list[PackageReference] = []
        assemblies: list[AssemblyReference] = []
        sdk = ""
        for result in results:
            packages.extend(result.packageReferences)
            assemblies.extend(result.assemblyReferences)
            if result.sdk:
                if sdk and sdk != result.sdk:
                    raise DirectiveParseError(f"Conflicting sdk references '{sdk}' and '{result.sdk}'", directive=result.sdk)
                sdk = result.sdk

        descriptor = ManifestDescriptor(
            targetFramework=targetFramework,
            packageReferences=tuple(packages),
            assemblyReferences=tuple(assemblies),
            sdk=sdk,
        )
        self._log.debug(
            "Parsed %d package reference(s), %d assembly reference(s), sdk=%r",
            len(descriptor.packageReferences),
            len(descriptor.assemblyReferences),
            descriptor.sdk or None,
        )
        return descriptor
