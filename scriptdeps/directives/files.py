# scriptdeps/directives/files.py
from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
from urllib.parse import urljoin

from scriptdeps.core.errors import DirectiveParseError
from scriptdeps.core.logging import componentLogger

__all__ = [
    "PACKAGE_PREFIX",
    "LOAD_DIRECTIVE_RE",
    "REFERENCE_DIRECTIVE_RE",
    "ScriptDownloader",
    "ScriptFile",
    "ScriptFilesResolver",
    "stripShebang",
    "isPackagePath",
    "isRemotePath",
]



PACKAGE_PREFIX = "nuget:"

# Keyword is case-insensitive and may carry whitespace after '#'. Anchored at
# line start so commented-out directives (`// #r ...`) do not count.
REFERENCE_DIRECTIVE_RE = re.compile(r'^[ \t]*#[ \t]*r[ \t]*"(?P<value>[^"\r\n]*)"', re.IGNORECASE | re.MULTILINE)
LOAD_DIRECTIVE_RE = re.compile(r'^[ \t]*#[ \t]*load[ \t]*"(?P<value>[^"\r\n]*)"', re.IGNORECASE | re.MULTILINE)

_PACKAGE_PREFIX_RE = re.compile(r"^\s*nuget\s*:", re.IGNORECASE)
_REMOTE_RE = re.compile(r"^https?://", re.IGNORECASE)



class ScriptDownloader(Protocol):
    def download(self, url: str) -> Path:
        ...



@dataclass(frozen=True, slots=True)
class ScriptFile:
    """One member of a load closure. `origin` is the absolute path or URL it was reached by."""
    path: Path
    origin: str

    @property
    def isRemote(self) -> bool:
        return isRemotePath(self.origin)



def stripShebang(code: str) -> str:
    """Blank out a leading interpreter line, keeping line numbers intact."""
    if code.startswith("#!"):
        newline = code.find("\n")
        return "" if newline == -1 else code[newline:]
    return code



def isPackagePath(value: str) -> bool:
    return bool(_PACKAGE_PREFIX_RE.match(value))



def isRemotePath(value: str) -> bool:
    return bool(_REMOTE_RE.match(value.strip()))



def extractLoadTargets(code: str) -> list[str]:
    return [mtch.group("value").strip() for mtch in LOAD_DIRECTIVE_RE.finditer(stripShebang(code))]



class ScriptFilesResolver:
    """
    Walks `#load` directives to find every script file a root script pulls in.

    Depth-first, root first. The visited set lives on the call stack of
    `getScriptFiles`, so one resolver can serve unrelated scripts from
    different threads.
    """

    def __init__(self, *, downloader: ScriptDownloader | None = None, logger: logging.Logger | None = None) -> None:
        self._downloader = downloader
        self._log = componentLogger("directives.files", logger)

    def getScriptFiles(self, roots: Iterable[str | Path]) -> list[ScriptFile]:
        stack: list[str] = [str(Path(root).resolve(strict=False)) for root in reversed(list(roots))]
        visited: set[str] = set()
        closure: list[ScriptFile] = []

        while stack:
            origin = stack.pop()
            if origin in visited:
                continue
            visited.add(origin)

            scriptFile = self._materialize(origin)
            if scriptFile is None:
                continue
            closure.append(scriptFile)

            code = scriptFile.path.read_text(encoding="utf-8-sig")
            children = self._childOrigins(code, origin)
            for child in reversed(children):
                if child not in visited:
                    stack.append(child)

        self._log.debug("Resolved %d script file(s) in load closure", len(closure))
        return closure

    def getScriptFilesFromCode(self, code: str, *, baseDirectory: str | Path) -> list[ScriptFile]:
        """Closure of the files loaded by in-memory code (the code itself is not part of it)."""
        base = Path(baseDirectory).resolve(strict=False)
        children = self._childOrigins(code, str(base / "__code__.csx"))
        return self.getScriptFiles(children) if children else []

    # ----- Helpers -----

    def _childOrigins(self, code: str, origin: str) -> list[str]:
        out: list[str] = []
        for target in extractLoadTargets(code):
            if not target or isPackagePath(target):
                continue
            if isRemotePath(target):
                out.append(target)
            elif isRemotePath(origin):
                out.append(urljoin(origin, target))
            else:
                targetPath = Path(target)
                if not targetPath.is_absolute():
                    targetPath = Path(origin).parent / targetPath
                out.append(str(targetPath.resolve(strict=False)))
        return out

    def _materialize(self, origin: str) -> ScriptFile | None:
        if isRemotePath(origin):
            if self._downloader is None:
                self._log.warning("Skipping remote #load '%s': remote scripts are disabled", origin)
                return None
            return ScriptFile(path=self._downloader.download(origin), origin=origin)
        path = Path(origin)
        if not path.is_file():
            raise DirectiveParseError(f"Unable to find script file '{origin}'", path=origin)
        return ScriptFile(path=path, origin=origin)
