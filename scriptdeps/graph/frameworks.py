# scriptdeps/graph/frameworks.py
from __future__ import annotations

import platform
import re
import sys

__all__ = [
    "ANY_FRAMEWORK",
    "currentRuntimeIdentifier",
    "runtimeFallbacks",
    "parseFramework",
    "isCompatibleFramework",
    "pickContentFolder",
]



ANY_FRAMEWORK = "any"

_FRAMEWORK_RE = re.compile(r"^(?P<family>netstandard|netcoreapp|net)(?P<major>\d+)(?:\.(?P<minor>\d+))?", re.IGNORECASE)

_ARCH_ALIASES = {
    "x86_64": "x64",
    "amd64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
    "armv7l": "arm",
}



def currentRuntimeIdentifier() -> str:
    """Portable runtime identifier for this machine, e.g. 'linux-x64'."""
    arch = _ARCH_ALIASES.get(platform.machine().lower(), platform.machine().lower() or "x64")
    if sys.platform.startswith("win"):
        osName = "win"
    elif sys.platform == "darwin":
        osName = "osx"
    else:
        osName = "linux"
    return f"{osName}-{arch}"



def runtimeFallbacks(rid: str) -> list[str]:
    """
    Most specific first: 'linux-x64' -> ['linux-x64', 'linux', 'unix', 'any'].
    """
    chain = [rid]
    osName = rid.split("-", 1)[0]
    if osName != rid:
        chain.append(osName)
    if osName in ("linux", "osx"):
        chain.append("unix")
    chain.append(ANY_FRAMEWORK)
    out: list[str] = []
    for item in chain:
        if item not in out:
            out.append(item)
    return out



def parseFramework(name: str) -> tuple[str, tuple[int, int]] | None:
    """('netcore' | 'netstandard', (major, minor)) for modern monikers, else None."""
    mtch = _FRAMEWORK_RE.match(name.strip())
    if not mtch:
        return None
    family = mtch.group("family").lower()
    version = (int(mtch.group("major")), int(mtch.group("minor") or 0))
    if family == "net":
        # net48 / net472 are desktop framework monikers, not script host targets
        if mtch.group("minor") is None or version[0] < 5:
            return None
        family = "netcoreapp"
    return ("netstandard" if family == "netstandard" else "netcore"), version



def isCompatibleFramework(candidate: str, target: str) -> bool:
    if candidate.lower() == ANY_FRAMEWORK:
        return True
    parsedCandidate = parseFramework(candidate)
    parsedTarget = parseFramework(target)
    if parsedCandidate is None or parsedTarget is None:
        return candidate.lower() == target.lower()
    candFamily, candVersion = parsedCandidate
    targetFamily, targetVersion = parsedTarget
    if candFamily == "netstandard":
        return True if targetFamily == "netcore" else candVersion <= targetVersion
    return targetFamily == "netcore" and candVersion <= targetVersion



def pickContentFolder(folders: list[str], target: str) -> str | None:
    """
    Choose the content folder for a target: 'any' first, then the nearest
    compatible framework (netcore before netstandard, higher versions first).
    """
    for folder in folders:
        if folder.lower() == ANY_FRAMEWORK:
            return folder

    best: tuple[tuple[int, tuple[int, int]], str] | None = None
    for folder in folders:
        if not isCompatibleFramework(folder, target):
            continue
        parsed = parseFramework(folder)
        rank = (1 if parsed and parsed[0] == "netcore" else 0, parsed[1] if parsed else (0, 0))
        if best is None or rank > best[0]:
            best = (rank, folder)
    return best[1] if best else None
