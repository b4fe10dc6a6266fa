# scriptdeps/versioning/nugetversion.py
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Generic, Iterable, TypeVar

__all__ = [
    "NuGetVersion",
    "parseNuGetVersion",
    "tryParseNuGetVersion",
    "VersionSpec",
    "VersionMatchResult",
    "pickHighest",
]



# Exact version: 3 or 4 numeric parts, optional -prerelease, optional +build.
# Whitespace around the dots is tolerated the way restore tools tolerate it.
_PINNED_EXACT_BODY = (
    r"\d+(?:\s*\.\s*\d+){2,3}"
    r"(?:-[0-9A-Za-z\-.]+)?"
    r"(?:\+[0-9A-Za-z\-.]+)?"
)
_PINNED_EXACT_RE = re.compile(rf"^{_PINNED_EXACT_BODY}$")

# Single-version bracket: [1.2.3]
_PINNED_BRACKET_RE = re.compile(rf"^\[\s*{_PINNED_EXACT_BODY}\s*\]$")

_VERSION_RE = re.compile(
    r"^(?P<core>\d+(?:\.\d+){0,3})"
    r"(?:-(?P<prerelease>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?$"
)

T = TypeVar("T")



@total_ordering
@dataclass(frozen=True)
class NuGetVersion:
    """
    Parsed version with a total order used to settle assembly conflicts.

    Ordering:
      - numeric parts compared after padding to four (1.2 == 1.2.0 == 1.2.0.0)
      - a release sorts above any prerelease of the same numeric version
      - prerelease identifiers compare left to right, numeric identifiers
        below alphanumeric ones, alphanumerics case-insensitively
      - build metadata is ignored
    """
    major: int
    minor: int = 0
    patch: int = 0
    revision: int = 0
    prerelease: tuple[str, ...] = ()
    build: tuple[str, ...] = ()

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        if self.revision:
            base += f".{self.revision}"
        prerelease = f"-{'.'.join(self.prerelease)}" if self.prerelease else ""
        build = f"+{'.'.join(self.build)}" if self.build else ""
        return f"{base}{prerelease}{build}"

    @property
    def isPrerelease(self) -> bool:
        return bool(self.prerelease)

    def _prereleaseCmpKey(self) -> tuple:
        # Numeric identifiers have lower precedence than non-numeric.
        # We encode numeric as (0, int), non-numeric as (1, str),
        # so numeric < non-numeric in tuple comparison.
        parts: list[tuple[int, int | str]] = []
        for ident in self.prerelease:
            if ident.isdigit():
                parts.append((0, int(ident)))
            else:
                parts.append((1, ident.lower()))
        return tuple(parts)

    def _cmpKey(self) -> tuple:
        # No prerelease version is preferred over any prerelease version
        releaseFlag = 1 if not self.prerelease else 0
        return (
            self.major,
            self.minor,
            self.patch,
            self.revision,
            releaseFlag,
            self._prereleaseCmpKey(),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NuGetVersion):
            return NotImplemented
        return self._cmpKey() == other._cmpKey()

    def __hash__(self) -> int:
        return hash(self._cmpKey())

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, NuGetVersion):
            return NotImplemented
        return self._cmpKey() < other._cmpKey()



def parseNuGetVersion(raw: str) -> NuGetVersion:
    """
    Parse a package/assembly version.

    Accepted forms (examples):
        "1"                 -> 1.0.0.0
        "1.2"               -> 1.2.0.0
        "1.2.3"
        "1.2.3.4"
        "1.2.3-beta.1"
        "1.2.3+sha.abc"
        "v1.2.3"

    Rejected:
        "", ".1", "1.", "1..3", "1.2.3.4.5", "1.2.3-", ranges and wildcards.
    """
    if raw is None:
        raise ValueError("Version string cannot be None")

    if not isinstance(raw, str):
        raise TypeError(f"Version string must be a string type, got {type(raw).__name__}")

    text = raw.strip()
    if not text:
        raise ValueError("Version string cannot be empty or whitespace only")

    # Accept a single 'v' and remove it (v1.2.3 -> 1.2.3)
    if text[0] in "vV" and len(text) > 1 and text[1].isdigit():
        text = text[1:]

    mtch = _VERSION_RE.match(text)
    if not mtch:
        raise ValueError(f"Invalid version {raw!r}")

    numericParts = [int(part) for part in mtch.group("core").split(".")]
    while len(numericParts) < 4:
        numericParts.append(0)

    prereleaseGroup = mtch.group("prerelease")
    buildGroup = mtch.group("build")

    return NuGetVersion(
        major=numericParts[0],
        minor=numericParts[1],
        patch=numericParts[2],
        revision=numericParts[3],
        prerelease=tuple(prereleaseGroup.split(".")) if prereleaseGroup else (),
        build=tuple(buildGroup.split(".")) if buildGroup else (),
    )



def tryParseNuGetVersion(raw: str | None) -> NuGetVersion | None:
    if raw is None:
        return None
    try:
        return parseNuGetVersion(raw)
    except ValueError:
        return None



class VersionSpec:
    """
    The version text written in a directive, kept verbatim.

    Equality and hashing are case-insensitive over the raw text; `isPinned`
    decides whether a script using it may be served from the execution cache.
    """
    __slots__ = ("_value",)

    def __init__(self, value: str | None) -> None:
        self._value = (value or "").strip()

    @property
    def value(self) -> str:
        return self._value

    @property
    def isPinned(self) -> bool:
        if not self._value:
            return False
        return bool(_PINNED_EXACT_RE.match(self._value) or _PINNED_BRACKET_RE.match(self._value))

    def exactVersion(self) -> NuGetVersion | None:
        """The single version this range pins to, or None for open ranges and floating versions."""
        if not self.isPinned:
            return None
        text = self._value
        if text.startswith("["):
            text = text[1:-1].strip()
        return tryParseNuGetVersion(re.sub(r"\s+", "", text))

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"VersionSpec({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, str):
            return self._value.lower() == other.strip().lower()
        if not isinstance(other, VersionSpec):
            return NotImplemented
        return self._value.lower() == other._value.lower()

    def __hash__(self) -> int:
        return hash(self._value.lower())



@dataclass(frozen=True)
class VersionMatchResult(Generic[T]):
    """
    Result of picking the best among versioned candidates.

    - candidates: all candidates seen, in input order.
    - best: the highest version, or None when there were no candidates.
            If multiple candidates share the same highest version, the
            first one in the input order is returned.
    """
    candidates: tuple[tuple[NuGetVersion, T], ...]
    best: tuple[NuGetVersion, T] | None



def pickHighest(candidates: Iterable[tuple[NuGetVersion, T]]) -> VersionMatchResult[T]:
    candidatesList: list[tuple[NuGetVersion, T]] = list(candidates)

    best: tuple[NuGetVersion, T] | None = None
    if candidatesList:
        bestVersion, bestPayload = candidatesList[0]
        for version, payload in candidatesList[1:]:
            # Strictly greater: ties keep the earlier candidate
            if version > bestVersion:
                bestVersion, bestPayload = version, payload
        best = (bestVersion, bestPayload)

    return VersionMatchResult(candidates=tuple(candidatesList), best=best)
