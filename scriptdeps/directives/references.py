# scriptdeps/directives/references.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from scriptdeps.versioning.nugetversion import VersionSpec

__all__ = ["PackageReference", "AssemblyReference"]



class PackageReference:
    """
    `#r "nuget: Id, Version"` or `#load "nuget: Id, Version"`.

    Immutable. Two references are equal when id and version text match
    case-insensitively; the hash is consistent with that equality.
    """
    __slots__ = ("_id", "_version")

    def __init__(self, id: str, version: str | VersionSpec | None = None) -> None:
        if id is None or not str(id).strip():
            raise ValueError("Package id cannot be empty")
        self._id = str(id).strip()
        self._version = version if isinstance(version, VersionSpec) else VersionSpec(version)

    @property
    def id(self) -> str:
        return self._id

    @property
    def version(self) -> VersionSpec:
        return self._version

    def __setattr__(self, name: str, value: object) -> None:
        if hasattr(self, name):
            raise AttributeError(f"{type(self).__name__} is immutable")
        object.__setattr__(self, name, value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageReference):
            return NotImplemented
        return self._id.lower() == other._id.lower() and self._version == other._version

    def __hash__(self) -> int:
        return hash((self._id.lower(), self._version))

    def __repr__(self) -> str:
        return f"PackageReference({self._id!r}, {self._version.value!r})"

    def __str__(self) -> str:
        return f"{self._id}, {self._version}" if self._version.value else self._id



@dataclass(frozen=True)
class AssemblyReference:
    """A direct (non-package) binary reference, stored as an absolute path."""
    path: str

    @classmethod
    def fromPath(cls, path: str | Path) -> AssemblyReference:
        return cls(str(Path(path).resolve(strict=False)))
