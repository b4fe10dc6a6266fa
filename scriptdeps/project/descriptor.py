# scriptdeps/project/descriptor.py
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace

from scriptdeps.directives.references import AssemblyReference, PackageReference

__all__ = ["DEFAULT_SDK", "SUPPORTED_SDKS", "ManifestDescriptor"]



# Template used when no `sdk:` preset is referenced
DEFAULT_SDK = "Microsoft.NET.Sdk"

# Closed set of presets a script may ask for
SUPPORTED_SDKS: tuple[str, ...] = ("Microsoft.NET.Sdk.Web",)



def _dedupe(items: Iterable) -> tuple:
    seen: set = set()
    out: list = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
    return tuple(out)



@dataclass(frozen=True, eq=False)
class ManifestDescriptor:
    """
    Everything the restore manifest is synthesized from.

    Built once per script closure and never mutated. Reference order is kept
    (first occurrence wins) so the written manifest is stable, but equality is
    structural: same SDK, same reference sets, same target framework.
    """
    targetFramework: str
    packageReferences: tuple[PackageReference, ...] = field(default_factory=tuple)
    assemblyReferences: tuple[AssemblyReference, ...] = field(default_factory=tuple)
    sdk: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "packageReferences", _dedupe(self.packageReferences))
        object.__setattr__(self, "assemblyReferences", _dedupe(self.assemblyReferences))
        object.__setattr__(self, "sdk", (self.sdk or "").strip())
        object.__setattr__(self, "targetFramework", self.targetFramework.strip())

    @property
    def templateSdk(self) -> str:
        return self.sdk or DEFAULT_SDK

    @property
    def isCacheable(self) -> bool:
        """True when every package reference pins an exact version."""
        return all(ref.version.isPinned for ref in self.packageReferences)

    def withTargetFramework(self, targetFramework: str) -> ManifestDescriptor:
        return replace(self, targetFramework=targetFramework)

    def _key(self) -> tuple:
        return (
            self.templateSdk.lower(),
            frozenset(self.packageReferences),
            frozenset(self.assemblyReferences),
            self.targetFramework.lower(),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ManifestDescriptor):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())
