# scriptdeps/graph/models.py
from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from scriptdeps.versioning.nugetversion import NuGetVersion

__all__ = ["DEFAULT_DEPENDENCY_NAME", "ScriptDependency", "DependencyContext", "RuntimeAssembly"]



# Name of the synthetic entry holding the host's own framework assemblies
DEFAULT_DEPENDENCY_NAME = "ScriptDeps.Default"



@dataclass(frozen=True)
class ScriptDependency:
    """One resolved package (or the default entry) with absolute asset paths per group."""
    name: str
    version: str
    compileTimePaths: tuple[str, ...] = field(default_factory=tuple)
    runtimePaths: tuple[str, ...] = field(default_factory=tuple)
    nativeAssetPaths: tuple[str, ...] = field(default_factory=tuple)
    scriptPaths: tuple[str, ...] = field(default_factory=tuple)

    @property
    def isDefault(self) -> bool:
        return self.name == DEFAULT_DEPENDENCY_NAME

    def allAssetPaths(self) -> tuple[str, ...]:
        return self.compileTimePaths + self.runtimePaths + self.nativeAssetPaths + self.scriptPaths

    def __str__(self) -> str:
        return f"{self.name}/{self.version}"



@dataclass(frozen=True)
class DependencyContext:
    """
    Ordered dependencies read from the dependency graph.

    Package entries come in graph order; the synthetic default entry is
    always last.
    """
    dependencies: tuple[ScriptDependency, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[ScriptDependency]:
        return iter(self.dependencies)

    def __len__(self) -> int:
        return len(self.dependencies)

    @property
    def packages(self) -> tuple[ScriptDependency, ...]:
        return tuple(dep for dep in self.dependencies if not dep.isDefault)

    @property
    def default(self) -> ScriptDependency | None:
        if self.dependencies and self.dependencies[-1].isDefault:
            return self.dependencies[-1]
        return None

    def find(self, name: str) -> ScriptDependency | None:
        lowered = name.lower()
        for dep in self.dependencies:
            if dep.name.lower() == lowered:
                return dep
        return None



@dataclass(frozen=True)
class RuntimeAssembly:
    """The winning copy of an assembly after deduplication."""
    name: str
    version: NuGetVersion
    path: str
    package: str = ""

    def __str__(self) -> str:
        return f"{self.name}, {self.version} ({self.path})"
