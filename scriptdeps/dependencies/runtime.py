# scriptdeps/dependencies/runtime.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from scriptdeps.core.logging import componentLogger
from scriptdeps.dependencies.dedupe import AssemblyRedirectMap, deduplicate
from scriptdeps.graph.models import DependencyContext, RuntimeAssembly

__all__ = ["RuntimeDependencies", "RuntimeDependencyResolver", "collectNativeAssets"]



@dataclass(frozen=True)
class RuntimeDependencies:
    assemblies: dict[str, RuntimeAssembly] = field(default_factory=dict)
    nativeAssets: tuple[str, ...] = field(default_factory=tuple)

    def redirectMap(self, *, logger: logging.Logger | None = None) -> AssemblyRedirectMap:
        return AssemblyRedirectMap(self.assemblies, logger=logger)



def collectNativeAssets(context: DependencyContext) -> tuple[str, ...]:
    out: list[str] = []
    seen: set[str] = set()
    for dep in context:
        for path in dep.nativeAssetPaths:
            if path not in seen:
                seen.add(path)
                out.append(path)
    return tuple(out)



class RuntimeDependencyResolver:
    """What the host has to make loadable when the compiled script runs."""

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._log = componentLogger("dependencies.runtime", logger)

    def fromContext(self, context: DependencyContext) -> RuntimeDependencies:
        assemblies = deduplicate(context, kind="runtime")
        native = collectNativeAssets(context)
        self._log.debug("%d runtime assembly(ies), %d native asset(s)", len(assemblies), len(native))
        return RuntimeDependencies(assemblies=assemblies, nativeAssets=native)
