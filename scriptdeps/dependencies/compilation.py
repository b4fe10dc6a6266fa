# scriptdeps/dependencies/compilation.py
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from scriptdeps.core.logging import componentLogger
from scriptdeps.dependencies.context import DependencyContextProvider
from scriptdeps.dependencies.dedupe import assemblyName, deduplicate
from scriptdeps.graph.models import DependencyContext
from scriptdeps.project.descriptor import ManifestDescriptor

__all__ = ["CompilationReference", "CompilationReferenceReader", "CompilationDependencyResolver"]



@dataclass(frozen=True)
class CompilationReference:
    """An assembly handed to the compiler. `package` is empty for direct references."""
    name: str
    path: str
    version: str = ""
    package: str = ""

    @property
    def isDirect(self) -> bool:
        return not self.package



class CompilationReferenceReader:
    """Compile-time view of a dependency context: reference assemblies only, one per name."""

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._log = componentLogger("dependencies.compilation", logger)

    def read(self, context: DependencyContext, descriptor: ManifestDescriptor) -> list[CompilationReference]:
        deduped = deduplicate(context, kind="compile")
        references = [
            CompilationReference(name=asm.name, path=asm.path, version=str(asm.version), package=asm.package)
            for asm in deduped.values()
        ]
        seen = {ref.path for ref in references}
        for direct in descriptor.assemblyReferences:
            if direct.path in seen:
                continue
            seen.add(direct.path)
            references.append(CompilationReference(name=assemblyName(direct.path), path=direct.path))

        self._log.debug("%d compilation reference(s)", len(references))
        return references



class CompilationDependencyResolver:
    def __init__(
        self,
        provider: DependencyContextProvider,
        reader: CompilationReferenceReader | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._provider = provider
        self._reader = reader if reader is not None else CompilationReferenceReader(logger=logger)

    def getReferences(
        self,
        scriptPath: str | Path,
        *,
        targetFramework: str | None = None,
        packageSources: Sequence[str] = (),
    ) -> list[CompilationReference]:
        resolved = self._provider.resolve(scriptPath, targetFramework=targetFramework, packageSources=packageSources)
        return self._reader.read(resolved.context, resolved.descriptor)
