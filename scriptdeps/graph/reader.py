# scriptdeps/graph/reader.py
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path, PurePosixPath
from typing import Any, Callable, cast

import fastjsonschema

from scriptdeps.core.errors import DependencyGraphNotFoundError, MalformedDependencyGraphError
from scriptdeps.core.logging import componentLogger
from scriptdeps.graph.frameworks import currentRuntimeIdentifier, pickContentFolder, runtimeFallbacks
from scriptdeps.graph.models import DependencyContext, ScriptDependency
from scriptdeps.graph.runtime_assemblies import RuntimeAssemblyProvider

__all__ = ["GRAPH_SCHEMA", "DependencyGraphReader", "selectScriptFiles"]

ValidatorFn = Callable[[Any], Any]



# Shape of the parts of the restore graph we rely on. Anything else is ignored.
_ASSET_GROUP = {"type": "object", "additionalProperties": {"type": "object"}}

GRAPH_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["version", "targets", "libraries"],
    "properties": {
        "version": {"type": "integer"},
        "targets": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "additionalProperties": {
                    "type": "object",
                    "properties": {
                        "type": {"type": "string"},
                        "compile": _ASSET_GROUP,
                        "runtime": _ASSET_GROUP,
                        "native": _ASSET_GROUP,
                        "contentFiles": _ASSET_GROUP,
                        "runtimeTargets": {
                            "type": "object",
                            "additionalProperties": {
                                "type": "object",
                                "properties": {
                                    "assetType": {"type": "string"},
                                    "rid": {"type": "string"},
                                },
                            },
                        },
                    },
                },
            },
        },
        "libraries": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "type": {"type": "string"},
                    "path": {"type": "string"},
                    "files": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
        "packageFolders": {"type": "object"},
    },
}

_validateGraph: ValidatorFn = cast(ValidatorFn, fastjsonschema.compile(GRAPH_SCHEMA))

_PLACEHOLDER = "_._"
_SCRIPT_ROOT = ("contentfiles", "csx")
_MAIN_SCRIPT = "main.csx"



def selectScriptFiles(contentFiles: list[str], targetFramework: str) -> list[str]:
    """
    Pick the script payload out of a package's content files.

    Only `contentFiles/csx/<framework>/...` entries count. The 'any' folder wins,
    otherwise the nearest compatible framework folder. A `main.csx` in the chosen
    folder replaces everything else in it.
    """
    byFolder: dict[str, list[str]] = {}
    for asset in contentFiles:
        parts = PurePosixPath(asset).parts
        if len(parts) < 4 or tuple(p.lower() for p in parts[:2]) != _SCRIPT_ROOT:
            continue
        if not parts[-1].lower().endswith(".csx"):
            continue
        byFolder.setdefault(parts[2], []).append(asset)

    folder = pickContentFolder(list(byFolder), targetFramework)
    if folder is None:
        return []
    files = byFolder[folder]
    mains = [asset for asset in files if PurePosixPath(asset).name.lower() == _MAIN_SCRIPT]
    return mains[:1] if mains else files



class DependencyGraphReader:
    """
    Reads the restore tool's dependency graph (`obj/project.assets.json`) into a
    DependencyContext with absolute asset paths.
    """

    def __init__(
        self,
        runtimeAssemblies: RuntimeAssemblyProvider | None = None,
        *,
        runtimeIdentifier: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._log = componentLogger("graph.reader", logger)
        self._runtimeAssemblies = runtimeAssemblies if runtimeAssemblies is not None else RuntimeAssemblyProvider(logger=self._log)
        self._rids = runtimeFallbacks(runtimeIdentifier or currentRuntimeIdentifier())

    def read(self, graphPath: str | Path, *, targetFramework: str) -> DependencyContext:
        graphPath = Path(graphPath)
        doc = self._load(graphPath)

        target = self._selectTarget(doc["targets"], targetFramework, graphPath)
        libraries: Mapping[str, Any] = doc["libraries"]
        packageFolders = [Path(folder) for folder in (doc.get("packageFolders") or {})]

        dependencies: list[ScriptDependency] = []
        for key, entry in target.items():
            if entry.get("type", "package") != "package":
                continue
            name, _, version = key.partition("/")
            library = libraries.get(key) or {}
            libraryPath = library.get("path") or f"{name.lower()}/{version.lower()}"
            resolve = self._resolverFor(packageFolders, libraryPath)

            contentFiles = list((entry.get("contentFiles") or {}).keys())
            if not contentFiles:
                # Older graphs only list content in the library file table
                contentFiles = [f for f in library.get("files", []) if f.lower().startswith("contentfiles/csx/")]

            dependencies.append(
                ScriptDependency(
                    name=name,
                    version=version,
                    compileTimePaths=tuple(resolve(a) for a in self._assets(entry.get("compile"))),
                    runtimePaths=tuple(resolve(a) for a in self._assets(entry.get("runtime"))),
                    nativeAssetPaths=tuple(resolve(a) for a in self._nativeAssets(entry)),
                    scriptPaths=tuple(resolve(a) for a in selectScriptFiles(contentFiles, targetFramework)),
                )
            )

        dependencies.append(self._runtimeAssemblies.getDefaultDependency(targetFramework))
        self._log.debug("Read %d package(s) from '%s'", len(dependencies) - 1, graphPath)
        return DependencyContext(tuple(dependencies))

    # ----- Helpers -----

    def _load(self, graphPath: Path) -> dict[str, Any]:
        if not graphPath.is_file():
            raise DependencyGraphNotFoundError(
                f"Unable to read dependency graph '{graphPath}': file not found. Was the restore successful?",
                graphPath=str(graphPath),
            )
        try:
            doc = json.loads(graphPath.read_text(encoding="utf-8-sig"))
        except (ValueError, UnicodeDecodeError) as err:
            raise MalformedDependencyGraphError(f"Dependency graph '{graphPath}' is not valid JSON: {err}", graphPath=str(graphPath)) from err
        try:
            _validateGraph(doc)
        except fastjsonschema.JsonSchemaException as err:
            raise MalformedDependencyGraphError(f"Dependency graph '{graphPath}' has an unexpected shape: {err}", graphPath=str(graphPath)) from err
        return doc

    def _selectTarget(self, targets: Mapping[str, Any], targetFramework: str, graphPath: Path) -> Mapping[str, Any]:
        lowered = {key.lower(): value for key, value in targets.items()}
        # Runtime-specific targets carry the native assets for this machine
        for rid in self._rids:
            specific = lowered.get(f"{targetFramework.lower()}/{rid}")
            if specific is not None:
                return specific
        generic = lowered.get(targetFramework.lower())
        if generic is not None:
            return generic
        raise MalformedDependencyGraphError(
            f"Dependency graph '{graphPath}' does not contain a target for '{targetFramework}' "
            f"(available: {', '.join(targets) or 'none'})",
            graphPath=str(graphPath),
        )

    @staticmethod
    def _assets(group: Mapping[str, Any] | None) -> list[str]:
        if not group:
            return []
        return [asset for asset in group if PurePosixPath(asset).name != _PLACEHOLDER]

    def _nativeAssets(self, entry: Mapping[str, Any]) -> list[str]:
        out = self._assets(entry.get("native"))
        runtimeTargets: Mapping[str, Any] = entry.get("runtimeTargets") or {}
        for rid in self._rids:
            matches = [
                asset
                for asset, props in runtimeTargets.items()
                if props.get("assetType") == "native" and props.get("rid") == rid and PurePosixPath(asset).name != _PLACEHOLDER
            ]
            if matches:
                out.extend(matches)
                break
        return out

    def _resolverFor(self, packageFolders: list[Path], libraryPath: str) -> Callable[[str], str]:
        def resolve(asset: str) -> str:
            for folder in packageFolders:
                candidate = folder / libraryPath / asset
                if candidate.exists():
                    return str(candidate)
            if packageFolders:
                return str(packageFolders[0] / libraryPath / asset)
            return str(Path(libraryPath) / asset)
        return resolve
