import json
from pathlib import Path

from scriptdeps.core.errors import RestoreFailedError
from scriptdeps.project.paths import graphPathFor



def writeAssembly(path: Path, payload: bytes = b"") -> Path:
    """A file that passes the 'MZ' header check used for framework assemblies."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"MZ" + payload)
    return path



def assetsDocument(
    packageFolder: Path,
    targetFramework: str,
    packages: dict[str, dict],
    *,
    libraryFiles: dict[str, list[str]] | None = None,
) -> dict:
    """
    Minimal project.assets.json. `packages` maps "Name/1.0.0" to its target
    entry (compile/runtime/native/runtimeTargets/contentFiles).
    """
    libraries = {}
    for key in packages:
        name, _, version = key.partition("/")
        libraries[key] = {
            "type": "package",
            "path": f"{name.lower()}/{version.lower()}",
            "files": (libraryFiles or {}).get(key, []),
        }
    return {
        "version": 3,
        "targets": {targetFramework: {key: {"type": "package", **entry} for key, entry in packages.items()}},
        "libraries": libraries,
        "packageFolders": {str(packageFolder): {}},
    }



def writeGraph(manifestPath: Path, document: dict) -> Path:
    graphPath = graphPathFor(manifestPath)
    graphPath.parent.mkdir(parents=True, exist_ok=True)
    graphPath.write_text(json.dumps(document), encoding="utf-8")
    return graphPath



class FakeRestorer:
    """Stands in for the restore tool: writes a prepared graph next to the manifest."""

    def __init__(self, document: dict | None = None, *, failures: int = 0) -> None:
        self.document = document if document is not None else {"version": 3, "targets": {"net8.0": {}}, "libraries": {}}
        self.failures = failures
        self.calls: list[dict] = []
        self.invalidated: list[Path] = []

    def restore(self, manifestPath, *, packageSources=(), timeout=None, cancelEvent=None):
        self.calls.append({"manifestPath": Path(manifestPath), "packageSources": tuple(packageSources), "timeout": timeout})
        if self.failures > 0:
            self.failures -= 1
            raise RestoreFailedError("Package restore failed with exit code 1", output="error NU1101: Unable to find package", exitCode=1)
        return writeGraph(Path(manifestPath), self.document)

    def invalidate(self, manifestPath):
        self.invalidated.append(Path(manifestPath))
