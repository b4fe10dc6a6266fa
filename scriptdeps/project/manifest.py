# scriptdeps/project/manifest.py
from __future__ import annotations

import logging
import shutil
import xml.etree.ElementTree as ET
from pathlib import Path

from scriptdeps.core.fileio import atomicWriteText
from scriptdeps.core.logging import componentLogger
from scriptdeps.directives.references import AssemblyReference, PackageReference
from scriptdeps.project.descriptor import DEFAULT_SDK, ManifestDescriptor
from scriptdeps.project.paths import MANIFEST_FILE_NAME, scriptTempDir

__all__ = ["ManifestSynthesizer", "renderManifest", "readManifest", "NUGET_CONFIG_NAMES"]



# Probed in this order next to the root script
NUGET_CONFIG_NAMES: tuple[str, ...] = ("NuGet.Config", "nuget.config", "NuGet.config")



def renderManifest(descriptor: ManifestDescriptor) -> str:
    """Render the MSBuild project text for a descriptor. Pure and deterministic."""
    project = ET.Element("Project", {"Sdk": descriptor.templateSdk})

    props = ET.SubElement(project, "PropertyGroup")
    ET.SubElement(props, "TargetFramework").text = descriptor.targetFramework
    ET.SubElement(props, "EnableDefaultCompileItems").text = "false"

    if descriptor.packageReferences:
        packages = ET.SubElement(project, "ItemGroup")
        for ref in descriptor.packageReferences:
            attrs = {"Include": ref.id}
            if ref.version.value:
                attrs["Version"] = ref.version.value
            ET.SubElement(packages, "PackageReference", attrs)

    if descriptor.assemblyReferences:
        assemblies = ET.SubElement(project, "ItemGroup")
        for ref in descriptor.assemblyReferences:
            ET.SubElement(assemblies, "Reference", {"Include": ref.path})

    ET.indent(project, space="  ")
    return ET.tostring(project, encoding="unicode") + "\n"



def readManifest(path: str | Path) -> ManifestDescriptor:
    """Parse a manifest written by `renderManifest` back into a descriptor."""
    root = ET.parse(str(path)).getroot()
    sdk = root.get("Sdk", "") or ""
    if sdk == DEFAULT_SDK:
        sdk = ""

    targetFramework = ""
    packages: list[PackageReference] = []
    assemblies: list[AssemblyReference] = []
    for elem in root.iter():
        if elem.tag == "TargetFramework":
            targetFramework = (elem.text or "").strip()
        elif elem.tag == "PackageReference":
            packages.append(PackageReference(elem.get("Include", ""), elem.get("Version", "")))
        elif elem.tag == "Reference":
            assemblies.append(AssemblyReference(elem.get("Include", "")))

    return ManifestDescriptor(
        targetFramework=targetFramework,
        packageReferences=tuple(packages),
        assemblyReferences=tuple(assemblies),
        sdk=sdk,
    )



class ManifestSynthesizer:
    """Writes the restore manifest for a descriptor into the per-script temp directory."""

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._log = componentLogger("project.manifest", logger)

    def manifestPathFor(self, scriptPath: str | Path, targetFramework: str, *, cacheRoot: str | Path) -> Path:
        return scriptTempDir(scriptPath, cacheRoot=cacheRoot) / targetFramework / MANIFEST_FILE_NAME

    def synthesize(
        self,
        descriptor: ManifestDescriptor,
        manifestPath: str | Path,
        *,
        scriptDirectory: str | Path | None = None,
    ) -> bool:
        """
        Write the manifest unless an equivalent one already exists.

        Returns True when the file was (re)written. An unchanged manifest keeps
        its mtime so restore tools can skip work. When `scriptDirectory` holds a
        NuGet.Config it is copied next to the manifest.
        """
        manifestPath = Path(manifestPath)
        manifestPath.parent.mkdir(parents=True, exist_ok=True)

        if scriptDirectory is not None:
            self._copyNuGetConfig(Path(scriptDirectory), manifestPath.parent)

        if manifestPath.is_file():
            try:
                existing = readManifest(manifestPath)
            except (ET.ParseError, ValueError) as err:
                self._log.debug("Rewriting unreadable manifest '%s': %s", manifestPath, err)
            else:
                if existing == descriptor:
                    self._log.debug("Manifest '%s' is up to date", manifestPath)
                    return False

        atomicWriteText(manifestPath, renderManifest(descriptor))
        self._log.info(
            "Wrote manifest '%s' (%d package(s), sdk=%s)",
            manifestPath,
            len(descriptor.packageReferences),
            descriptor.templateSdk,
        )
        return True

    def _copyNuGetConfig(self, scriptDirectory: Path, manifestDirectory: Path) -> None:
        for name in NUGET_CONFIG_NAMES:
            source = scriptDirectory / name
            if source.is_file():
                target = manifestDirectory / "NuGet.Config"
                if not target.is_file() or target.read_bytes() != source.read_bytes():
                    shutil.copyfile(source, target)
                    self._log.debug("Copied '%s' to '%s'", source, target)
                return
