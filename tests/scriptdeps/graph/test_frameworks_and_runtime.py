from pathlib import Path

import pytest

from scriptdeps.graph.frameworks import isCompatibleFramework, pickContentFolder, runtimeFallbacks
from scriptdeps.graph.models import DEFAULT_DEPENDENCY_NAME
from scriptdeps.graph.runtime_assemblies import RuntimeAssemblyProvider, frameworkMajor
from tests.support import writeAssembly


def test_runtimeFallbacks():
    assert runtimeFallbacks("linux-x64") == ["linux-x64", "linux", "unix", "any"]
    assert runtimeFallbacks("win-arm64") == ["win-arm64", "win", "any"]


@pytest.mark.parametrize(
    "candidate, target, expected",
    [
        ("any", "net8.0", True),
        ("net8.0", "net8.0", True),
        ("net6.0", "net8.0", True),
        ("net9.0", "net8.0", False),
        ("netstandard2.0", "net8.0", True),
        ("netcoreapp3.1", "net8.0", True),
        ("net48", "net8.0", False),
    ],
)
def test_isCompatibleFramework(candidate, target, expected):
    assert isCompatibleFramework(candidate, target) is expected


def test_pickContentFolder_prefers_nearest():
    assert pickContentFolder(["netstandard2.0", "net6.0", "net7.0"], "net8.0") == "net7.0"
    assert pickContentFolder(["net9.0"], "net8.0") is None


def test_frameworkMajor():
    assert frameworkMajor("net8.0") == 8
    assert frameworkMajor("netcoreapp3.1") == 3
    assert frameworkMajor("netstandard2.0") is None


def test_provider_picks_highest_matching_major(tmp_path):
    root = tmp_path / "dotnet"
    shared = root / "shared" / "Microsoft.NETCore.App"
    writeAssembly(shared / "6.0.30" / "System.Runtime.dll")
    writeAssembly(shared / "8.0.1" / "System.Runtime.dll")
    writeAssembly(shared / "8.0.10" / "System.Runtime.dll")
    (shared / "8.0.10" / "libnative.so").write_bytes(b"\x7fELF")
    (shared / "8.0.10" / "NotAnAssembly.dll").write_bytes(b"nope")

    provider = RuntimeAssemblyProvider(env={"DOTNET_ROOT": str(root)})
    dep = provider.getDefaultDependency("net8.0")

    assert dep.name == DEFAULT_DEPENDENCY_NAME
    assert dep.version == "8.0.10"
    assert [Path(p).name for p in dep.runtimePaths] == ["System.Runtime.dll"]


def test_provider_without_runtime_returns_empty_entry(tmp_path, caplog):
    provider = RuntimeAssemblyProvider(dotnetPath=str(tmp_path / "missing"), env={})
    dep = provider.getDefaultDependency("net8.0")
    assert dep.name == DEFAULT_DEPENDENCY_NAME
    assert dep.runtimePaths == ()
    assert any("No shared framework" in r.getMessage() for r in caplog.records)
