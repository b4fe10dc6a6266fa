import sys
from pathlib import Path

import pytest

from scriptdeps.config.settings import ScriptDepsSettings
from tests.support import writeAssembly



def pytest_configure(config: pytest.Config) -> None:
    if sys.flags.optimize:
        raise RuntimeError("Assertions are disabled (optimize > 0)")



@pytest.fixture
def cacheRoot(tmp_path: Path) -> Path:
    root = tmp_path / "cache"
    root.mkdir()
    return root



@pytest.fixture
def runtimeDir(tmp_path: Path) -> Path:
    directory = tmp_path / "shared" / "Microsoft.NETCore.App" / "8.0.4"
    writeAssembly(directory / "System.Runtime.dll")
    writeAssembly(directory / "System.Text.Json.dll")
    return directory



@pytest.fixture
def settings(cacheRoot: Path, runtimeDir: Path) -> ScriptDepsSettings:
    return ScriptDepsSettings(
        cacheLocation=cacheRoot,
        targetFramework="net8.0",
        runtimeDirectory=runtimeDir,
    )
