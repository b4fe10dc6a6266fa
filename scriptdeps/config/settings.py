# scriptdeps/config/settings.py
from __future__ import annotations
import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import json5
from pydantic import BaseModel, ConfigDict, Field

from .merge import mergeWithStrategy

logger = logging.getLogger(__name__)

__all__ = [
    "RestoreSettings",
    "RemoteSettings",
    "LoggingSettings",
    "ScriptDepsSettings",
    "loadSettings",
    "CONFIG_FILE_NAME",
    "ENV_PREFIX",
]

CONFIG_FILE_NAME = "scriptdeps.json5"
ENV_PREFIX = "SCRIPTDEPS_"

# Environment variable -> settings key. Lists are ';'-separated.
_ENV_KEYS: dict[str, tuple[str, ...]] = {
    "CACHE_LOCATION": ("cacheLocation",),
    "TARGET_FRAMEWORK": ("targetFramework",),
    "PACKAGE_SOURCES": ("packageSources",),
    "DOTNET_PATH": ("dotnetPath",),
    "RUNTIME_DIRECTORY": ("runtimeDirectory",),
    "RESTORE_TIMEOUT": ("restore", "timeoutSeconds"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_FILE": ("logging", "jsonFile"),
}



class RestoreSettings(BaseModel):
    """How the external restore tool is driven."""
    model_config = ConfigDict(extra="forbid")

    timeoutSeconds: float | None = 300.0
    retryOnFailure: bool = True



class RemoteSettings(BaseModel):
    """Download policy for `#load "https://..."` targets."""
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    timeoutMs: int = 30_000
    retries: int = 2
    backoffBaseMs: int = 250
    backoffMaxMs: int = 1_000



class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: str = "INFO"
    jsonFile: str | None = None
    redact: bool = True



class ScriptDepsSettings(BaseModel):
    """Validated settings for one process. Immutable once loaded."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    cacheLocation: Path | None = None
    targetFramework: str = "net8.0"
    packageSources: list[str] = Field(default_factory=list)
    dotnetPath: str = "dotnet"
    runtimeDirectory: Path | None = None
    restore: RestoreSettings = Field(default_factory=RestoreSettings)
    remote: RemoteSettings = Field(default_factory=RemoteSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def cacheRoot(self) -> Path:
        """Root under which every per-script temp directory lives."""
        if self.cacheLocation is not None:
            return Path(self.cacheLocation)
        return Path(tempfile.gettempdir()) / "scriptdeps"



def _readConfigFile(path: Path) -> dict[str, Any]:
    try:
        parsed = json5.loads(path.read_text("utf-8"))
    except ValueError as err:
        raise ValueError(f"Failed to parse settings file '{path}': {err}") from err
    if not isinstance(parsed, Mapping):
        raise TypeError(f"Settings file '{path}' must contain an object, not '{type(parsed).__name__}'")
    return dict(parsed)



def _locateConfigFile(path: str | Path | None, env: Mapping[str, str], cwd: Path) -> Path | None:
    if path is not None:
        explicit = Path(path)
        if not explicit.is_file():
            raise FileNotFoundError(f"Settings file '{explicit}' not found")
        return explicit
    fromEnv = env.get(f"{ENV_PREFIX}CONFIG")
    if fromEnv:
        candidate = Path(fromEnv)
        if not candidate.is_file():
            raise FileNotFoundError(f"Settings file '{candidate}' (from {ENV_PREFIX}CONFIG) not found")
        return candidate
    local = cwd / CONFIG_FILE_NAME
    return local if local.is_file() else None



def _envLayer(env: Mapping[str, str]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for suffix, keyPath in _ENV_KEYS.items():
        raw = env.get(ENV_PREFIX + suffix)
        if raw is None or raw == "":
            continue
        value: Any = raw
        if keyPath == ("packageSources",):
            value = [part.strip() for part in raw.split(";") if part.strip()]
        node = layer
        for part in keyPath[:-1]:
            node = node.setdefault(part, {})
        node[keyPath[-1]] = value
    return layer



def loadSettings(
    path: str | Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
    cwd: str | Path | None = None,
) -> ScriptDepsSettings:
    """
    Build settings from layers, later layers winning:

        defaults <- JSON5 file <- SCRIPTDEPS_* environment <- overrides

    The file is `path`, else $SCRIPTDEPS_CONFIG, else ./scriptdeps.json5 when
    present. `overrides` typically carries command-line flags; use
    {"packageSources": [...], "packageSources__merge": "append"} to extend
    rather than replace configured feeds.
    """
    env = os.environ if env is None else env
    workDir = Path(cwd) if cwd is not None else Path.cwd()

    merged: dict[str, Any] = {}
    configFile = _locateConfigFile(path, env, workDir)
    if configFile is not None:
        logger.debug("Loading settings from '%s'", configFile)
        merged = mergeWithStrategy(merged, _readConfigFile(configFile))
    merged = mergeWithStrategy(merged, _envLayer(env))
    if overrides:
        merged = mergeWithStrategy(merged, dict(overrides))

    return ScriptDepsSettings.model_validate(merged)
