from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from scripthost.scripthost_engine import EngineOptions
from scripthost.scripthost_outcome import ScriptHostError
from scripthost.scripthost_packs import ScriptPackSession, load_script_pack
from scripthost.scripthost_references import ReferenceSet
from scripthost.scripthost_runner import ScriptRunner

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "scripthost.yaml"


class ConfigError(ScriptHostError):
    """The host configuration could not be read or is invalid."""


@dataclass
class HostConfig:
    """Settings shared by every session a runner serves."""
    base_directory: Optional[str] = None
    file_name: Optional[str] = None
    references: List[str] = field(default_factory=list)
    modules: List[str] = field(default_factory=list)
    namespaces: List[str] = field(default_factory=list)
    packs: List[str] = field(default_factory=list)
    log_level: str = "WARNING"

    def reference_set(self) -> ReferenceSet:
        """Path references plus the configured modules, imported now."""
        loaded = []
        for name in self.modules:
            try:
                loaded.append(importlib.import_module(name))
            except ImportError as e:
                raise ConfigError(f"cannot import module reference {name!r}: {e}") from e
        return ReferenceSet(self.references, loaded)

    def engine_options(self) -> EngineOptions:
        options = EngineOptions()
        if self.base_directory is not None:
            options = options.with_base_directory(self.base_directory)
        if self.file_name is not None:
            options = options.with_file_name(self.file_name)
        return options

    def create_runner(self, **kwargs) -> ScriptRunner:
        return ScriptRunner(options=self.engine_options(), **kwargs)

    def create_pack_session(self, script_args: Sequence[str] = ()) -> ScriptPackSession:
        try:
            packs = [load_script_pack(spec) for spec in self.packs]
        except (ImportError, AttributeError, TypeError, ValueError) as e:
            raise ConfigError(f"cannot load script pack: {e}") from e
        return ScriptPackSession(packs, script_args)


_LIST_KEYS = ("references", "modules", "namespaces", "packs")
_STR_KEYS = ("base_directory", "file_name", "log_level")


def config_from_mapping(data: Optional[Mapping[str, Any]], *, source: str = "<config>") -> HostConfig:
    if data is None:
        return HostConfig()
    if not isinstance(data, Mapping):
        raise ConfigError(f"{source}: top level must be a mapping, got {type(data).__name__}")

    known = {f.name for f in fields(HostConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"{source}: unknown keys: {', '.join(map(str, unknown))}")

    values: Dict[str, Any] = {}
    for key in _STR_KEYS:
        if data.get(key) is None:
            continue
        if not isinstance(data[key], str):
            raise ConfigError(f"{source}: {key} must be a string")
        values[key] = data[key]
    for key in _LIST_KEYS:
        items = data.get(key)
        if items is None:
            continue
        if not isinstance(items, list) or not all(isinstance(i, str) for i in items):
            raise ConfigError(f"{source}: {key} must be a list of strings")
        values[key] = list(items)
    return HostConfig(**values)


def load_config(path) -> HostConfig:
    """Read a YAML host configuration file.

    Relative `base_directory` values are resolved against the file's folder.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read {p}: {e}") from e
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"{p}: invalid YAML: {e}") from e

    config = config_from_mapping(data, source=str(p))
    if config.base_directory is None:
        config.base_directory = str(p.parent.resolve())
    elif not Path(config.base_directory).is_absolute():
        config.base_directory = str((p.parent / config.base_directory).resolve())
    logger.debug("Loaded configuration from %s", p)
    return config


__all__ = [
    "DEFAULT_CONFIG_NAME",
    "ConfigError",
    "HostConfig",
    "config_from_mapping",
    "load_config",
]
