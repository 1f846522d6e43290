from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from .command_list import CommandList, parse_platforms
from .errors import ConfigurationError

DEFAULT_CONFIG_PATH = "ship-nodegui.json"

COMMAND_LIST_KEYS = frozenset({"commands", "postBuild", "postPrune", "postAdd", "prePack"})
BOOL_KEYS = frozenset({"skip", "pruneEmptyDirectories"})
STRING_LIST_KEYS = frozenset({"patterns", "depends"})
NULLABLE_KEYS = frozenset({"scriptName"})

SECTION_KEYS: Dict[str, FrozenSet[str]] = {
    "prepare": frozenset({"tempDirectory"}),
    "fetch": frozenset({"gitUrl", "gitBranch", "commands"}),
    "build": frozenset({"skip", "packageManager", "scriptName", "postBuild"}),
    "prune": frozenset({"skip", "patterns", "pruneEmptyDirectories", "postPrune"}),
    "addLauncher": frozenset({"skip", "platform", "launcherName", "jsEntryPoint", "runtime", "postAdd"}),
    "zip": frozenset({"skip", "platform", "prePack"}),
    "debian": frozenset(
        {
            "skip",
            "platform",
            "packageName",
            "maintainer",
            "description",
            "section",
            "priority",
            "architecture",
            "depends",
            "installPath",
            "prePack",
        }
    ),
    "dmg": frozenset(
        {
            "skip",
            "platform",
            "volumeIcon",
            "background",
            "cfBundleDisplayName",
            "cfBundleDevelopmentRegion",
            "cfBundleExecutable",
            "cfBundleIconFile",
            "cfBundleIdentifier",
            "cfBundleName",
            "cfBundleShortVersionString",
            "cfBundleVersion",
            "nsHumanReadableCopyright",
            "prePack",
        }
    ),
    "installer": frozenset({"skip", "platform", "publisher", "installDirectoryName", "prePack"}),
}

REQUIRED_SECTIONS = ("fetch", "build", "prune")


@dataclass(frozen=True)
class SectionConfig:
    name: str
    raw: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        allowed = SECTION_KEYS[self.name]
        unknown = set(self.raw) - allowed
        if unknown:
            raise ConfigurationError(f"'{self.name}' section has unknown keys: {', '.join(sorted(unknown))}")

        for key, value in self.raw.items():
            where = f"{self.name}.{key}"
            if key in COMMAND_LIST_KEYS:
                CommandList.from_config(value, where=where)
            elif key == "platform":
                parse_platforms(value, where=self.name)
            elif key in BOOL_KEYS:
                if not isinstance(value, bool):
                    raise ConfigurationError(f"'{where}' must be true or false")
            elif key in STRING_LIST_KEYS:
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    raise ConfigurationError(f"'{where}' must be a list of strings")
            elif value is None and key in NULLABLE_KEYS:
                continue
            elif not isinstance(value, str):
                raise ConfigurationError(f"'{where}' must be a string")

    @property
    def skip(self) -> bool:
        return bool(self.raw.get("skip", False))

    @property
    def platforms(self) -> Optional[FrozenSet[str]]:
        return parse_platforms(self.raw.get("platform"), where=self.name)

    def get_str(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self.raw.get(key)
        return default if value is None else str(value)

    def get_bool(self, key: str, default: bool) -> bool:
        return bool(self.raw.get(key, default))

    def get_list(self, key: str) -> List[str]:
        return list(self.raw.get(key) or [])

    def has(self, key: str) -> bool:
        return self.raw.get(key) is not None

    def commands(self, key: str) -> CommandList:
        return CommandList.from_config(self.raw.get(key), where=f"{self.name}.{key}")


@dataclass(frozen=True)
class ShipConfig:
    raw: Dict[str, Any]
    path: str = DEFAULT_CONFIG_PATH

    def section(self, name: str) -> Optional[SectionConfig]:
        value = self.raw.get(name)
        if value is None:
            if name == "prepare":
                return SectionConfig(name="prepare")
            return None
        return SectionConfig(name=name, raw=dict(value))

    def has_section(self, name: str) -> bool:
        return self.raw.get(name) is not None


def parse_config(raw: Any, *, path: str = DEFAULT_CONFIG_PATH) -> ShipConfig:
    """Validate a decoded configuration document."""

    if not isinstance(raw, Mapping):
        raise ConfigurationError("Configuration must contain a mapping/object")

    unknown = set(raw) - set(SECTION_KEYS)
    if unknown:
        raise ConfigurationError(f"Configuration has unknown sections: {', '.join(sorted(unknown))}")

    for name in REQUIRED_SECTIONS:
        if raw.get(name) is None:
            raise ConfigurationError(f"Configuration file doesn't have a '{name}' section.")

    for name, value in raw.items():
        if value is None:
            continue
        if not isinstance(value, Mapping):
            raise ConfigurationError(f"'{name}' section must be a mapping/object")
        SectionConfig(name=name, raw=dict(value)).validate()

    fetch = raw["fetch"]
    if fetch.get("gitUrl") is None and fetch.get("commands") is None:
        raise ConfigurationError("Neither 'gitUrl' nor 'commands' were specified in the 'fetch' section.")

    return ShipConfig(raw=dict(raw), path=path)


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"yaml", "yml"}:
        return "yaml"
    # Default to JSON for unknown extensions.
    return "json"


def load_config(path: str) -> ShipConfig:
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"Configuration file not found at '{path}'.")

    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Unable to read configuration file at '{path}'. {e}") from e
    if _detect_format(p) == "yaml":
        try:
            import yaml  # type: ignore
        except Exception as e:  # pragma: no cover
            raise RuntimeError("PyYAML is required to read YAML configuration files") from e
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"An error occurred while parsing YAML configuration at '{path}'. {e}") from e
    else:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"An error occurred while parsing JSON configuration at '{path}'. {e}") from e

    return parse_config(raw, path=path)
