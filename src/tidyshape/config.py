# -------------------------------------
# CSV options and YAML config
# -------------------------------------
"""
Options for reading and writing CSV tables.

Options can be built in code or loaded from a YAML file:

    read:
      missing_value_token: "NA"
      delimiter: ","
      column_types:
        no_membrs: integer
        village: text
    write:
      delimiter: ","
      include_header: true
"""
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

COLUMN_TYPE_NAMES = ("numeric", "integer", "text", "boolean")


@dataclass(frozen=True)
class ReadOptions:
    missing_value_token: str = "NA"
    delimiter: str = ","
    column_types: dict[str, str] = field(default_factory=dict)
    true_values: tuple[str, ...] = ("true", "True", "TRUE")
    false_values: tuple[str, ...] = ("false", "False", "FALSE")

    def __post_init__(self):
        for name, type_name in self.column_types.items():
            if type_name not in COLUMN_TYPE_NAMES:
                raise ValueError(
                    f"Unknown type '{type_name}' for column '{name}'. "
                    f"Supported: {list(COLUMN_TYPE_NAMES)}"
                )
        if len(self.delimiter) != 1:
            raise ValueError(f"delimiter must be a single character, got {self.delimiter!r}")

    def with_overrides(self, **overrides: Any) -> "ReadOptions":
        """Copy with the given non-None fields replaced."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


@dataclass(frozen=True)
class WriteOptions:
    delimiter: str = ","
    include_header: bool = True

    def __post_init__(self):
        if len(self.delimiter) != 1:
            raise ValueError(f"delimiter must be a single character, got {self.delimiter!r}")


@dataclass(frozen=True)
class Config:
    read: ReadOptions = field(default_factory=ReadOptions)
    write: WriteOptions = field(default_factory=WriteOptions)


# Module-level cache for loaded config files
_CONFIG_CACHE: dict[str, Config] = {}


def _build(cls, section: str, data: Any):
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ValueError(f"Config section '{section}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown keys in config section '{section}': {sorted(unknown)}")
    values = dict(data)
    for key in ("true_values", "false_values"):
        if key in values:
            values[key] = tuple(str(v) for v in values[key])
    if "missing_value_token" in values:
        values["missing_value_token"] = str(values["missing_value_token"])
    return cls(**values)


def load_config(path: str | Path) -> Config:
    """
    Load a YAML config file with optional 'read' and 'write' sections.

    Args:
        path: Path to the YAML file

    Returns:
        Config with defaults for anything the file leaves out

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If the file is not valid YAML
        ValueError: If the file has unknown sections or keys
    """
    path = Path(path)
    path_str = str(path.resolve())
    if path_str in _CONFIG_CACHE:
        return _CONFIG_CACHE[path_str]

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    unknown = set(data) - {"read", "write"}
    if unknown:
        raise ValueError(f"Unknown config sections: {sorted(unknown)}")

    config = Config(
        read=_build(ReadOptions, "read", data.get("read")),
        write=_build(WriteOptions, "write", data.get("write")),
    )
    logger.debug("loaded config %s: %s", path_str, config)
    _CONFIG_CACHE[path_str] = config
    return config


def clear_cache():
    """Clear the config file cache."""
    _CONFIG_CACHE.clear()
