import os
from dataclasses import dataclass, field, fields
from typing import Any

import yaml

from .errors import ConfigError
from .paths import normalize_path, split_path

DEFAULT_SYNTAX_CHECK = ("node", "--check")
DEFAULT_STUB_TEMPLATE = "console.error(`{trace}`);\nprocess.exit(1);\n"


def get_config_path(custom_path=None):
    if custom_path:
        return custom_path
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return os.path.join(xdg_config_home, "livebundle", "config.yaml")


def read_config(custom_path=None) -> dict[str, Any]:
    """Read the YAML config; only the default location may be absent."""
    config_path = get_config_path(custom_path)
    try:
        with open(config_path, "r", encoding="utf-8") as file:
            data = yaml.safe_load(file)
    except FileNotFoundError:
        if custom_path:
            raise ConfigError(f"Config file not found: {config_path}")
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("Config must be a YAML mapping")
    return data


def _check_delay(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be a number in milliseconds")
    if value < 0:
        raise ConfigError(f"{name} must not be negative")


@dataclass
class WriteConfig:
    path: str
    file_name: str | None = None
    write_delay: int = 250
    relative_errors: bool = True
    syntax_check: tuple[str, ...] = DEFAULT_SYNTAX_CHECK
    stub_template: str = DEFAULT_STUB_TEMPLATE

    def __post_init__(self):
        if not isinstance(self.path, str) or not self.path:
            raise ConfigError("write.path is a required string")
        self.path = normalize_path(self.path, keep_trailing_slash=True)
        if not self.path.endswith("/"):
            self.path += "/"
        if self.file_name is not None and not isinstance(self.file_name, str):
            raise ConfigError("write.file_name must be a string")
        _check_delay("write.write_delay", self.write_delay)
        if not isinstance(self.relative_errors, bool):
            raise ConfigError("write.relative_errors must be a boolean")
        if isinstance(self.syntax_check, str):
            self.syntax_check = tuple(self.syntax_check.split())
        else:
            self.syntax_check = tuple(self.syntax_check)

    def output_path(self, root: str) -> str:
        return self.path + self.artifact_name(root)

    def artifact_name(self, root: str) -> str:
        if self.file_name:
            return self.file_name
        return f"compiled_{split_path(root)[1]}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WriteConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown write option(s): {', '.join(sorted(unknown))}")
        return cls(**data)


@dataclass
class CompilerConfig:
    root: str
    watch_delay: int = 250
    settle_delay: int = 150
    include_tag: str = "include"
    write: WriteConfig | None = field(default=None)

    def __post_init__(self):
        if not isinstance(self.root, str) or not self.root:
            raise ConfigError("root must be a file path string")
        _check_delay("watch_delay", self.watch_delay)
        _check_delay("settle_delay", self.settle_delay)
        if not isinstance(self.include_tag, str) or not self.include_tag:
            raise ConfigError("include_tag must be a non-empty string")
        if isinstance(self.write, dict):
            self.write = WriteConfig.from_dict(self.write)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CompilerConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown option(s): {', '.join(sorted(unknown))}")
        if "root" not in data:
            raise ConfigError("root is required")
        return cls(**data)


_WRITE_OVERRIDES = {
    "out_dir": "path",
    "file_name": "file_name",
    "write_delay": "write_delay",
    "relative_errors": "relative_errors",
    "syntax_check": "syntax_check",
}


def load_config(custom_path=None, **overrides) -> CompilerConfig:
    """
    Merge the YAML config with keyword overrides (None values are skipped).

    Write options only take effect once an output directory is known.
    """
    data = read_config(custom_path)
    write = dict(data.pop("write", None) or {})
    for key, value in overrides.items():
        if value is None:
            continue
        if key in _WRITE_OVERRIDES:
            write[_WRITE_OVERRIDES[key]] = value
        else:
            data[key] = value
    if write.get("path"):
        data["write"] = write
    return CompilerConfig.from_dict(data)
