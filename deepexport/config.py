"""Configuration loading for Deep Export.

Settings come from a YAML file and can be overridden from the command line.
The file mirrors the settings the export needs::

    docbase:
      name: repo1
      user: dmadmin
      password: ${DEEPEXPORT_PASSWORD}
      backend: memory
    export:
      source: /Temp
      target: /data/export
      versions: false
      page_size: 4000

``${VAR}`` references in string values are replaced from the environment;
references to unset variables are left as they are.
"""

import os
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from deepexport.errors import ConfigError
from deepexport.scanning import DEFAULT_PAGE_SIZE

DEFAULT_CONFIG_FILE = "deepexport.yaml"

ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

# Setting name -> (section, key) in the YAML file
_FILE_KEYS = {
    "docbase": ("docbase", "name"),
    "user": ("docbase", "user"),
    "password": ("docbase", "password"),
    "backend": ("docbase", "backend"),
    "source": ("export", "source"),
    "target": ("export", "target"),
    "all_versions": ("export", "versions"),
    "page_size": ("export", "page_size"),
}

_REQUIRED = ("docbase", "user", "password", "source", "target")


@dataclass(frozen=True)
class ExportConfig:
    """Settings for one export run."""
    docbase: str = ""                 # Repository name (snapshot path for the memory backend)
    user: str = ""                    # Repository user
    password: str = ""                # Repository secret
    source: str = ""                  # Repository folder path to export
    target: str = ""                  # Local directory to export into
    all_versions: bool = False        # Export every version, not only the current one
    backend: str = "memory"           # Repository backend name
    page_size: int = DEFAULT_PAGE_SIZE  # Rows per enumeration page

    @property
    def source_path(self) -> str:
        return trim_trailing_slash(self.source.strip())

    @property
    def target_path(self) -> Path:
        return Path(trim_trailing_slash(self.target.strip()))

    def merged(self, **overrides: Any) -> "ExportConfig":
        """Return a copy with every override that is not None applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)

    def validate(self, require_target: bool = True) -> None:
        """Check that every required setting is present.

        The target is only required when files are going to be written.

        Raises:
            ConfigError: Naming every missing setting, or an invalid page size.
        """
        missing: List[str] = [
            name for name in _REQUIRED
            if (require_target or name != "target") and not str(getattr(self, name) or "").strip()
        ]
        if missing:
            raise ConfigError(f"Missing required settings: {', '.join(missing)}")
        if not isinstance(self.page_size, int) or self.page_size < 1:
            raise ConfigError(f"page_size must be a positive integer, got {self.page_size!r}")


def trim_trailing_slash(path: str) -> str:
    """Strip trailing slashes and backslashes, keeping a bare root."""
    trimmed = path.rstrip("/\\")
    if not trimmed and path:
        return path[0]
    return trimmed


def load_config(config_path: Union[str, Path]) -> ExportConfig:
    """Load an ExportConfig from a YAML file.

    Raises:
        ConfigError: If the file is missing, unreadable or malformed.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {config_path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a mapping")

    data = _substitute_env_vars(data)
    return config_from_dict(data)


def config_from_dict(data: Dict[str, Any]) -> ExportConfig:
    """Build an ExportConfig from the nested file layout.

    Raises:
        ConfigError: If a section is not a mapping or a value has the wrong type.
    """
    values: Dict[str, Any] = {}
    for name, (section, key) in _FILE_KEYS.items():
        section_data = data.get(section) or {}
        if not isinstance(section_data, dict):
            raise ConfigError(f"Section '{section}' must be a mapping")
        if key in section_data and section_data[key] is not None:
            values[name] = section_data[key]

    for name, value in list(values.items()):
        if name == "all_versions":
            values[name] = _as_bool(value, "export.versions")
        elif name == "page_size":
            try:
                values[name] = int(value)
            except (TypeError, ValueError):
                raise ConfigError(f"export.page_size must be an integer, got {value!r}")
        else:
            values[name] = str(value)
    return ExportConfig(**values)


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "yes", "1", "false", "no", "0"):
        return value.strip().lower() in ("true", "yes", "1")
    raise ConfigError(f"{key} must be a boolean, got {value!r}")


def _substitute_env_vars(value: Any) -> Any:
    """Recursively replace ${VAR} references in strings."""
    if isinstance(value, dict):
        return {key: _substitute_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    if isinstance(value, str):
        return ENV_VAR_PATTERN.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)
    return value
