"""
Configuration file loading.

Reads ``docpublisher.yaml`` from the project directory, merges an optional
``docpublisher.{env}.yaml`` over it, then resolves placeholders:

- ``${VAR}``: value of environment variable ``VAR``; left as written when unset
- ``${VAR:-default}``: ``default`` when ``VAR`` is unset or empty
- ``{env}``: the selected environment name
"""

import os
import re
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

import yaml

from docpublisher.exceptions import ConfigurationError

CONFIG_FILE_NAME = "docpublisher.yaml"
DEFAULT_ENV = "dev"

_PLACEHOLDER = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<default>[^}]*))?\}")


class Config:
    """Configuration container with dict-like and dot-notation access."""

    def __init__(self, data: dict[str, Any]):
        self.data = data

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (``docs.bucket``)."""
        value: Any = self.data
        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def section(self, key: str) -> dict[str, Any]:
        """A nested mapping, or an empty dict when absent."""
        value = self.get(key, {})
        if not isinstance(value, dict):
            raise ConfigurationError(f"Configuration '{key}' must be a mapping, got {type(value).__name__}")
        return value

    def __getitem__(self, key: str) -> Any:
        if "." in key:
            return self.get(key)
        if key in self.data:
            value = self.data[key]
            if isinstance(value, dict):
                return Config(value)
            return value
        raise KeyError(f"Config key '{key}' not found")

    def __contains__(self, key: str) -> bool:
        value: Any = self.data
        for k in key.split("."):
            if not isinstance(value, dict) or k not in value:
                return False
            value = value[k]
        return True

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ConfigurationError(f"Configuration path is not a file: {path}")
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark is not None else ""
        raise ConfigurationError(
            f"Error parsing {path.name}{where}:\n"
            f"  {e}\n"
            f"  Suggestion: Check YAML syntax, ensure proper indentation and quotes",
            details={"path": str(path)},
        ) from e
    except PermissionError as e:
        raise ConfigurationError(f"Permission denied reading {path}: {e}", details={"path": str(path)}) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration must be a mapping, got {type(data).__name__}", details={"path": str(path)}
        )
    return data


def load_config(
    project_path: Path | None = None,
    env: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """
    Load configuration.

    A missing ``docpublisher.yaml`` is not an error: everything has a default
    or can come from CLI options and environment variables.

    Args:
        project_path: Directory holding the config files (default: current directory)
        env: Environment name selecting ``docpublisher.{env}.yaml``
        environ: Variables for ``${VAR}`` placeholders (default: ``os.environ``)

    Returns:
        Config with merged and resolved data
    """
    if project_path is None:
        project_path = Path.cwd()
    project_path = Path(project_path)

    config_data: dict[str, Any] = {}
    base_config_path = project_path / CONFIG_FILE_NAME
    if base_config_path.exists():
        config_data = _read_yaml(base_config_path)

    if env:
        env_config_path = project_path / f"docpublisher.{env}.yaml"
        if env_config_path.exists():
            _merge_dict(config_data, _read_yaml(env_config_path))

    return Config(resolve_config(config_data, env or DEFAULT_ENV, environ=environ))


def resolve_config(
    config_data: dict[str, Any],
    env: str = DEFAULT_ENV,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """
    Substitute placeholders in every string of the configuration tree.

    An unset variable without a default keeps its ``${VAR}`` text, which
    settings loading treats as "not configured".
    """
    environ = os.environ if environ is None else environ

    def substitute(match: re.Match) -> str:
        value = environ.get(match.group("name"))
        if not value and match.group("default") is not None:
            return match.group("default")
        return match.group(0) if value is None else value

    def resolve(value: Any) -> Any:
        if isinstance(value, dict):
            return {k: resolve(v) for k, v in value.items()}
        if isinstance(value, list):
            return [resolve(item) for item in value]
        if isinstance(value, str):
            return _PLACEHOLDER.sub(substitute, value).replace("{env}", env)
        return value

    return resolve(config_data)


def _merge_dict(base: dict, override: dict):
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_dict(base[key], value)
        else:
            base[key] = value
