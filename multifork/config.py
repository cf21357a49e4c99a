"""
Configuration loading for multifork.

Config extends DotDict to load a YAML file, resolve ${variable} references
against the loaded data, and apply environment variable overrides.

Environment Variable Override Format:
    MULTIFORK_<SECTION>__<KEY>=value

    A double underscore separates path components so keys containing
    single underscores survive:

    MULTIFORK_FORK__JOBS_PER_FORK=10     -> fork.jobs_per_fork = 10
    MULTIFORK_LOGGING__LEVEL=debug       -> logging.level = "debug"

Example:
    config = Config("etc/worker.yaml")
    settings = ForkSettings.from_config(config)
"""

import copy
import os
import re
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from .dot_dict import DotDict
from .exceptions import ConfigError

DEFAULT_ENV_PREFIX = "MULTIFORK_"

# Maximum config file size (1MB); worker configs are tiny
MAX_CONFIG_SIZE_BYTES = 1024 * 1024

_VAR_PATTERN = re.compile(r"\$\{([a-zA-Z0-9_.]+)\}")


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping from path."""
    try:
        size = path.stat().st_size
    except OSError as e:
        raise ConfigError("config file not readable", path=str(path)) from e
    if size > MAX_CONFIG_SIZE_BYTES:
        raise ConfigError("config file too large", path=str(path), size=size)

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError("invalid YAML", path=str(path)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping", path=str(path))
    return data


def _convert_env_value(value: str) -> bool | int | float | str | None:
    """Convert environment variable string to the appropriate type."""
    if value.lower() in ("null", "none", ""):
        return None
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


class Config(DotDict):
    """
    YAML-backed configuration with variable substitution and env overrides.

    Args:
        fname: Path to a YAML file, or None to start from `data`
        data: Initial configuration mapping (used when fname is None)
        enable_env_overrides: Whether to apply MULTIFORK_* overrides
        env_prefix: Prefix for override environment variables
        environ: Environment mapping to read overrides from (default os.environ)
    """

    def __init__(
        self,
        fname: str | None = None,
        data: dict[str, Any] | None = None,
        enable_env_overrides: bool = True,
        env_prefix: str = DEFAULT_ENV_PREFIX,
        environ: dict[str, str] | None = None,
    ):
        super().__init__()
        self._enable_env_overrides = enable_env_overrides
        self._env_prefix = env_prefix
        self._environ = environ

        data = copy.deepcopy(data or {})
        if fname is not None:
            data = _read_yaml(Path(fname).resolve())
        if self._enable_env_overrides:
            data = self._apply_env_overrides(data)

        self.set(**data)
        self.set(**self._resolve(self.dict()))

    def _resolve(self, content: Any) -> Any:
        """Recursively replace ${path} references with configured values."""
        if isinstance(content, dict):
            for k in list(content.keys()):
                content[k] = self._resolve(content[k])
        elif isinstance(content, list):
            return [self._resolve(v) for v in content]
        elif isinstance(content, str):
            return _VAR_PATTERN.sub(self._substitute_var, content)
        return content

    def _substitute_var(self, match: re.Match) -> str:
        var_name = match.group(1)
        if not self.has(var_name):
            raise ConfigError("undefined config variable", variable=var_name)
        return str(self.get(var_name))

    def _apply_env_overrides(self, data: dict[str, Any]) -> dict[str, Any]:
        for env_key, env_value in self.get_env_overrides().items():
            self._set_nested_value(data, env_key.split("."), env_value)
        return data

    def get_env_overrides(self) -> dict[str, Any]:
        """
        Get all environment variable overrides that would be applied.

        Returns:
            Mapping of dot paths to converted values
        """
        if not self._enable_env_overrides:
            return {}

        environ = self._environ if self._environ is not None else os.environ
        overrides = {}
        for key, value in environ.items():
            if not key.startswith(self._env_prefix):
                continue
            parts = [p for p in key[len(self._env_prefix) :].lower().split("__") if p]
            if parts:
                overrides[".".join(parts)] = _convert_env_value(value)
        return overrides

    @staticmethod
    def _set_nested_value(data: dict, path: list[str], value: Any) -> None:
        current = data
        for part in path[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        current[path[-1]] = value
