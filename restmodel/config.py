"""
Config system - layered settings for the default transport.

Merge precedence (later overrides earlier):
    config files (JSON/YAML) < .env file < environment variables < overrides
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from glob import glob
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import dotenv_values

from .faults import ConfigInvalidFault
from .transport import Transport, set_transport

logger = logging.getLogger("restmodel.config")

__all__ = ["Settings", "ConfigLoader", "configure"]


@dataclass
class Settings:
    """Validated transport settings."""

    base_url: str = ""
    timeout: float = 10.0
    headers: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.base_url, str):
            raise ConfigInvalidFault("base_url", f"expected a string, got {self.base_url!r}")
        if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)):
            raise ConfigInvalidFault("timeout", f"expected a number, got {self.timeout!r}")
        if self.timeout <= 0:
            raise ConfigInvalidFault("timeout", "must be positive")
        self.timeout = float(self.timeout)
        if not isinstance(self.headers, dict):
            raise ConfigInvalidFault("headers", f"expected a mapping, got {self.headers!r}")
        self.headers = {str(k): str(v) for k, v in self.headers.items()}


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config files > defaults
    """

    def __init__(self, env_prefix: str = "RESTMODEL_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[List[str]] = None,
        env_prefix: str = "RESTMODEL_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> ConfigLoader:
        """
        Load configuration from multiple sources.

        Args:
            paths: Config file paths (glob patterns supported; .json, .yaml, .yml)
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        for pattern in paths or ():
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_from_files(self, pattern: str):
        """Load config from JSON or YAML files."""
        matches = sorted(glob(pattern))
        if not matches:
            logger.debug(f"No config file matches {pattern!r}")
        for path_str in matches:
            path = Path(path_str)
            if path.suffix == ".json":
                self._load_json_file(path)
            elif path.suffix in (".yaml", ".yml"):
                self._load_yaml_file(path)
            else:
                logger.warning(f"Ignoring config file with unknown suffix: {path}")

    def _load_json_file(self, path: Path):
        """Load config from JSON file."""
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                raise ConfigInvalidFault(str(path), f"invalid JSON: {exc}") from exc
        self._merge_mapping(path, data)

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        import yaml
        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigInvalidFault(str(path), f"invalid YAML: {exc}") from exc
        if data:
            self._merge_mapping(path, data)

    def _merge_mapping(self, path: Path, data: Any):
        if not isinstance(data, dict):
            raise ConfigInvalidFault(str(path), "top level must be a mapping")
        self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        """Load prefixed keys from a .env file."""
        if not Path(path).exists():
            logger.debug(f"No .env file at {path}")
            return
        for key, value in dotenv_values(path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self):
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert RESTMODEL_HEADERS__AUTHORIZATION to a nested dict."""
        key = key[len(self.env_prefix):]

        # Split by double underscore for nested keys
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current = self.config_data
        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def settings(self) -> Settings:
        """
        Validate the known keys into Settings.

        Raises:
            ConfigInvalidFault: if a value has the wrong type.
        """
        known = {f.name for f in fields(Settings)}
        data = {k: v for k, v in self.config_data.items() if k in known}
        if "base_url" in data and data["base_url"] is not None:
            data["base_url"] = str(data["base_url"])
        return Settings(**data)

    def to_dict(self) -> dict:
        return self.config_data


def configure(
    paths: Optional[List[str]] = None,
    *,
    env_file: Optional[str] = None,
    **overrides: Any,
) -> Transport:
    """
    Load settings and install a Transport built from them as the default.

    Usage:
        configure(base_url="https://api.example.com", timeout=5)
        configure(["restmodel.yaml"], env_file=".env")
    """
    settings = ConfigLoader.load(paths, env_file=env_file, overrides=overrides).settings()
    transport = Transport(settings.base_url, timeout=settings.timeout, headers=settings.headers)
    set_transport(transport)
    logger.debug(f"Configured default transport {transport!r}")
    return transport
