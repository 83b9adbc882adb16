"""
whydiag Settings Manager
========================

Layered configuration for the CLI and for module defaults.

Configuration hierarchy (lowest to highest priority):
1. Built-in defaults
2. YAML settings file
3. Runtime overrides (command-line flags)

Example settings file:

    defaults:
      top_n: 5
    output:
      color: false
    logging:
      level: INFO
    modules:
      disk:
        path: /home
        depth: 2
      net:
        host: 1.1.1.1
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from whydiag.core.base import ModuleConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "WHYDIAG_CONFIG"


def default_config_path() -> Path:
    """Return the settings file location, honouring $WHYDIAG_CONFIG and XDG."""
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit).expanduser()
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "whydiag" / "config.yaml"


class SettingsManager:
    """
    Manages whydiag configuration.

    Values are looked up with dot-notation keys such as ``defaults.top_n``
    or ``modules.disk.path``.
    """

    BUILTIN_DEFAULTS = {
        "defaults": {
            "top_n": 10,
            "interval": 2,
        },
        "output": {
            "color": True,
            "format": "terminal",
        },
        "logging": {
            "level": "WARNING",
        },
        "modules": {},
    }

    def __init__(self, config_path: Optional[Path] = None, load: bool = True):
        """
        Initialize settings manager.

        Args:
            config_path: Settings file (default: see default_config_path())
            load: Read the settings file immediately
        """
        self.config_path = Path(config_path) if config_path else default_config_path()

        self._defaults: Dict[str, Any] = copy.deepcopy(self.BUILTIN_DEFAULTS)
        self._settings: Dict[str, Any] = {}
        self._overrides: Dict[str, Any] = {}

        if load:
            self._load_config()

    def _load_config(self) -> None:
        """Load the settings file if it exists."""
        if not self.config_path.exists():
            logger.debug(f"No settings file at {self.config_path}")
            return

        try:
            with open(self.config_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load settings from {self.config_path}: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Ignoring {self.config_path}: top level must be a mapping")
            return

        self._settings = data
        logger.info(f"Loaded settings from {self.config_path}")

    def _merge_dict(self, base: Dict, overlay: Dict) -> None:
        """Recursively merge overlay into base."""
        for key, value in overlay.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._merge_dict(base[key], value)
            else:
                base[key] = copy.deepcopy(value)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting value.

        Args:
            key: Dot-notation key (e.g., "output.color")
            default: Default value if not found

        Returns:
            Setting value
        """
        for layer in [self._overrides, self._settings, self._defaults]:
            value = self._get_nested(layer, key)
            if value is not None:
                return value

        return default

    def _get_nested(self, d: Dict, key: str) -> Any:
        """Get nested dictionary value using dot notation."""
        value = d
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return None
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a runtime override."""
        d = self._overrides
        keys = key.split(".")
        for k in keys[:-1]:
            d = d.setdefault(k, {})
        d[keys[-1]] = value

    def module_options(self, module_name: str) -> Dict[str, str]:
        """
        Per-module extra options from all layers, as strings.

        Booleans are written as "true"/"false" to match command-line flags.
        """
        merged: Dict[str, Any] = {}
        for layer in [self._defaults, self._settings, self._overrides]:
            options = self._get_nested(layer, f"modules.{module_name}")
            if isinstance(options, dict):
                merged.update(options)
            elif options is not None:
                logger.warning(f"Ignoring modules.{module_name}: expected a mapping")

        result = {}
        for key, value in merged.items():
            if value is None:
                continue
            if isinstance(value, bool):
                result[str(key)] = "true" if value else "false"
            else:
                result[str(key)] = str(value)
        return result

    def get_all(self) -> Dict[str, Any]:
        """Get all effective settings."""
        result = copy.deepcopy(self._defaults)
        self._merge_dict(result, self._settings)
        self._merge_dict(result, self._overrides)
        return result

    def reset(self) -> None:
        """Drop file settings and overrides."""
        self._settings = {}
        self._overrides = {}


def _numeric_setting(settings: SettingsManager, key: str, default, cast, minimum):
    """Read a numeric default, falling back when it is malformed or out of range."""
    value = settings.get(key, default)
    try:
        number = cast(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid setting {key}={value!r}")
        return default
    if number < minimum:
        logger.warning(f"Ignoring out-of-range setting {key}={value!r}")
        return default
    return number


def build_module_config(
    settings: SettingsManager,
    module_name: Optional[str] = None,
    extra_args: Optional[Dict[str, str]] = None,
    **overrides: Any,
) -> ModuleConfig:
    """
    Build a ModuleConfig from settings plus explicit overrides.

    Args:
        settings: Loaded settings
        module_name: Module whose ``modules.<name>`` options apply (None for "all")
        extra_args: Extra options that take precedence over the settings file
        **overrides: ModuleConfig fields; None values are ignored

    Returns:
        ModuleConfig
    """
    extras = settings.module_options(module_name) if module_name else {}
    extras.update({k: v for k, v in (extra_args or {}).items() if v is not None})

    fields = {
        "top_n": _numeric_setting(settings, "defaults.top_n", 10, int, 1),
        "interval": _numeric_setting(settings, "defaults.interval", 2.0, float, 0),
    }
    fields.update({k: v for k, v in overrides.items() if v is not None})
    return ModuleConfig(extra_args=extras, **fields)
