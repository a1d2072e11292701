"""
ConfigManager: dynamic, dot-notation configuration access for the emitter.

Purpose
-------
- Provide hierarchical, dot-notation access to tunable values
  (e.g. `"core.event.max_listeners"`).
- Back configuration with built-in defaults deep-merged with YAML files from
  the configured directory.
- Allow runtime overrides with optional per-key validators.

Key Design Decisions
--------------------
- YAML is the single source for **defaults**; `set()` stores in-memory
  **overrides** on top of them.
- Precedence: built-in defaults < YAML < `set()` overrides.
- Reads lazily bootstrap from YAML on first access so that importing the
  package never touches the filesystem.

Dependencies
------------
- PyYAML: YAML defaults loading
- `emitter.core.config.config.Config` – location of the YAML directory
- logging: bootstrap-level logger
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, MutableMapping, Optional

import yaml

from emitter.core.config.config import Config
from emitter.core.config.errors import ConfigLoadError, ConfigValidationError

# Bootstrap layer: the structured logging module itself depends on Config.
logger = logging.getLogger(__name__)


# Infra fallbacks used when no YAML file provides a value.
BUILTIN_DEFAULTS: Dict[str, Any] = {
    "core": {
        "event": {
            "metrics_enabled": True,
            "max_listeners": 0,
        },
    },
}

_MISSING = object()


class ConfigManager:
    """
    Dynamic configuration with YAML defaults and in-memory overrides.

    Examples
    --------
    >>> ConfigManager.get("core.event.max_listeners")
    0
    >>> ConfigManager.set("core.event.max_listeners", 25)
    >>> ConfigManager.get_int("core.event.max_listeners")
    25
    """

    _defaults: Dict[str, Any] = {}
    _overrides: Dict[str, Any] = {}
    _initialized: bool = False

    # Optional validators: full dot key -> callable(value) -> value
    _validators: Dict[str, Callable[[Any], Any]] = {}

    # =========================================================================
    # YAML LOADING & DEFAULTS
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: MutableMapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = value

    @classmethod
    def _load_yaml_configs(cls, config_dir: Path, *, strict: bool) -> int:
        """
        Recursively load all YAML files from `config_dir` into `_defaults`.

        Returns the number of files merged.
        """
        if not config_dir.exists():
            logger.debug(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return 0

        yaml_files = sorted(config_dir.rglob("*.yaml")) + sorted(config_dir.rglob("*.yml"))
        loaded_count = 0

        for yaml_file in yaml_files:
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                if strict:
                    raise ConfigLoadError(f"Failed to load {yaml_file}: {exc}") from exc
                logger.warning(
                    "Failed to load YAML config",
                    extra={
                        "file": str(yaml_file),
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                continue

            if isinstance(data, dict):
                cls._deep_merge_dict(cls._defaults, data)
                loaded_count += 1
                logger.debug("Loaded YAML config", extra={"file": str(yaml_file)})
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={"file": str(yaml_file), "root_type": type(data).__name__},
                )

        return loaded_count

    @classmethod
    def initialize(cls, config_dir: Optional[Path] = None, *, strict: bool = False) -> None:
        """
        (Re)build defaults from built-ins and YAML files.

        Parameters
        ----------
        config_dir:
            Directory to scan. Defaults to `Config.CONFIG_DIR`.
        strict:
            If True, unreadable YAML raises `ConfigLoadError` instead of
            being logged and skipped.
        """
        cls._defaults = copy.deepcopy(BUILTIN_DEFAULTS)
        loaded = cls._load_yaml_configs(Path(config_dir or Config.CONFIG_DIR), strict=strict)
        cls._initialized = True

        logger.info(
            "ConfigManager initialized",
            extra={"yaml_file_count": loaded, "override_count": len(cls._overrides)},
        )

    @classmethod
    def reset(cls) -> None:
        """Drop overrides, custom validators and loaded defaults. Intended for tests."""
        cls._defaults = {}
        cls._overrides = {}
        cls._validators = {}
        cls._initialized = False
        register_builtin_validators()

    # =========================================================================
    # VALIDATION
    # =========================================================================

    @classmethod
    def register_validator(cls, key: str, validator: Callable[[Any], Any]) -> None:
        """
        Register a validator for a dot-notation key.

        The validator receives the candidate value and returns the value to
        store, or raises to reject it.
        """
        cls._validators[key] = validator

    @classmethod
    def _apply_validator(cls, key: str, value: Any) -> Any:
        validator = cls._validators.get(key)
        if validator is None:
            return value
        try:
            return validator(value)
        except (TypeError, ValueError) as exc:
            raise ConfigValidationError(f"Invalid value for {key}: {exc}") from exc

    # =========================================================================
    # READ API
    # =========================================================================

    @staticmethod
    def _lookup(source: Dict[str, Any], key: str) -> Any:
        value: Any = source
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return _MISSING
            value = value[part]
        return value

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Examples
        --------
        >>> ConfigManager.get("core.event.metrics_enabled")
        True
        >>> ConfigManager.get("core.unknown", "fallback")
        'fallback'
        """
        if not cls._initialized:
            cls.initialize()

        if key in cls._overrides:
            return cls._overrides[key]

        value = cls._lookup(cls._defaults, key)
        return default if value is _MISSING else value

    @classmethod
    def get_int(cls, key: str, default: int = 0) -> int:
        """Retrieve a value coerced to int, falling back on bad data."""
        value = cls.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(
                "Non-integer configuration value, using default",
                extra={"config_key": key, "value": repr(value), "default": default},
            )
            return default

    @classmethod
    def get_bool(cls, key: str, default: bool = False) -> bool:
        """Retrieve a value coerced to bool; strings use on/off spellings."""
        value = cls.get(key, default)
        if isinstance(value, str):
            return value.strip().lower() in {"true", "yes", "1", "on"}
        return bool(value)

    @classmethod
    def get_all_keys(cls) -> List[str]:
        """Return sorted top-level keys across defaults and overrides."""
        if not cls._initialized:
            cls.initialize()
        keys = set(cls._defaults.keys())
        keys.update(key.split(".", 1)[0] for key in cls._overrides)
        return sorted(keys)

    # =========================================================================
    # WRITE API
    # =========================================================================

    @classmethod
    def set(cls, key: str, value: Any) -> None:
        """
        Override a configuration value at runtime.

        Raises
        ------
        ConfigValidationError:
            If a registered validator rejects the value.
        """
        validated = cls._apply_validator(key, value)
        cls._overrides[key] = validated
        logger.info(
            "Configuration override applied",
            extra={"config_key": key, "value_type": type(validated).__name__},
        )

    @classmethod
    def unset(cls, key: str) -> bool:
        """Remove a runtime override. Returns True if one existed."""
        return cls._overrides.pop(key, _MISSING) is not _MISSING


def _non_negative_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("expected an integer, got bool")
    number = int(value)
    if number < 0:
        raise ValueError("must be >= 0")
    return number


def _boolean(value: Any) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"expected a bool, got {type(value).__name__}")
    return value


def register_builtin_validators() -> None:
    """Register validators for the keys the emitter itself reads."""
    ConfigManager.register_validator("core.event.max_listeners", _non_negative_int)
    ConfigManager.register_validator("core.event.metrics_enabled", _boolean)


register_builtin_validators()


__all__ = ["ConfigManager", "BUILTIN_DEFAULTS", "register_builtin_validators"]
