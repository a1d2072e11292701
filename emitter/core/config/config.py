"""
Static configuration for the emitter package.

Purpose
-------
Holds the settings that are read once from the process environment: the
deployment environment, how the logging stack renders records, and where the
YAML defaults for ConfigManager live.

Responsibilities
----------------
- Read EMITTER_* variables (with .env support) into typed class attributes
- Validate the log level and environment name
- Record which values came from the environment and which fell back

Non-Responsibilities
--------------------
- Tunable emitter behaviour (ConfigManager, YAML backed)
- Creating directories for a host application

Architecture Notes
------------------
- Class-level singleton; never instantiated
- `Config.load()` runs on import, `Config.validate()` runs in `setup_logging()`

Dependencies
------------
- python-dotenv: .env loading
- logging: bootstrap warnings before the structured logger exists

Environment Variables
---------------------
- EMITTER_ENV: development | testing | staging | production (default: development)
- EMITTER_LOG_LEVEL: DEBUG..CRITICAL (default: INFO)
- EMITTER_LOG_JSON: JSON console output (default: only in production)
- EMITTER_LOG_COLORS: colored console output in development (default: true)
- EMITTER_LOG_TO_FILE: rotating JSON log file (default: false)
- EMITTER_LOGS_DIR: log file directory (default: ./logs)
- EMITTER_CONFIG_DIR: YAML defaults directory (default: ./config)
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from emitter.core.exceptions import ConfigurationError

load_dotenv()

_TRUE_WORDS = frozenset({"true", "yes", "1", "on"})
_FALSE_WORDS = frozenset({"false", "no", "0", "off"})


class Environment(Enum):
    """Deployment environments."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse an environment name; unknown names map to DEVELOPMENT.

        >>> Environment.from_string("Production") is Environment.PRODUCTION
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            # Structured logging is not set up yet during bootstrap
            logging.warning("Unknown environment '%s', defaulting to development", value)
            return cls.DEVELOPMENT


@dataclass
class ConfigLoadReport:
    """Where each static setting came from on the last load."""

    from_environment: List[str] = field(default_factory=list)
    from_defaults: List[str] = field(default_factory=list)
    validation_errors: Dict[str, str] = field(default_factory=dict)
    last_reload: Optional[str] = None

    def record(self, key: str, *, from_env: bool) -> None:
        target = self.from_environment if from_env else self.from_defaults
        if key not in target:
            target.append(key)

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_configs": len(self.from_environment) + len(self.from_defaults),
            "from_environment": len(self.from_environment),
            "from_defaults": len(self.from_defaults),
            "defaults_used": list(self.from_defaults),
            "validation_errors": len(self.validation_errors),
            "last_reload": self.last_reload,
        }


class Config:
    """
    Static settings, read from the environment.

    >>> Config.LOG_LEVEL
    'INFO'
    >>> Config.is_production()
    False
    """

    VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

    ENVIRONMENT: str = Environment.DEVELOPMENT.value
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True
    LOG_TO_FILE: bool = False

    LOGS_DIR: Path = Path("logs")
    CONFIG_DIR: Path = Path("config")

    _report: ConfigLoadReport = ConfigLoadReport()
    _validated: bool = False

    # =========================================================================
    # Environment readers
    # =========================================================================

    @classmethod
    def _env_str(cls, key: str, default: str) -> str:
        raw = os.getenv(key)
        cls._report.record(key, from_env=raw is not None)
        return default if raw is None else raw

    @classmethod
    def _env_bool(cls, key: str, default: Optional[bool]) -> Optional[bool]:
        """Accepts true/false, yes/no, 1/0 and on/off in any case."""
        raw = os.getenv(key)
        if raw is None:
            cls._report.record(key, from_env=False)
            return default

        word = raw.strip().lower()
        if word in _TRUE_WORDS or word in _FALSE_WORDS:
            cls._report.record(key, from_env=True)
            return word in _TRUE_WORDS

        message = f"{key}='{raw}' is not a boolean, using {default}"
        logging.warning(message)
        cls._report.validation_errors[key] = message
        cls._report.record(key, from_env=False)
        return default

    # =========================================================================
    # Loading & validation
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """(Re)read every setting; tests call this after patching the environment."""
        cls._report = ConfigLoadReport()

        cls.ENVIRONMENT = cls._env_str("EMITTER_ENV", Environment.DEVELOPMENT.value)
        cls.LOG_LEVEL = cls._env_str("EMITTER_LOG_LEVEL", "INFO")
        cls.LOG_JSON = cls._env_bool("EMITTER_LOG_JSON", None)
        cls.LOG_COLORS = bool(cls._env_bool("EMITTER_LOG_COLORS", True))
        cls.LOG_TO_FILE = bool(cls._env_bool("EMITTER_LOG_TO_FILE", False))
        cls.LOGS_DIR = Path(cls._env_str("EMITTER_LOGS_DIR", "logs"))
        cls.CONFIG_DIR = Path(cls._env_str("EMITTER_CONFIG_DIR", "config"))

        cls._validated = False
        cls._report.last_reload = datetime.now(timezone.utc).isoformat()

    @classmethod
    def validate(cls) -> None:
        """
        Check the log level and environment name.

        Outside production a bad value is replaced by its default with a
        warning.

        Raises
        ------
        ConfigurationError
            In production, for an unknown log level.
        """
        if cls._validated:
            return

        logger = logging.getLogger(__name__)

        if cls.LOG_LEVEL.upper() not in cls.VALID_LOG_LEVELS:
            message = f"invalid log level '{cls.LOG_LEVEL}'"
            cls._report.validation_errors["EMITTER_LOG_LEVEL"] = message
            if cls.is_production():
                raise ConfigurationError("EMITTER_LOG_LEVEL", message)
            logger.warning("Invalid EMITTER_LOG_LEVEL '%s', using INFO", cls.LOG_LEVEL)
            cls.LOG_LEVEL = "INFO"

        environment = Environment.from_string(cls.ENVIRONMENT)
        if environment.value != cls.ENVIRONMENT.lower():
            cls._report.validation_errors["EMITTER_ENV"] = (
                f"unknown environment '{cls.ENVIRONMENT}'"
            )
        cls.ENVIRONMENT = environment.value

        cls._validated = True

        if cls._report.validation_errors:
            logger.warning(
                "Configuration warnings",
                extra={"validation_errors": dict(cls._report.validation_errors)},
            )

    @classmethod
    def reload_safe_configs(cls) -> None:
        """
        Re-read the log level and color flag only.

        Directories and the environment type need a full `load()`.
        """
        cls.LOG_LEVEL = cls._env_str("EMITTER_LOG_LEVEL", cls.LOG_LEVEL)
        cls.LOG_COLORS = bool(cls._env_bool("EMITTER_LOG_COLORS", cls.LOG_COLORS))
        cls._validated = False

        logging.getLogger(__name__).info(
            "Safe configuration values reloaded",
            extra={"log_level": cls.LOG_LEVEL, "log_colors": cls.LOG_COLORS},
        )

    # =========================================================================
    # Queries
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT.lower() == Environment.PRODUCTION.value

    @classmethod
    def is_development(cls) -> bool:
        return cls.ENVIRONMENT.lower() == Environment.DEVELOPMENT.value

    @classmethod
    def is_testing(cls) -> bool:
        return cls.ENVIRONMENT.lower() == Environment.TESTING.value

    @classmethod
    def get_metrics(cls) -> ConfigLoadReport:
        """Load report of the last `load()`."""
        return cls._report

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        return {
            "environment": cls.ENVIRONMENT,
            "log_level": cls.LOG_LEVEL,
            "log_json": cls.LOG_JSON,
            "log_colors": cls.LOG_COLORS,
            "log_to_file": cls.LOG_TO_FILE,
            "logs_dir": str(cls.LOGS_DIR),
            "config_dir": str(cls.CONFIG_DIR),
        }


Config.load()
