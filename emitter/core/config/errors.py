"""
Configuration exception hierarchy.

Exception Hierarchy
-------------------
ConfigError (base)
├── ConfigValidationError (type/bounds validation failures)
└── ConfigLoadError (YAML discovery or parse failures)
"""


class ConfigError(Exception):
    """
    Base exception for all configuration-related errors.

    Example
    -------
    >>> try:
    ...     ConfigManager.set("core.event.max_listeners", "lots")
    ... except ConfigError as e:
    ...     logger.error(f"Config operation failed: {e}")
    """
    pass


class ConfigValidationError(ConfigError):
    """
    Raised when configuration validation fails.

    This exception is raised when:
    - A registered validator rejects a value
    - Value bounds checking fails (out of range)
    - Type coercion fails
    """
    pass


class ConfigLoadError(ConfigError):
    """
    Raised when a YAML configuration file cannot be read in strict mode.

    Non-strict loading logs the failure and continues with the remaining
    files instead.
    """
    pass


__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "ConfigLoadError",
]
