"""
Core infrastructure for the emitter.

Purpose
-------
Provide a single, well-structured import surface for the core subsystems:

- Configuration management (Config, ConfigManager)
- Logging (structured logging, logger factory)
- Validation utilities (InputValidator)
- Infrastructure exceptions (EmitterInfrastructureException hierarchy)
- The event system (Emitter, Event, broadcast)

Design Decisions
----------------
- This module is intentionally thin: no logic, no configuration, no I/O.
- Public API is explicit via __all__ to avoid leaking internal symbols.
"""

from emitter.core.config import Config, ConfigManager
from emitter.core.event import (
    Emitter,
    Event,
    ExactName,
    IdentifierList,
    NamePattern,
    get_broadcast,
    parse_identifier,
)
from emitter.core.exceptions import (
    ConfigurationError,
    DispatchLoopError,
    EmitterInfrastructureException,
    ErrorSeverity,
)
from emitter.core.logging import LogContext, get_logger, setup_logging, shutdown_logging
from emitter.core.validation import InputValidator

__all__ = [
    # Configuration
    "Config",
    "ConfigManager",
    # Event system
    "Emitter",
    "Event",
    "ExactName",
    "NamePattern",
    "IdentifierList",
    "parse_identifier",
    "broadcast",
    "get_broadcast",
    # Exceptions
    "EmitterInfrastructureException",
    "ConfigurationError",
    "DispatchLoopError",
    "ErrorSeverity",
    # Logging
    "LogContext",
    "get_logger",
    "setup_logging",
    "shutdown_logging",
    # Validation
    "InputValidator",
]


def __getattr__(name: str):
    # The broadcast emitter is built on first access, so importing the
    # package reads no configuration.
    if name == "broadcast":
        return get_broadcast()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
