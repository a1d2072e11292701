"""
Pytest Configuration and Fixtures for the emitter test suite
=============================================================

Purpose
-------
Centralized test fixtures and configuration for the emitter tests.

Responsibilities
----------------
- Testing environment variables
- Fresh emitters wired to an isolated broadcast emitter
- Clean process-wide broadcast channel for tests that need the real one
- ConfigManager state reset between tests
- Recording listener factories

Architecture Notes
------------------
- Unit tests never share listeners: every emitter fixture is function scoped
- Async tests run under pytest-asyncio (asyncio_mode = "auto")
"""

from __future__ import annotations

import os
from typing import Any, Callable, Generator

import pytest

from emitter.core.config import Config, ConfigManager
from emitter.core.event import Emitter, Event, get_broadcast
from emitter.core.logging import clear_log_context

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ["EMITTER_ENV"] = "testing"
    os.environ["EMITTER_LOG_LEVEL"] = "DEBUG"
    Config.load()


# ============================================================================
# STATE RESET
# ============================================================================


@pytest.fixture(autouse=True)
def reset_config_manager() -> Generator[None, None, None]:
    """Give every test pristine ConfigManager state."""
    ConfigManager.reset()
    yield
    ConfigManager.reset()


@pytest.fixture(autouse=True)
def reset_log_context() -> Generator[None, None, None]:
    clear_log_context()
    yield
    clear_log_context()


# ============================================================================
# EMITTER FIXTURES
# ============================================================================


@pytest.fixture
def isolated_broadcast() -> Emitter:
    """A broadcast emitter private to one test."""
    return Emitter(is_broadcast=True)


@pytest.fixture
def emitter(isolated_broadcast: Emitter) -> Emitter:
    """Fresh emitter wired to the isolated broadcast emitter."""
    return Emitter(isolated_broadcast)


@pytest.fixture
def other_emitter(isolated_broadcast: Emitter) -> Emitter:
    """Second emitter sharing the isolated broadcast emitter."""
    return Emitter(isolated_broadcast)


@pytest.fixture
def global_broadcast() -> Generator[Emitter, None, None]:
    """The process-wide broadcast emitter, emptied before and after the test."""
    channel = get_broadcast()
    channel.clear()
    yield channel
    channel.clear()


# ============================================================================
# LISTENER HELPERS
# ============================================================================


@pytest.fixture
def calls() -> list[str]:
    """Labels of recording listeners, in call order."""
    return []


@pytest.fixture
def received() -> list[tuple[str, tuple[Any, ...]]]:
    """(label, args) pairs written by recording listeners."""
    return []


@pytest.fixture
def recorder(
    calls: list[str], received: list[tuple[str, tuple[Any, ...]]]
) -> Callable[..., Callable[..., None]]:
    """
    Factory for listeners that append their label to `calls`.

    Usage
    -----
    >>> f = recorder("f")
    >>> emitter.on("a", f).emit("a", 1)
    >>> calls, received
    (['f'], [('f', (1,))])
    """

    def make(label: str, *, cancel: bool = False) -> Callable[..., None]:
        def listener(event: Event, *args: Any) -> None:
            calls.append(label)
            received.append((label, args))
            if cancel:
                event.cancel()

        listener.__name__ = label
        listener.__qualname__ = label
        return listener

    return make

