"""
Emitter Test Suite
==================

Test Organization
-----------------
- tests/unit/config/      : Config, ConfigManager and infrastructure exceptions
- tests/unit/event/       : Emitter, registry, broadcast and async dispatch
- tests/unit/logger/      : Logging subsystem
- tests/unit/validation/  : Argument predicates

Testing Philosophy
------------------
- Unit tests only: fast, isolated, no external services
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
