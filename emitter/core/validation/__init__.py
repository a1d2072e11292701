"""
Validation package.

Exposes `InputValidator`, the predicates used by the subscription API to
decide whether an argument is usable. Re-exports are explicit via __all__.
"""

from emitter.core.validation.input_validator import InputValidator

__all__ = [
    "InputValidator",
]
