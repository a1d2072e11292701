"""
emitter: in-process publish/subscribe with exact names, regex patterns and a
process-wide broadcast channel.

Examples
--------
>>> import re
>>> from emitter import Emitter
>>> jobs = Emitter()
>>> jobs.on(re.compile(r"^job\\."), lambda event, *args: print(event.name))
>>> jobs.emit("job.done")
"""

from emitter.core.event import (
    Emitter,
    Event,
    ExactName,
    IdentifierList,
    NamePattern,
    get_broadcast,
    parse_identifier,
)

__version__ = "1.0.0"

__all__ = [
    "Emitter",
    "Event",
    "ExactName",
    "NamePattern",
    "IdentifierList",
    "parse_identifier",
    "broadcast",
    "get_broadcast",
    "__version__",
]


def __getattr__(name: str):
    # The broadcast emitter is built on first access, so importing the
    # package reads no configuration.
    if name == "broadcast":
        return get_broadcast()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
