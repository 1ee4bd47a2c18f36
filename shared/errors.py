"""Exception types raised by the converter.

Every error derives from RenderError so callers can catch the whole family,
and also from the builtin that best describes it so generic handlers
(``except ValueError``) keep working.
"""


class RenderError(Exception):
    """Base class for all converter failures."""


class DecodeError(RenderError, ValueError):
    """Source file is malformed, unsupported or empty."""


class InvalidRate(RenderError, ValueError):
    """Playback rate is zero, negative or not a finite number."""

    def __init__(self, rate):
        super().__init__(f"playback rate must be a finite number > 0, got {rate!r}")
        self.rate = rate


class UnknownEffect(RenderError, KeyError):
    """Effect name is not in the catalog (strict mode only)."""

    def __init__(self, name):
        super().__init__(name)
        self.name = name

    def __str__(self):
        return f"unknown effect {self.name!r}"


class ResourceExhausted(RenderError, MemoryError):
    """Requested render would exceed the configured sample ceiling."""

    def __init__(self, requested, limit):
        super().__init__(f"render needs {requested} samples, limit is {limit}")
        self.requested = requested
        self.limit = limit


class GraphError(RenderError, ValueError):
    """Graph topology is malformed (unknown node, cycle, bad fan-in)."""
