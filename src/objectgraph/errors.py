"""Error kinds raised by the object graph engine.

Each kind also derives from the closest builtin exception so callers can
catch either the engine-specific class or the familiar builtin.
"""


class ObjectGraphError(Exception):
    """Base class for all engine errors."""


class InstantiationFailure(ObjectGraphError, TypeError):
    """No constructible implementation exists for the requested type."""


class AccessFailure(ObjectGraphError, RuntimeError):
    """An accessor or mutator could not be invoked."""


class ShapeMismatch(ObjectGraphError, TypeError):
    """A selector or traversal step found a value of an incompatible shape."""


class MissingProperty(ObjectGraphError, AttributeError):
    """A named property does not exist on a record type."""


class InvalidPathSyntax(ObjectGraphError, ValueError):
    """Path text could not be parsed into selectors."""


class IndexOutOfRange(ObjectGraphError, IndexError):
    """A read addressed a sequence slot that does not exist."""
