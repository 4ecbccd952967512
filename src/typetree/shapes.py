"""
Shape taxonomy for runtime values and declared types.

Every value an object graph walker touches falls into exactly one shape:

    NULL      the ``None`` value
    LEAF      immutable scalars that are copied or rendered by identity
    ARRAY     fixed-length immutable sequences (``tuple``)
    SEQUENCE  mutable ordered containers (``list``, ``deque``, ...)
    SET       unordered containers (``set``, ``frozenset``, ...)
    MAP       key/value containers (``dict`` and any ``Mapping``)
    RECORD    anything else: a value with named, typed properties

Classification is by class, not by value, so it can be applied both to a
runtime value's type and to the raw type of a declared type hint.
"""

import collections.abc
import datetime
import enum
import numbers
import pathlib
import re
import types
import uuid
from enum import Enum
from typing import Any, Dict, Tuple


class Shape(Enum):
    """Traversal category of a value or type."""

    NULL = "null"
    LEAF = "leaf"
    ARRAY = "array"
    SEQUENCE = "sequence"
    SET = "set"
    MAP = "map"
    RECORD = "record"

    @property
    def arity(self) -> int:
        """Number of component types a descriptor of this shape carries."""
        if self is Shape.MAP:
            return 2
        if self in (Shape.ARRAY, Shape.SEQUENCE, Shape.SET):
            return 1
        return 0

    @property
    def is_collection(self) -> bool:
        return self in (Shape.ARRAY, Shape.SEQUENCE, Shape.SET)

    @property
    def is_composite(self) -> bool:
        return self in (Shape.ARRAY, Shape.SEQUENCE, Shape.SET, Shape.MAP, Shape.RECORD)


# Types whose instances are never traversed into.
LEAF_TYPES: Tuple[type, ...] = (
    numbers.Number,
    str,
    bytes,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    datetime.tzinfo,
    uuid.UUID,
    enum.Enum,
    pathlib.PurePath,
    re.Pattern,
    range,
    type,
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.ModuleType,
)

# Declared abstractions that are treated as sequences even though they are
# wider than collections.abc.Sequence.
_SEQUENCE_ABSTRACTIONS = frozenset({
    collections.abc.Iterable,
    collections.abc.Collection,
    collections.abc.Reversible,
})

_shape_cache: Dict[type, Shape] = {}


def is_named_tuple(cls: type) -> bool:
    """Named tuples behave like immutable records and are treated as leaves."""
    return isinstance(cls, type) and issubclass(cls, tuple) and hasattr(cls, '_fields')


def is_frozen(cls: type) -> bool:
    """True for container classes that must be built in one step instead of filled in place."""
    return isinstance(cls, type) and issubclass(cls, (tuple, frozenset))


def classify_type(cls: Any) -> Shape:
    """Classify a class into its traversal shape.

    Args:
        cls: A class, usually ``type(value)`` or a descriptor's raw type

    Returns:
        The shape every instance of ``cls`` is walked as
    """
    if not isinstance(cls, type):
        return Shape.RECORD

    cached = _shape_cache.get(cls)
    if cached is not None:
        return cached

    if cls is type(None):
        shape = Shape.NULL
    elif issubclass(cls, LEAF_TYPES) or is_named_tuple(cls):
        shape = Shape.LEAF
    elif issubclass(cls, tuple):
        shape = Shape.ARRAY
    elif issubclass(cls, collections.abc.Mapping):
        shape = Shape.MAP
    elif issubclass(cls, collections.abc.Set):
        shape = Shape.SET
    elif issubclass(cls, collections.abc.Sequence) or cls in _SEQUENCE_ABSTRACTIONS:
        shape = Shape.SEQUENCE
    else:
        shape = Shape.RECORD

    _shape_cache[cls] = shape
    return shape


def classify(value: Any) -> Shape:
    """Classify a runtime value by its class."""
    return classify_type(type(value))
