"""
Default collaborators for instantiation.

``LeafValueProvider`` supplies fresh leaf values (numbers, strings, dates,
...) and the default fan-out for initialized containers.
``ImplementationResolver`` maps an abstract type to concrete candidates.
Both are structural protocols; the ``Basic*`` classes are the defaults and
dispatch through ``HierarchyRegistry`` so users can add their own entries.
"""

import collections.abc
import datetime
import logging
import numbers
import pathlib
import uuid
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Any, Callable, Dict, Protocol, Tuple, runtime_checkable

from typetree.hierarchy import HierarchyRegistry

from objectgraph.errors import InstantiationFailure

logger = logging.getLogger(__name__)

LeafFactory = Callable[[int], Any]


@runtime_checkable
class LeafValueProvider(Protocol):
    """Source of fresh leaf values."""

    def provide(self, cls: type) -> Any:
        ...

    def composite_size(self) -> int:
        ...


@runtime_checkable
class ImplementationResolver(Protocol):
    """Maps an abstract type to concrete classes that can stand in for it."""

    def resolve(self, abstract: type) -> Tuple[type, ...]:
        ...


# =============================================================================
# LEAF VALUES
# =============================================================================

_EPOCH = datetime.datetime(2000, 1, 1)

# Each factory receives a per-type counter starting at 1, so generated
# values cycle deterministically.
_DEFAULT_LEAF_FACTORIES: Dict[type, LeafFactory] = {
    int: lambda n: n,
    bool: lambda n: n % 2 == 1,
    float: lambda n: float(n),
    complex: lambda n: complex(n, 0),
    Decimal: lambda n: Decimal(n),
    Fraction: lambda n: Fraction(n),
    str: lambda n: str(n),
    bytes: lambda n: str(n).encode(),
    datetime.datetime: lambda n: _EPOCH + datetime.timedelta(days=n),
    datetime.date: lambda n: _EPOCH.date() + datetime.timedelta(days=n),
    datetime.time: lambda n: datetime.time(n % 24),
    datetime.timedelta: lambda n: datetime.timedelta(seconds=n),
    uuid.UUID: lambda n: uuid.UUID(int=n),
    pathlib.Path: lambda n: pathlib.Path(f"path{n}"),
}


class BasicLeafValueProvider:
    """Deterministic, cycling leaf values.

    Integers count 1, 2, 3, ...; booleans alternate starting with True;
    strings are the counter's decimal text; dates step a day at a time from
    2000-01-01. Enums yield their first member. Counters are kept per
    factory for the lifetime of the provider.
    """

    def __init__(self, composite_size: int = 2):
        self._composite_size = composite_size
        self._counters: Dict[type, int] = {}
        self._factories: HierarchyRegistry[LeafFactory] = HierarchyRegistry(_DEFAULT_LEAF_FACTORIES)

    def register(self, cls: type, factory: LeafFactory) -> None:
        """Use ``factory(counter)`` for ``cls`` and types it can stand in for."""
        self._factories.put(cls, factory)

    def composite_size(self) -> int:
        return self._composite_size

    def provide(self, cls: type) -> Any:
        if isinstance(cls, type) and issubclass(cls, Enum):
            members = list(cls)
            if not members:
                raise InstantiationFailure(f"Enum {cls.__qualname__} has no members")
            return members[0]

        keys = self._factories.nearest_descendants(cls)
        if not keys:
            try:
                return cls()
            except Exception as exc:
                raise InstantiationFailure(f"No leaf value available for class {cls.__qualname__}") from exc

        key = keys[0]
        counter = self._counters.get(key, 0) + 1
        self._counters[key] = counter
        return self._factories.get(key)(counter)


# =============================================================================
# IMPLEMENTATIONS
# =============================================================================

_DEFAULT_IMPLEMENTATIONS: Dict[type, type] = {
    collections.abc.Iterable: list,
    collections.abc.Collection: list,
    collections.abc.Reversible: list,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Set: set,
    collections.abc.MutableSet: set,
    collections.abc.Mapping: dict,
    collections.abc.MutableMapping: dict,
    numbers.Number: int,
    numbers.Complex: complex,
    numbers.Real: float,
    numbers.Rational: Fraction,
    numbers.Integral: int,
}


class BasicImplementationResolver:
    """Abstract-to-concrete table resolved by nearest descendant match."""

    def __init__(self):
        self._implementations: HierarchyRegistry[type] = HierarchyRegistry(_DEFAULT_IMPLEMENTATIONS)

    def register(self, abstract: type, concrete: type) -> None:
        self._implementations.put(abstract, concrete)

    def resolve(self, abstract: type) -> Tuple[type, ...]:
        return self._implementations.nearest_descendant_matches(abstract)
