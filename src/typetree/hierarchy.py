"""
Type-keyed registry with hierarchy-aware lookup.

``HierarchyRegistry`` maps classes to values and answers two derived
questions for an arbitrary query class:

- nearest ancestor matches: the most specific registered keys that the
  query class is a subclass of (standard OOP dispatch, driven by a table)
- nearest descendant matches: the most general registered keys that are
  subclasses of the query class (used to find something that can stand in
  for an abstract type)

Both views are memoized per query class in a ``TokenCache`` keyed on the
registry's mutation counter, so every put/remove/clear invalidates them.

The module also provides ``type_distance``, the memoized length of the
shortest ``__bases__`` path from a subclass up to one of its ancestors.
"""

import logging
from collections import deque
from typing import Any, Callable, Dict, Generic, Iterator, List, Mapping, Optional, Tuple, TypeVar

from typetree.token_cache import CacheKey, TokenCache

logger = logging.getLogger(__name__)

V = TypeVar('V')


def is_subtype(child: Any, parent: Any) -> bool:
    """``issubclass`` that answers False instead of raising for odd classes."""
    try:
        return issubclass(child, parent)
    except TypeError:
        return False


class HierarchyRegistry(Generic[V]):
    """Registry keyed by class with memoized nearest-ancestor/descendant views.

    Views are returned as tuples in registration order. When several
    equally specific, unrelated keys match, all of them are returned and
    callers that need a single value take the first one.
    """

    def __init__(self, entries: Optional[Mapping[type, V]] = None):
        self._entries: Dict[type, V] = {}
        self._version = 0
        self._views: TokenCache[Tuple[type, ...]] = TokenCache(lambda: self._version)
        if entries:
            for key, value in entries.items():
                self.put(key, value)

    # Mutation

    def put(self, key: type, value: V) -> None:
        if not isinstance(key, type):
            raise TypeError(f"Registry keys must be classes, got {key!r}")
        self._entries[key] = value
        self._version += 1

    def remove(self, key: type) -> Optional[V]:
        self._version += 1
        return self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()
        self._version += 1

    # Exact access

    def get(self, key: type, default: Optional[V] = None) -> Optional[V]:
        return self._entries.get(key, default)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[type]:
        return iter(self._entries)

    def items(self):
        return self._entries.items()

    # Hierarchy views

    def nearest_ancestors(self, query: type) -> Tuple[type, ...]:
        """Most specific registered keys that ``query`` is a subclass of (or equal to)."""
        return self._views.get_or_compute(
            CacheKey.from_args('ancestors', query),
            lambda: self._most_specific(
                [key for key in self._entries if is_subtype(query, key)],
                closer=lambda candidate, other: is_subtype(other, candidate),
            ),
        )

    def nearest_descendants(self, query: type) -> Tuple[type, ...]:
        """Most general registered keys that are subclasses of (or equal to) ``query``."""
        return self._views.get_or_compute(
            CacheKey.from_args('descendants', query),
            lambda: self._most_specific(
                [key for key in self._entries if is_subtype(key, query)],
                closer=lambda candidate, other: is_subtype(candidate, other),
            ),
        )

    def nearest_ancestor_matches(self, query: type) -> Tuple[V, ...]:
        return tuple(self._entries[key] for key in self.nearest_ancestors(query))

    def nearest_descendant_matches(self, query: type) -> Tuple[V, ...]:
        return tuple(self._entries[key] for key in self.nearest_descendants(query))

    def nearest_ancestor_match(self, query: type, default: Optional[V] = None) -> Optional[V]:
        """First nearest-ancestor value; arbitrary when several unrelated keys tie."""
        matches = self.nearest_ancestor_matches(query)
        return matches[0] if matches else default

    @staticmethod
    def _most_specific(candidates: List[type],
                       closer: Callable[[type, type], bool]) -> Tuple[type, ...]:
        # Drop every candidate that some other surviving candidate sits closer
        # to the query than.
        return tuple(
            candidate for candidate in candidates
            if not any(other is not candidate and closer(candidate, other) for other in candidates)
        )


# =============================================================================
# ASSIGNABILITY DISTANCE
# =============================================================================

_distance_cache: Dict[Tuple[type, type], int] = {}


def type_distance(parent: type, child: type) -> int:
    """Shortest number of ``__bases__`` hops from ``child`` up to ``parent``.

    Returns 0 for the same class and -1 when ``child`` is not a subclass of
    ``parent``. Virtual subclasses (ABC registration) have no bases path and
    rank behind every real ancestor with the length of the child's MRO.
    """
    key = (parent, child)
    cached = _distance_cache.get(key)
    if cached is not None:
        return cached

    if not is_subtype(child, parent):
        distance = -1
    else:
        distance = _bases_distance(parent, child)
        if distance < 0:
            distance = len(getattr(child, '__mro__', ()))

    _distance_cache[key] = distance
    return distance


def _bases_distance(parent: type, child: type) -> int:
    visited = {child}
    queue = deque([(child, 0)])
    while queue:
        current, depth = queue.popleft()
        if current is parent:
            return depth
        for base in getattr(current, '__bases__', ()):
            if base not in visited:
                visited.add(base)
                queue.append((base, depth + 1))
    return -1


def clear_distance_cache() -> None:
    _distance_cache.clear()
