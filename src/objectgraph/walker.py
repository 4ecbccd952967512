"""
Shared machinery of the graph walkers.

``GraphWalker`` owns the configuration every walker needs: the property
model, per-type property exclusion filters, per-type immutable
registrations, the leaf value provider and implementation resolver used
for instantiation, and the failure policy for per-node errors.

Registrations are configuration: populate them before walking. Per-call
state (copy caches, recursion counters, identity stacks) never lives on
the walker; each walker keeps it in a context object created by its public
entry point and passed down the recursion.
"""

import inspect
import logging
from dataclasses import replace
from typing import Any, Callable, Optional

from typetree.descriptors import TypeDescriptor, type_name
from typetree.hierarchy import HierarchyRegistry
from typetree.shapes import Shape, classify_type

from objectgraph.config import GraphConfig, get_default_config
from objectgraph.errors import InstantiationFailure
from objectgraph.properties import PropertyModel
from objectgraph.providers import (BasicImplementationResolver, BasicLeafValueProvider,
                                   ImplementationResolver, LeafValueProvider)

logger = logging.getLogger(__name__)

PropertyFilter = Callable[[str], bool]

_ABSTRACT_MODULES = frozenset({'collections.abc', 'numbers', 'typing'})


def is_abstract(cls: type) -> bool:
    """True when ``cls`` cannot be instantiated directly.

    Covers classes with abstract methods, Protocols, and the abstract roots
    of ``collections.abc`` and ``numbers`` (``numbers.Number`` has no
    abstract methods yet is not meant to be instantiated).
    """
    if inspect.isabstract(cls) or getattr(cls, '_is_protocol', False):
        return True
    return getattr(cls, '__module__', None) in _ABSTRACT_MODULES


class GraphWalker:
    """Base class of Cloner, Initializer, Dumper and PathProxy."""

    def __init__(self,
                 config: Optional[GraphConfig] = None,
                 leaf_provider: Optional[LeafValueProvider] = None,
                 implementation_resolver: Optional[ImplementationResolver] = None,
                 property_model: Optional[PropertyModel] = None):
        self.config = config or get_default_config()
        self.leaf_provider = leaf_provider or BasicLeafValueProvider()
        self.implementation_resolver = implementation_resolver or BasicImplementationResolver()
        self.property_model = property_model or PropertyModel()
        self.property_filters: HierarchyRegistry[PropertyFilter] = HierarchyRegistry()
        self.immutable_types: HierarchyRegistry[bool] = HierarchyRegistry()

    # =========================================================================
    # Configuration
    # =========================================================================

    def configure(self, **changes) -> 'GraphWalker':
        """Replace config fields, e.g. ``walker.configure(fail_fast=True)``."""
        self.config = replace(self.config, **changes)
        return self

    def add_property_filter(self, cls: type, exclude: PropertyFilter) -> None:
        """Register ``exclude(property_name) -> bool`` for ``cls`` and its subclasses.

        The filter on the most specific registered type wins outright; when
        unrelated registered types are equally specific, the property is
        excluded if any of their filters excludes it.
        """
        self.property_filters.put(cls, exclude)

    def remove_property_filter(self, cls: type) -> None:
        self.property_filters.remove(cls)

    def register_immutable(self, cls: type) -> None:
        """Treat ``cls`` and its subclasses as leaves."""
        self.immutable_types.put(cls, True)

    def unregister_immutable(self, cls: type) -> None:
        self.immutable_types.remove(cls)

    # =========================================================================
    # Classification
    # =========================================================================

    def shape_of(self, cls: type) -> Shape:
        shape = classify_type(cls)
        if shape is not Shape.NULL and self.immutable_types.nearest_ancestors(cls):
            return Shape.LEAF
        return shape

    def is_excluded(self, cls: type, name: str) -> bool:
        return any(exclude(name) for exclude in self.property_filters.nearest_ancestor_matches(cls))

    def composite_size(self) -> int:
        if self.config.composite_size is not None:
            return self.config.composite_size
        return self.leaf_provider.composite_size()

    # =========================================================================
    # Instantiation
    # =========================================================================

    def concrete_class(self, cls: type) -> type:
        """``cls`` itself, or a concrete stand-in from the implementation resolver."""
        if not is_abstract(cls):
            return cls
        for candidate in self.implementation_resolver.resolve(cls):
            if not is_abstract(candidate):
                return candidate
        raise InstantiationFailure(f"No concrete implementation found for abstract type {type_name(cls, False)}")

    def instantiate(self, cls: type, size: int = 0) -> Any:
        """Create an empty value of ``cls`` (or its concrete stand-in).

        Leaves come from the leaf value provider, arrays are ``size`` slots of
        None, other containers are empty, records are default-constructed.
        """
        concrete = self.concrete_class(cls)
        shape = self.shape_of(concrete)
        if shape is Shape.NULL:
            return None
        if shape is Shape.LEAF:
            return self.leaf_provider.provide(concrete)
        if shape is Shape.ARRAY:
            return concrete([None] * size)
        if shape in (Shape.SEQUENCE, Shape.SET, Shape.MAP):
            return concrete()
        return self._construct(concrete)

    def instantiate_type(self, descriptor: TypeDescriptor, size: int = 0) -> Any:
        return self.instantiate(descriptor.raw_type, size)

    @staticmethod
    def _construct(cls: type) -> Any:
        try:
            return cls()
        except TypeError as exc:
            logger.debug(f"{cls.__qualname__}() failed ({exc}); allocating without __init__")
        except Exception as exc:
            raise InstantiationFailure(f"Cannot instantiate {type_name(cls, False)}: {exc}") from exc
        try:
            return cls.__new__(cls)
        except Exception as exc:
            raise InstantiationFailure(f"Cannot instantiate {type_name(cls, False)}: {exc}") from exc

    # =========================================================================
    # Failure policy
    # =========================================================================

    def recover(self, exc: Exception, context: str) -> None:
        """Log a per-node failure, or re-raise it in fail-fast mode."""
        if self.config.fail_fast:
            raise exc
        logger.warning(f"{context}: {exc}")
