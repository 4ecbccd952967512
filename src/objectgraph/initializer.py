"""
Deterministic population of object graphs.

``Initializer.initialize`` fills a value (or a fresh instance of a type)
with generated content:

- leaves come from the leaf value provider; string properties are
  prefixed with their property name
- arrays keep their length and every slot is regenerated
- sequences, sets and maps are cleared and refilled with
  ``composite_size`` generated elements
- record properties are generated from their mutator's declared type

Self-referential types terminate through a per-declared-type counter of
active nestings; once ``recursion_limit`` nestings of a type are open, the
next one yields ``SKIP`` and the slot is left as it is.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, get_origin

from typetree.descriptors import TypeDescriptor, bindings_for, type_name
from typetree.hierarchy import HierarchyRegistry
from typetree.shapes import Shape, is_frozen

from objectgraph.walker import GraphWalker

logger = logging.getLogger(__name__)

CustomInitializer = Callable[[Any], Any]


class _Skip:
    """Marker for a value that must not be populated."""

    def __repr__(self) -> str:
        return 'SKIP'


SKIP = _Skip()


@dataclass
class _InitContext:
    """Active nesting count per declared type for one initialize call."""
    depth: Dict[TypeDescriptor, int] = field(default_factory=dict)


def _is_type_like(target: Any) -> bool:
    return isinstance(target, type) or get_origin(target) is not None


class Initializer(GraphWalker):
    """Populates values with generated, reproducible content."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.custom_initializers: HierarchyRegistry[CustomInitializer] = HierarchyRegistry()

    def add_initializer(self, cls: type, initializer: CustomInitializer) -> None:
        """Register ``initializer(value)`` for ``cls`` and its subclasses.

        It replaces the default population of matching values. A non-None
        return value replaces the value itself.
        """
        self.custom_initializers.put(cls, initializer)

    def remove_initializer(self, cls: type) -> None:
        self.custom_initializers.remove(cls)

    # =========================================================================
    # Public API
    # =========================================================================

    def initialize(self, target: Any, declared_type: Any = None) -> Any:
        """Populate ``target`` and return it.

        ``target`` may be a value, which is populated in place where its
        shape allows it, or a class/typing hint, which is instantiated
        first. Tuples and frozensets are rebuilt, so always use the
        returned value.
        """
        context = _InitContext()
        if _is_type_like(target):
            value = self._create(context, TypeDescriptor.of(target))
            return None if value is SKIP else value

        descriptor = TypeDescriptor.of(declared_type) if declared_type is not None \
            else TypeDescriptor.of_value(target)
        context.depth[descriptor] = 1
        return self._populate(context, target, descriptor)

    # =========================================================================
    # Traversal
    # =========================================================================

    def _create(self, context: _InitContext, descriptor: TypeDescriptor, name: Optional[str] = None) -> Any:
        """Instantiate and populate a value of ``descriptor``, or return SKIP."""
        count = context.depth.get(descriptor, 0)
        if count >= self.config.recursion_limit:
            logger.debug(f"Recursion limit reached for {descriptor}")
            return SKIP

        context.depth[descriptor] = count + 1
        try:
            cls = self.concrete_class(descriptor.raw_type)
            shape = self.shape_of(cls)
            if shape is Shape.ARRAY:
                value = self.instantiate(cls, self.composite_size())
            else:
                value = self.instantiate(cls)
            if shape is Shape.LEAF:
                return self._initialize_leaf(value, name)
            return self._populate(context, value, descriptor)
        finally:
            context.depth[descriptor] = count

    def _initialize_leaf(self, value: Any, name: Optional[str]) -> Any:
        custom = self.custom_initializers.nearest_ancestor_match(type(value))
        if custom is not None:
            result = custom(value)
            return value if result is None else result
        if name and isinstance(value, str) and self.config.prefix_strings:
            return f"{name}_{value}"
        return value

    def _populate(self, context: _InitContext, value: Any, descriptor: TypeDescriptor) -> Any:
        if value is None:
            return None

        custom = self.custom_initializers.nearest_ancestor_match(type(value))
        if custom is not None:
            result = custom(value)
            return value if result is None else result

        shape = self.shape_of(type(value))
        if shape is Shape.ARRAY:
            return self._populate_array(context, value, descriptor)
        if shape in (Shape.SEQUENCE, Shape.SET):
            return self._populate_collection(context, value, descriptor, shape)
        if shape is Shape.MAP:
            self._populate_map(context, value, descriptor)
        elif shape is Shape.RECORD:
            self._populate_record(context, value, descriptor)
        return value

    def _populate_array(self, context: _InitContext, array: tuple, descriptor: TypeDescriptor) -> tuple:
        slots = list(array)
        for index in range(len(slots)):
            try:
                item = self._create(context, descriptor.element_type)
            except Exception as exc:
                self.recover(exc, f"Failed to initialize element {index}")
                continue
            if item is not SKIP:
                slots[index] = item
        return type(array)(slots)

    def _populate_collection(self, context: _InitContext, collection: Any,
                             descriptor: TypeDescriptor, shape: Shape) -> Any:
        items = []
        for index in range(self.composite_size()):
            try:
                item = self._create(context, descriptor.element_type)
            except Exception as exc:
                self.recover(exc, f"Failed to initialize element {index}")
                continue
            if item is not SKIP:
                items.append(item)

        if is_frozen(type(collection)):
            return type(collection)(items)
        collection.clear()
        if shape is Shape.SET:
            for item in items:
                collection.add(item)
        else:
            collection.extend(items)
        return collection

    def _populate_map(self, context: _InitContext, mapping: Any, descriptor: TypeDescriptor) -> None:
        mapping.clear()
        for index in range(self.composite_size()):
            try:
                key = self._create(context, descriptor.key_type)
                value = self._create(context, descriptor.value_type)
            except Exception as exc:
                self.recover(exc, f"Failed to initialize entry {index}")
                continue
            if key is not SKIP and value is not SKIP:
                mapping[key] = value

    def _populate_record(self, context: _InitContext, record: Any, descriptor: TypeDescriptor) -> None:
        cls = type(record)
        bindings = bindings_for(record, descriptor)
        for name, prop in self.property_model.describe(cls).items():
            if self.is_excluded(cls, name):
                continue
            try:
                self._initialize_property(context, record, prop, bindings)
            except Exception as exc:
                self.recover(exc, f"Failed to initialize property {name} of class {type_name(cls)}")

    def _initialize_property(self, context: _InitContext, record: Any, prop, bindings: Dict) -> None:
        declared = prop.resolve_type(bindings)
        mutator = self.property_model.select_mutator(declared, prop.mutators)
        if mutator is not None:
            value = self._create(context, mutator.resolve_type(bindings), prop.name)
            if value is not SKIP:
                mutator.write(record, value)
            return

        # Read-only property exposing a live container
        current = prop.read(record)
        if current is not None and self.shape_of(type(current)) in (Shape.SEQUENCE, Shape.SET, Shape.MAP):
            self._populate(context, current, declared)
