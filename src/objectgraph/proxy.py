"""
Read and write values addressed by path expressions.

``PathProxy.assign`` walks the selector chain once, creating what is
missing on the way down: absent nodes are instantiated from their declared
type, and sequences are grown with None slots until the addressed index
exists. Children that had to be replaced (new instances, grown tuples) are
written back into their parent on the way up, so the whole chain is
addressable after a single call.

``PathProxy.evaluate`` never creates anything. Reading through an absent
node yields None, reading past the end of a sequence raises
``IndexOutOfRange``.

Index selectors on sequences and arrays resolve at walk time:

    [-]   size - 1 (0 when writing into an empty sequence)
    [+]   size when writing (grows by one), size - 1 when reading
"""

import logging
from typing import Any, List, Optional

from typetree.descriptors import TypeDescriptor, bindings_for, type_name
from typetree.shapes import Shape

from objectgraph.converters import default_converters
from objectgraph.errors import (AccessFailure, IndexOutOfRange, MissingProperty,
                                ShapeMismatch)
from objectgraph.properties import PropertyDescriptor
from objectgraph.selectors import (PathLike, Selector, SelectorKind, SelectorParser, format_path,
                                  parse_path)
from objectgraph.walker import GraphWalker

logger = logging.getLogger(__name__)

_INDEXABLE_SHAPES = (Shape.ARRAY, Shape.SEQUENCE)


class PathProxy(GraphWalker):
    """Evaluates and assigns path expressions against object graphs."""

    def __init__(self, *args, parser: Optional[SelectorParser] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.parser = parser or SelectorParser()

    # =========================================================================
    # Public API
    # =========================================================================

    def evaluate(self, root: Any, path: PathLike, root_type: Any = None) -> Any:
        """Return the value addressed by ``path``, or None when a node on the way is absent."""
        selectors = parse_path(path, self.parser)
        node = root
        descriptor = self._root_descriptor(root, root_type)
        for selector in selectors:
            if node is None:
                return None
            node, descriptor = self._step(node, descriptor, selector)
        return node

    def assign(self, root: Any, path: PathLike, value: Any, root_type: Any = None) -> Any:
        """Write ``value`` at ``path``, creating intermediate nodes as needed.

        Returns the root, which is a new object only when the root itself
        had to be replaced (an absent root, or a tuple that was grown).
        """
        selectors = parse_path(path, self.parser)
        if not selectors:
            return value
        logger.debug(f"Assigning {format_path(selectors)} on {type_name(type(root))}")
        return self._assign(root, self._root_descriptor(root, root_type), selectors, value)

    @staticmethod
    def _root_descriptor(root: Any, root_type: Any) -> TypeDescriptor:
        if root_type is not None:
            return TypeDescriptor.of(root_type)
        return TypeDescriptor.of_value(root)

    # =========================================================================
    # Reading
    # =========================================================================

    def _step(self, node: Any, descriptor: TypeDescriptor, selector: Selector):
        cls = type(node)
        shape = self.shape_of(cls)

        if selector.kind is SelectorKind.PROPERTY:
            prop = self._property(node, selector)
            return prop.read(node), prop.resolve_type(bindings_for(node, descriptor))

        if shape is Shape.MAP:
            key = self._map_key(node, descriptor, selector)
            return node.get(key), descriptor.value_type

        if selector.kind is SelectorKind.KEY:
            raise ShapeMismatch(f"Selector {selector} needs a map, found {shape.value} {type_name(cls)}")
        if shape not in _INDEXABLE_SHAPES:
            raise ShapeMismatch(f"Selector {selector} needs a sequence, found {shape.value} {type_name(cls)}")

        size = len(node)
        if selector.kind is SelectorKind.INDEX:
            index = selector.index
        else:
            index = size - 1
        if not 0 <= index < size:
            raise IndexOutOfRange(f"Index {selector} out of range for {type_name(cls)} of size {size}")
        return node[index], descriptor.element_type

    def _property(self, node: Any, selector: Selector) -> PropertyDescriptor:
        cls = type(node)
        shape = self.shape_of(cls)
        if shape is not Shape.RECORD:
            raise ShapeMismatch(f"Selector {selector} needs a record, found {shape.value} {type_name(cls)}")
        prop = self.property_model.describe(cls).get(selector.literal)
        if prop is None:
            raise MissingProperty(f"Missing property {selector.literal} on class {type_name(cls)}")
        return prop

    def _map_key(self, mapping: Any, descriptor: TypeDescriptor, selector: Selector) -> Any:
        if selector.kind in (SelectorKind.LAST_INDEX, SelectorKind.APPEND_INDEX):
            raise ShapeMismatch(f"Selector {selector} needs a sequence, found map {type_name(type(mapping))}")

        key_class = descriptor.key_type.raw_type
        if key_class is str or descriptor.key_type.is_top or self.shape_of(key_class) is not Shape.LEAF:
            return selector.literal
        converter = default_converters().find(str, key_class)
        if converter is None:
            return selector.literal
        return converter(selector.literal, key_class)

    # =========================================================================
    # Writing
    # =========================================================================

    def _assign(self, node: Any, descriptor: TypeDescriptor, selectors: List[Selector], value: Any) -> Any:
        """Apply ``selectors[0]`` on ``node`` and return the (possibly replaced) node."""
        selector, rest = selectors[0], selectors[1:]
        if node is None:
            node = self._allocate(descriptor, selector)

        if selector.kind is SelectorKind.PROPERTY:
            self._assign_property(node, descriptor, selector, rest, value)
            return node

        shape = self.shape_of(type(node))
        if shape is Shape.MAP:
            key = self._map_key(node, descriptor, selector)
            child = node.get(key)
            updated = self._descend(child, descriptor.value_type, rest, value)
            if updated is not child or not rest:
                node[key] = updated
            return node

        if selector.kind is SelectorKind.KEY:
            raise ShapeMismatch(f"Selector {selector} needs a map, found {shape.value} {type_name(type(node))}")
        if shape not in _INDEXABLE_SHAPES:
            raise ShapeMismatch(f"Selector {selector} needs a sequence, found {shape.value} {type_name(type(node))}")

        index = _write_index(selector, len(node))
        node = self._grow(node, shape, index + 1)
        child = node[index]
        updated = self._descend(child, descriptor.element_type, rest, value)
        if updated is child and rest:
            return node
        if shape is Shape.ARRAY:
            slots = list(node)
            slots[index] = updated
            return type(node)(slots)
        node[index] = updated
        return node

    def _descend(self, child: Any, descriptor: TypeDescriptor, rest: List[Selector], value: Any) -> Any:
        if not rest:
            return value
        return self._assign(child, descriptor, rest, value)

    def _assign_property(self, node: Any, descriptor: TypeDescriptor, selector: Selector,
                         rest: List[Selector], value: Any) -> None:
        prop = self._property(node, selector)
        child = prop.read(node)
        declared = prop.resolve_type(bindings_for(node, descriptor))
        updated = self._descend(child, declared, rest, value)
        if updated is child and rest:
            return

        written_type = TypeDescriptor.of_value(updated) if updated is not None else declared
        mutator = self.property_model.select_mutator(written_type, prop.mutators)
        if mutator is not None:
            mutator.write(node, updated)
            return

        # Read-only property exposing a live container
        if child is not None and updated is not None and \
                self.shape_of(type(child)) in (Shape.SEQUENCE, Shape.SET, Shape.MAP):
            _replace_contents(child, updated)
            return
        raise AccessFailure(f"No mutator for property {prop.name} of class {type_name(type(node))}")

    def _allocate(self, descriptor: TypeDescriptor, selector: Selector) -> Any:
        """Instantiate an absent node able to accept ``selector``."""
        if descriptor.is_top or descriptor.shape is Shape.NULL:
            if selector.is_positional:
                return []
            if selector.kind is SelectorKind.KEY:
                return {}
        return self.instantiate_type(descriptor)

    @staticmethod
    def _grow(node: Any, shape: Shape, size: int) -> Any:
        missing = size - len(node)
        if missing <= 0:
            return node
        if shape is Shape.ARRAY:
            return type(node)(list(node) + [None] * missing)
        for _ in range(missing):
            node.append(None)
        return node


def _write_index(selector: Selector, size: int) -> int:
    if selector.kind is SelectorKind.LAST_INDEX:
        return max(size - 1, 0)
    if selector.kind is SelectorKind.APPEND_INDEX:
        return size
    return selector.index


def _replace_contents(current: Any, updated: Any) -> None:
    if current is updated:
        return
    current.clear()
    if hasattr(current, 'keys'):
        current.update(updated)
    elif hasattr(current, 'add'):
        for item in updated:
            current.add(item)
    else:
        current.extend(updated)
