"""
Type-directed deep copy.

``Cloner.clone(source, target_type)`` copies a value into a related but
not necessarily identical target type. At every node:

1. a registered converter for (runtime source class, target class) wins
   outright; the built-in layer converts between numbers, strings,
   booleans and enums
2. leaves pass through when they already are instances of the target class
3. composites get a target placeholder (the source's own class when it
   satisfies the target type, otherwise the target type or its concrete
   stand-in), which is recorded in the copy cache *before* children are
   copied, so reference cycles resolve to the placeholder
4. children are copied with their declared component/property types

Records are copied property by property, matched by name. The target
mutator is chosen with ``PropertyModel.select_mutator``; a target property
without a usable mutator but with a live container value receives the
copied elements in place.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

from typetree.descriptors import TypeDescriptor, bindings_for, type_name
from typetree.hierarchy import is_subtype
from typetree.shapes import Shape, is_frozen

from objectgraph.converters import Converter, ConverterRegistry, default_converters
from objectgraph.errors import ShapeMismatch
from objectgraph.properties import PropertyDescriptor
from objectgraph.walker import GraphWalker

logger = logging.getLogger(__name__)

CloneKey = Tuple[int, TypeDescriptor, TypeDescriptor]

_LIVE_CONTAINER_SHAPES = (Shape.SEQUENCE, Shape.SET, Shape.MAP)

# Runtime classes a float/complex annotation accepts without conversion
_NUMERIC_PROMOTIONS = {
    float: (int,),
    complex: (int, float),
}


@dataclass
class _CloneContext:
    """Copy cache of one clone call; sources are retained so ids stay unique."""
    produced: Dict[CloneKey, Any] = field(default_factory=dict)
    sources: List[Any] = field(default_factory=list)

    def remember(self, key: CloneKey, source: Any, target: Any) -> None:
        self.produced[key] = target
        self.sources.append(source)


class Cloner(GraphWalker):
    """Deep copies values, converting between compatible shapes and types."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.converters = ConverterRegistry(parent=default_converters())

    def add_converter(self, source: type, target: type, converter: Converter) -> None:
        """Register ``converter(value, target_class)`` for a (source, target) pair.

        User converters are consulted before the built-in scalar layer.
        """
        self.converters.register(source, target, converter)

    def remove_converter(self, source: type, target: type) -> None:
        self.converters.unregister(source, target)

    # =========================================================================
    # Public API
    # =========================================================================

    def clone(self, source: Any, target_type: Any = None) -> Any:
        """Deep copy ``source``, optionally into ``target_type`` (a class or typing hint)."""
        context = _CloneContext()
        source_type = TypeDescriptor.of_value(source)
        target = source_type if target_type is None else TypeDescriptor.of(target_type)
        return self._clone(context, source, source_type, target)

    def clone_into(self, source: Any, target: Any) -> Any:
        """Copy ``source`` into the existing ``target``.

        Records and mutable containers are filled in place and returned;
        tuples and frozensets cannot be, so a new instance is returned.
        """
        context = _CloneContext()
        source_type = TypeDescriptor.of_value(source)
        target_type = TypeDescriptor.of_value(target)
        source_shape = self.shape_of(type(source))
        target_shape = self.shape_of(type(target))
        if not (source_shape.is_composite and target_shape.is_composite):
            return self._clone(context, source, source_type, target_type)

        self._check_shapes(source_shape, target_shape, type(source), type(target))
        key = (id(source), source_type, target_type)
        if not is_frozen(type(target)):
            context.remember(key, source, target)
        result = self._populate(context, source, source_type, target, target_type)
        context.remember(key, source, result)
        return result

    # =========================================================================
    # Traversal
    # =========================================================================

    def _clone(self, context: _CloneContext, source: Any,
               source_type: TypeDescriptor, target_type: TypeDescriptor) -> Any:
        source_class = type(source)
        if source_type.is_top and source is not None:
            source_type = TypeDescriptor.of_value(source)
        if target_type.is_top:
            # Keep the runtime class when the target does not constrain it
            target_type = source_type if source_type.raw_type is source_class \
                else TypeDescriptor.of(source_class)
        target_class = target_type.raw_type

        key = (id(source), source_type, target_type)
        if key in context.produced:
            return context.produced[key]

        if source_type == target_type and _promotes(source_class, target_class):
            return source

        converter = self.converters.find(source_class, target_class)
        if converter is not None:
            target = converter(source, target_class)
            context.remember(key, source, target)
            return target

        if source is None:
            return None

        source_shape = self.shape_of(source_class)
        if source_shape is Shape.LEAF:
            if is_subtype(source_class, target_class):
                return source
            raise ShapeMismatch(
                f"Cannot convert {type_name(source_class)} into {type_name(target_class)}"
            )

        cls = source_class if is_subtype(source_class, target_class) else self.concrete_class(target_class)
        self._check_shapes(source_shape, self.shape_of(cls), source_class, cls)

        placeholder = self.instantiate(cls)
        if not is_frozen(cls):
            context.remember(key, source, placeholder)
        target = self._populate(context, source, source_type, placeholder, target_type)
        context.remember(key, source, target)
        return target

    @staticmethod
    def _check_shapes(source_shape: Shape, target_shape: Shape, source_class: type, target_class: type) -> None:
        if source_shape is target_shape or (source_shape.is_collection and target_shape.is_collection):
            return
        raise ShapeMismatch(
            f"Cannot clone {source_shape.value} {type_name(source_class)} "
            f"into {target_shape.value} {type_name(target_class)}"
        )

    def _populate(self, context: _CloneContext, source: Any, source_type: TypeDescriptor,
                  target: Any, target_type: TypeDescriptor) -> Any:
        target_shape = self.shape_of(type(target))

        if target_shape is Shape.RECORD:
            self._clone_record(context, source, source_type, target, target_type)
            return target

        if target_shape is Shape.MAP:
            entries = self._clone_entries(context, source, source_type, target_type)
            target.clear()
            target.update(entries)
            return target

        items = self._clone_items(
            context, source, source_type.element_type, target_type.element_type,
            keep_slots=target_shape is Shape.ARRAY,
        )
        return _fill(target, target_shape, items)

    def _clone_items(self, context: _CloneContext, items: Any, source_type: TypeDescriptor,
                     target_type: TypeDescriptor, keep_slots: bool) -> List[Any]:
        cloned = []
        for index, item in enumerate(items):
            try:
                cloned.append(self._clone(context, item, source_type, target_type))
            except Exception as exc:
                self.recover(exc, f"Failed to clone element {index}")
                if keep_slots:
                    cloned.append(None)
        return cloned

    def _clone_entries(self, context: _CloneContext, source: Mapping, source_type: TypeDescriptor,
                       target_type: TypeDescriptor) -> List[Tuple[Any, Any]]:
        entries = []
        for key, value in source.items():
            try:
                entries.append((
                    self._clone(context, key, source_type.key_type, target_type.key_type),
                    self._clone(context, value, source_type.value_type, target_type.value_type),
                ))
            except Exception as exc:
                self.recover(exc, f"Failed to clone entry {key!r}")
        return entries

    # =========================================================================
    # Records
    # =========================================================================

    def _clone_record(self, context: _CloneContext, source: Any, source_type: TypeDescriptor,
                      target: Any, target_type: TypeDescriptor) -> None:
        source_class = type(source)
        target_class = type(target)
        target_properties = self.property_model.describe(target_class)
        source_bindings = bindings_for(source, source_type)
        target_bindings = bindings_for(target, target_type)

        cloned = 0
        for name, source_property in self.property_model.describe(source_class).items():
            if self.is_excluded(source_class, name):
                continue
            target_property = target_properties.get(name)
            if target_property is None:
                continue
            try:
                if self._clone_property(context, source, source_property, source_bindings,
                                        target, target_property, target_bindings):
                    cloned += 1
            except Exception as exc:
                self.recover(exc, f"Failed to clone property {name} of class {type_name(source_class)}")

        if not cloned:
            logger.info(f"No properties cloned from class {type_name(source_class)} to {type_name(target_class)}.")

    def _clone_property(self, context: _CloneContext,
                        source: Any, source_property: PropertyDescriptor, source_bindings: Dict,
                        target: Any, target_property: PropertyDescriptor, target_bindings: Dict) -> bool:
        value = source_property.read(source)
        source_type = source_property.resolve_type(source_bindings)
        selection_type = source_type
        if source_type.is_top and value is not None:
            selection_type = TypeDescriptor.of_value(value)

        mutator = self.property_model.select_mutator(selection_type, target_property.mutators)
        if mutator is not None:
            mutator.write(target, self._clone(context, value, source_type, mutator.resolve_type(target_bindings)))
            return True

        current = target_property.read(target)
        if current is not None and self.shape_of(type(current)) in _LIVE_CONTAINER_SHAPES:
            copied = self._clone(context, value, source_type, target_property.resolve_type(target_bindings))
            if copied is not None:
                _merge(current, copied)
            return True

        logger.debug(f"No matching mutator for property {target_property.name} of class {type_name(type(target))}")
        return False


def _promotes(source_class: type, declared_class: type) -> bool:
    """True when ``source_class`` is accepted where ``declared_class`` is annotated.

    Covers the implicit int -> float -> complex promotion of type hints.
    """
    accepted = _NUMERIC_PROMOTIONS.get(declared_class)
    return accepted is not None and source_class in accepted


def _fill(target: Any, shape: Shape, items: List[Any]) -> Any:
    if is_frozen(type(target)):
        return type(target)(items)
    target.clear()
    if shape is Shape.SET:
        for item in items:
            target.add(item)
    else:
        target.extend(items)
    return target


def _merge(current: Any, copied: Any) -> None:
    if hasattr(current, 'keys'):
        current.update(copied)
    elif hasattr(current, 'add'):
        for item in copied:
            current.add(item)
    else:
        current.extend(copied)
