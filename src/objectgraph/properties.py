"""
Property model for records.

A record's properties are discovered from its class (and every class in its
MRO, base first) from these sources:

1. properties registered explicitly with ``PropertyModel.register_property``;
   these have the highest precedence and replace any discovered property
   of the same name
2. accessor methods ``get_x()`` / ``is_x()`` paired with mutator methods
   ``set_x(value)``; a ``functools.singledispatchmethod`` named ``set_x``
   contributes one mutator per registered parameter type
3. ``property`` objects - ``fget`` accessor, ``fset`` mutator
4. annotated attributes - dataclass fields and plain class annotations,
   read with ``getattr`` and written with ``setattr`` (``object.__setattr__``
   for frozen dataclasses)

Discovered members are merged in order: annotated attributes first, then
properties and accessor methods as defined. A later accessor replaces an
earlier one of the same name while mutators of distinct members accumulate.
Across classes, the most-derived definition wins.

A property has exactly one accessor and zero or more candidate mutators.
Choosing between several mutators happens at write time through
``PropertyModel.select_mutator``.
"""

import dataclasses
import functools
import inspect
import logging
import typing
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, Iterator, Mapping, Optional, Sequence, Tuple, Union

from typetree.descriptors import TypeDescriptor, type_name
from typetree.hierarchy import type_distance
from typetree.shapes import Shape, classify_type

from objectgraph.errors import AccessFailure

logger = logging.getLogger(__name__)

Accessor = Callable[[Any], Any]


@dataclass(frozen=True)
class Mutator:
    """One candidate way of writing a property, invoked as ``func(obj, value)``."""
    func: Callable[[Any, Any], Any]
    hint: Any = object
    name: str = ''

    @property
    def param_type(self) -> TypeDescriptor:
        return TypeDescriptor.of(self.hint)

    def resolve_type(self, bindings: Optional[Mapping[Any, Any]] = None) -> TypeDescriptor:
        return TypeDescriptor.of(self.hint, bindings)

    def write(self, obj: Any, value: Any) -> None:
        try:
            self.func(obj, value)
        except Exception as exc:
            raise AccessFailure(
                f"Mutator {self.name or self.func!r} of class {type(obj).__qualname__} failed: {exc}"
            ) from exc


@dataclass(frozen=True)
class PropertyDescriptor:
    """A named, typed property of a record type."""
    name: str
    accessor: Accessor
    hint: Any = object
    mutators: Tuple[Mutator, ...] = ()

    @property
    def declared_type(self) -> TypeDescriptor:
        return TypeDescriptor.of(self.hint)

    @property
    def writable(self) -> bool:
        return bool(self.mutators)

    def resolve_type(self, bindings: Optional[Mapping[Any, Any]] = None) -> TypeDescriptor:
        """Declared type with the record's TypeVar bindings applied."""
        return TypeDescriptor.of(self.hint, bindings)

    def read(self, obj: Any) -> Any:
        try:
            return self.accessor(obj)
        except Exception as exc:
            raise AccessFailure(
                f"Cannot read property {self.name} of class {type(obj).__qualname__}: {exc}"
            ) from exc


@dataclass(frozen=True)
class _Member:
    name: str
    member: str
    accessor: Optional[Accessor]
    hint: Any
    mutators: Tuple[Mutator, ...]
    replace: bool = False


MutatorSpec = Union[Mutator, Callable[[Any, Any], Any], Tuple[Callable[[Any, Any], Any], Any]]


class PropertyModel:
    """Discovers and caches the properties of record types.

    Descriptions are computed once per class and cached for the lifetime of
    the model; only ``register_property`` clears the cache.
    """

    def __init__(self):
        self._cache: Dict[type, Dict[str, PropertyDescriptor]] = {}
        self._registered: Dict[type, Dict[str, PropertyDescriptor]] = {}

    # =========================================================================
    # Registration
    # =========================================================================

    def register_property(self, cls: type, name: str, accessor: Union[str, Accessor],
                          *mutators: MutatorSpec, hint: Any = object) -> PropertyDescriptor:
        """Declare a property explicitly.

        Registered properties replace any discovered property of the same
        name on ``cls`` (and are inherited by its subclasses).

        Args:
            cls: Record class owning the property
            name: Property name
            accessor: Attribute name or ``accessor(obj) -> value`` callable
            *mutators: ``func(obj, value)`` callables, ``(func, hint)`` pairs
                or ``Mutator`` instances
            hint: Declared type of the property

        Returns:
            The registered descriptor
        """
        if isinstance(accessor, str):
            accessor = _attribute_reader(accessor)
        descriptor = PropertyDescriptor(
            name=name,
            accessor=accessor,
            hint=hint,
            mutators=tuple(_as_mutator(spec, hint, name) for spec in mutators),
        )
        self._registered.setdefault(cls, {})[name] = descriptor
        self._cache.clear()
        return descriptor

    # =========================================================================
    # Discovery
    # =========================================================================

    def describe(self, cls: type) -> Dict[str, PropertyDescriptor]:
        """Ordered name -> descriptor map of a class, inherited properties first."""
        cached = self._cache.get(cls)
        if cached is None:
            cached = self._build(cls)
            self._cache[cls] = cached
        return cached

    def property_names(self, cls: type) -> Tuple[str, ...]:
        if classify_type(cls) is not Shape.RECORD:
            return ()
        return tuple(self.describe(cls))

    def _build(self, cls: type) -> Dict[str, PropertyDescriptor]:
        accessors: Dict[str, Tuple[Accessor, Any]] = {}
        mutators: Dict[str, Dict[Tuple[str, int], Mutator]] = {}

        for klass in reversed(getattr(cls, '__mro__', (cls,))):
            if klass is object:
                continue
            for member in self._scan(klass):
                group = mutators.setdefault(member.name, {})
                if member.replace:
                    group.clear()
                else:
                    for key in [key for key in group if key[0] == member.member]:
                        del group[key]
                for index, mutator in enumerate(member.mutators):
                    group[(member.member, index)] = mutator
                if member.accessor is not None:
                    accessors[member.name] = (member.accessor, member.hint)

        return {
            name: PropertyDescriptor(name, accessor, hint, tuple(mutators.get(name, {}).values()))
            for name, (accessor, hint) in accessors.items()
        }

    def _scan(self, klass: type) -> Iterator[_Member]:
        namespace = klass.__dict__
        field_names = None
        frozen = False
        if '__dataclass_fields__' in namespace:
            field_names = {f.name for f in dataclasses.fields(klass)}
            frozen = namespace['__dataclass_params__'].frozen

        for name, hint in _own_hints(klass).items():
            if name.startswith('_') or _is_class_var(hint):
                continue
            if field_names is not None and name not in field_names:
                continue
            if isinstance(namespace.get(name), property):
                continue
            writer = Mutator(_attribute_writer(name, frozen), hint, name)
            yield _Member(name, name, _attribute_reader(name), hint, (writer,))

        for name, member in namespace.items():
            if name.startswith('_'):
                continue
            if isinstance(member, property):
                yield self._from_property(name, member)
            elif isinstance(member, functools.singledispatchmethod):
                if name.startswith('set_') and len(name) > 4:
                    yield _Member(name[4:], name, None, None, _dispatch_mutators(name, member))
            elif inspect.isfunction(member):
                found = _from_method(name, member)
                if found is not None:
                    yield found

        for name, descriptor in self._registered.get(klass, {}).items():
            yield _Member(name, name, descriptor.accessor, descriptor.hint, descriptor.mutators,
                          replace=True)

    @staticmethod
    def _from_property(name: str, member: property) -> _Member:
        accessor = member.fget
        hint = _callable_hints(accessor).get('return', object) if accessor is not None else object
        mutators: Tuple[Mutator, ...] = ()
        if member.fset is not None:
            mutators = (Mutator(member.fset, _parameter_hint(member.fset, hint), name),)
        return _Member(name, name, accessor, hint, mutators)

    # =========================================================================
    # Mutator selection
    # =========================================================================

    def select_mutator(self, source: TypeDescriptor,
                       candidates: Sequence[Mutator]) -> Optional[Mutator]:
        """Choose the mutator that best accepts values of ``source`` type.

        Stages, first hit wins:
            1. exact: parameter type equals the source type
            2. nearest assignable: smallest ``type_distance`` from the source
               class up to the parameter class
            3. structural: parameter record type sharing the most property
               names with the source type
            4. closest type name by edit distance

        Ties in stages 3 and 4 go to the earliest candidate; this ordering is
        a best-effort heuristic.
        """
        if not candidates:
            return None
        if len(candidates) == 1:
            return candidates[0]

        for candidate in candidates:
            if candidate.param_type == source:
                return candidate

        source_class = source.raw_type
        best: Optional[Mutator] = None
        best_distance = -1
        for candidate in candidates:
            distance = type_distance(candidate.param_type.raw_type, source_class)
            if distance >= 0 and (best is None or distance < best_distance):
                best, best_distance = candidate, distance
        if best is not None:
            return best

        source_names = set(self.property_names(source_class))
        best_score = 0
        for candidate in candidates:
            score = len(source_names.intersection(self.property_names(candidate.param_type.raw_type)))
            if score > best_score:
                best, best_score = candidate, score
        if best is not None:
            return best

        source_name = type_name(source_class)
        return min(candidates, key=lambda c: edit_distance(type_name(c.param_type.raw_type), source_name))


# =============================================================================
# HELPERS
# =============================================================================

def _attribute_reader(name: str) -> Accessor:
    def read(obj):
        return getattr(obj, name, None)
    read.__name__ = f"get_{name}"
    return read


def _attribute_writer(name: str, frozen: bool = False) -> Callable[[Any, Any], None]:
    setter = object.__setattr__ if frozen else setattr

    def write(obj, value):
        setter(obj, name, value)
    write.__name__ = f"set_{name}"
    return write


def _as_mutator(spec: MutatorSpec, default_hint: Any, name: str) -> Mutator:
    if isinstance(spec, Mutator):
        return spec
    if isinstance(spec, tuple):
        func, hint = spec
        return Mutator(func, hint, name)
    return Mutator(spec, _parameter_hint(spec, default_hint), name)


def _own_hints(klass: type) -> Dict[str, Any]:
    """Annotations declared on ``klass`` itself, evaluated where possible."""
    own = inspect.get_annotations(klass)
    if not own:
        return {}
    try:
        resolved = typing.get_type_hints(klass)
    except Exception as exc:
        logger.debug(f"Could not evaluate annotations of {klass.__qualname__}: {exc}")
        resolved = {}
    return {name: resolved.get(name, hint) for name, hint in own.items()}


def _callable_hints(func: Callable) -> Dict[str, Any]:
    try:
        return typing.get_type_hints(func)
    except Exception as exc:
        logger.debug(f"Could not evaluate annotations of {func!r}: {exc}")
        return dict(getattr(func, '__annotations__', None) or {})


def _value_parameters(func: Callable) -> Sequence[inspect.Parameter]:
    try:
        parameters = inspect.signature(func).parameters.values()
    except (TypeError, ValueError):
        return ()
    return [p for p in parameters
            if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)]


def _parameter_hint(func: Callable, default: Any = object) -> Any:
    """Annotation of the value parameter of ``func(obj, value)``."""
    parameters = _value_parameters(func)
    if len(parameters) < 2:
        return default
    return _callable_hints(func).get(parameters[1].name, default)


def _required_count(func: Callable) -> int:
    return sum(1 for p in _value_parameters(func) if p.default is inspect.Parameter.empty)


def _from_method(name: str, member: Callable) -> Optional[_Member]:
    for prefix in ('get_', 'is_'):
        if name.startswith(prefix) and len(name) > len(prefix) and _required_count(member) == 1:
            hint = _callable_hints(member).get('return', object)
            return _Member(name[len(prefix):], name, member, hint, ())
    if name.startswith('set_') and len(name) > 4 and _required_count(member) == 2:
        return _Member(name[4:], name, None, None, (Mutator(member, _parameter_hint(member), name),))
    return None


def _dispatch_mutators(name: str, member: functools.singledispatchmethod) -> Tuple[Mutator, ...]:
    registry = member.dispatcher.registry
    keys = [key for key in registry if key is not object] or list(registry)
    return tuple(Mutator(registry[key], key, name) for key in keys)


def _is_class_var(hint: Any) -> bool:
    if hint is ClassVar or typing.get_origin(hint) is ClassVar:
        return True
    return isinstance(hint, str) and hint.startswith(('ClassVar', 'typing.ClassVar'))


def edit_distance(left: str, right: str) -> int:
    """Levenshtein distance between two strings."""
    previous = list(range(len(right) + 1))
    for i, left_char in enumerate(left, 1):
        current = [i]
        for j, right_char in enumerate(right, 1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (left_char != right_char),
            ))
        previous = current
    return previous[-1]
