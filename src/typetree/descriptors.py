"""
Type descriptors - the declared type of a value as a small, hashable tree.

A ``TypeDescriptor`` pairs a raw class with the descriptors of its
components: the element type of an array/sequence/set, or the key and
value types of a map. Walkers carry a descriptor alongside every value so
that the element type of a ``List[int]`` property is known even when the
list is empty or absent.

Resolution rules for ``typing`` hints:
    Optional[X], Annotated[X, ...], NewType      -> X
    Any, multi-member Union, Literal, Callable   -> object (the top type)
    TypeVar                                      -> binding, bound, or object
    List[X], Set[X], Sequence[X], Dict[K, V]     -> raw container + components
    Tuple[X, ...]                                -> tuple + (X,)
    Tuple[A, B]                                  -> tuple + (object,) unless A == B
    Box[int] (generic record)                    -> Box, with T bound to int

Results for hints resolved without bindings are cached in a module-level
dict, the same way reified parameterizations are reused elsewhere.
"""

import logging
import types
from dataclasses import dataclass
from typing import (Annotated, Any, ClassVar, Dict, ForwardRef, Literal, Mapping, Optional,
                    Tuple, TypeVar, Union, get_args, get_origin)

from typetree.shapes import Shape, classify_type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TypeDescriptor:
    """Declared type of a value: raw class plus component descriptors.

    ``component_types`` always has the arity of the raw type's shape (0 for
    leaves and records, 1 for arrays/sequences/sets, 2 for maps). Missing
    parameters are filled with the top type.

    ``bindings`` carries TypeVar parameterizations of generic records, e.g.
    a property declared as ``Box[int]`` records ``(T, int)``.
    """

    raw_type: type
    component_types: Tuple['TypeDescriptor', ...] = ()
    bindings: Tuple[Tuple[Any, Any], ...] = ()

    # Shape helpers

    @property
    def shape(self) -> Shape:
        return classify_type(self.raw_type)

    def component(self, index: int) -> 'TypeDescriptor':
        """Component descriptor at ``index``, or the top type when absent."""
        if 0 <= index < len(self.component_types):
            return self.component_types[index]
        return TOP

    @property
    def element_type(self) -> 'TypeDescriptor':
        return self.component(0)

    @property
    def key_type(self) -> 'TypeDescriptor':
        return self.component(0)

    @property
    def value_type(self) -> 'TypeDescriptor':
        return self.component(1)

    @property
    def is_top(self) -> bool:
        return self.raw_type is object

    def with_raw_type(self, raw_type: type) -> 'TypeDescriptor':
        """Same declared context with a narrower raw class.

        Components are kept when the arity still matches, otherwise padded
        with the top type.
        """
        if raw_type is self.raw_type:
            return self
        arity = classify_type(raw_type).arity
        components = self.component_types if len(self.component_types) == arity else (TOP,) * arity
        return TypeDescriptor(raw_type, components, self.bindings)

    # Rendering

    def format(self, simple: bool = True) -> str:
        """Readable type name, e.g. ``list[int]`` or ``tuple[str, ...]``."""
        name = type_name(self.raw_type, simple)
        if not self.component_types:
            return name
        if self.shape is Shape.ARRAY:
            return f"{name}[{self.component_types[0].format(simple)}, ...]"
        inner = ", ".join(component.format(simple) for component in self.component_types)
        return f"{name}[{inner}]"

    def __str__(self) -> str:
        return self.format()

    # Construction

    @classmethod
    def of(cls, hint: Any, bindings: Optional[Mapping[Any, Any]] = None) -> 'TypeDescriptor':
        """Resolve a type hint (or plain class) into a descriptor.

        Args:
            hint: Any class or ``typing`` construct
            bindings: Optional TypeVar -> hint mapping for generic records

        Returns:
            The resolved descriptor
        """
        if isinstance(hint, TypeDescriptor):
            return hint
        if bindings:
            return _resolve(hint, dict(bindings))
        try:
            cached = _descriptor_cache.get(hint)
        except TypeError:
            # Unhashable Annotated metadata
            return _resolve(hint, {})
        if cached is None:
            cached = _resolve(hint, {})
            _descriptor_cache[hint] = cached
        return cached

    @classmethod
    def of_value(cls, value: Any) -> 'TypeDescriptor':
        """Descriptor for a value with no declared context.

        Instances created through a parameterized generic (``Box[int]()``)
        keep their ``__orig_class__`` and resolve with those bindings.
        """
        orig_class = getattr(value, '__orig_class__', None)
        if orig_class is not None:
            return cls.of(orig_class)
        return cls.of(type(value))


TOP = TypeDescriptor(object)

_descriptor_cache: Dict[Any, TypeDescriptor] = {}


def clear_descriptor_cache() -> None:
    """Drop all cached hint resolutions."""
    _descriptor_cache.clear()


def type_name(cls: Any, simple: bool = True) -> str:
    """Simple (``Node``) or qualified (``pkg.mod.Node``) name of a class."""
    if not isinstance(cls, type):
        return str(cls)
    if simple:
        return cls.__name__
    if cls.__module__ == 'builtins':
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


# =============================================================================
# HINT RESOLUTION
# =============================================================================

def _is_union(origin: Any) -> bool:
    if origin is Union:
        return True
    union_type = getattr(types, 'UnionType', None)
    return union_type is not None and origin is union_type


def _resolve(hint: Any, bindings: Dict[Any, Any]) -> TypeDescriptor:
    if hint is None or hint is type(None):
        return TypeDescriptor(type(None))
    if hint is Any or hint is object:
        return TOP

    if isinstance(hint, TypeVar):
        if hint in bindings:
            remaining = {key: value for key, value in bindings.items() if key is not hint}
            return _resolve(bindings[hint], remaining)
        if hint.__bound__ is not None:
            return _resolve(hint.__bound__, bindings)
        if len(hint.__constraints__) == 1:
            return _resolve(hint.__constraints__[0], bindings)
        return TOP

    if isinstance(hint, (str, ForwardRef)):
        logger.debug(f"Unresolved forward reference {hint!r} treated as object")
        return TOP

    supertype = getattr(hint, '__supertype__', None)
    if supertype is not None:
        return _resolve(supertype, bindings)

    origin = get_origin(hint)
    args = get_args(hint)

    if origin is None:
        if isinstance(hint, type):
            return TypeDescriptor(hint, (TOP,) * classify_type(hint).arity)
        return TOP

    if origin is Annotated:
        return _resolve(args[0], bindings)
    if origin is ClassVar:
        return _resolve(args[0], bindings) if args else TOP
    if _is_union(origin):
        members = [arg for arg in args if arg is not type(None)]
        if len(members) == 1:
            return _resolve(members[0], bindings)
        return TOP
    if origin is Literal or not isinstance(origin, type):
        return TOP

    shape = classify_type(origin)
    if shape is Shape.ARRAY:
        return TypeDescriptor(origin, (_tuple_component(args, bindings),))
    if shape.arity:
        components = tuple(_resolve(arg, bindings) for arg in args[:shape.arity])
        components += (TOP,) * (shape.arity - len(components))
        return TypeDescriptor(origin, components)

    # Parameterized generic record: keep the parameterization as bindings
    parameters = getattr(origin, '__parameters__', ())
    pairs = []
    for parameter, arg in zip(parameters, args):
        if isinstance(arg, TypeVar) and arg in bindings:
            arg = bindings[arg]
        pairs.append((parameter, arg))
    return TypeDescriptor(origin, (), tuple(pairs))


def _tuple_component(args: Tuple[Any, ...], bindings: Dict[Any, Any]) -> TypeDescriptor:
    if not args or args == ((),):
        return TOP
    if len(args) == 2 and args[1] is Ellipsis:
        return _resolve(args[0], bindings)
    resolved = {_resolve(arg, bindings) for arg in args}
    if len(resolved) == 1:
        return resolved.pop()
    return TOP


# =============================================================================
# GENERIC BINDINGS
# =============================================================================

def type_bindings(cls: type) -> Dict[Any, Any]:
    """Collect TypeVar bindings fixed by a class's generic bases.

    ``class IntBox(Box[int])`` binds Box's ``T`` to ``int``. Chains through
    intermediate generic classes are kept as TypeVar -> TypeVar entries and
    followed at resolution time.
    """
    bindings: Dict[Any, Any] = {}
    for klass in reversed(getattr(cls, '__mro__', ())):
        for base in klass.__dict__.get('__orig_bases__', ()):
            origin = get_origin(base)
            parameters = getattr(origin, '__parameters__', ())
            for parameter, arg in zip(parameters, get_args(base)):
                bindings[parameter] = bindings.get(arg, arg) if isinstance(arg, TypeVar) else arg
    return bindings


def bindings_for(value: Any, declared: Optional[TypeDescriptor] = None) -> Dict[Any, Any]:
    """All TypeVar bindings known for a record value.

    Sources, weakest first: the runtime class's generic bases, the declared
    descriptor's parameterization, the instance's ``__orig_class__``.
    """
    bindings = type_bindings(type(value))
    if declared is not None:
        bindings.update(declared.bindings)
    orig_class = getattr(value, '__orig_class__', None)
    if orig_class is not None:
        origin = get_origin(orig_class)
        bindings.update(zip(getattr(origin, '__parameters__', ()), get_args(orig_class)))
    return bindings
