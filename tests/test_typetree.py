"""Tests for shapes, type descriptors, the hierarchy registry and the token cache."""
import collections
import collections.abc
import datetime
import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import (Annotated, Any, Dict, FrozenSet, Generic, List, NamedTuple, NewType,
                    Optional, Sequence, Set, Tuple, TypeVar, Union)

import pytest

from typetree import (
    TOP,
    CacheKey,
    HierarchyRegistry,
    Shape,
    TokenCache,
    TypeDescriptor,
    bindings_for,
    classify,
    classify_type,
    is_frozen,
    type_bindings,
    type_distance,
)

T = TypeVar('T')
U = TypeVar('U')


class Color(enum.Enum):
    RED = 1
    GREEN = 2


class Coordinates(NamedTuple):
    lat: float
    lon: float


@dataclass
class Box(Generic[T]):
    content: Optional[T] = None


class IntBox(Box[int]):
    pass


class Pair(Generic[T, U]):
    pass


class StrPair(Pair[str, U], Generic[U]):
    pass


UserId = NewType('UserId', int)


class Animal:
    pass


class Dog(Animal):
    pass


class Puppy(Dog):
    pass


class Cat(Animal):
    pass


class Swimmer:
    pass


class Otter(Animal, Swimmer):
    pass


class TestShapes:
    """Classification of runtime classes into traversal shapes."""

    @pytest.mark.parametrize("cls", [int, bool, float, complex, Decimal, str, bytes,
                                     datetime.date, datetime.datetime, Color, Coordinates])
    def test_leaves(self, cls):
        """Scalars, enums and named tuples are leaves."""
        assert classify_type(cls) is Shape.LEAF

    def test_containers(self):
        """Builtin and abstract containers map to their container shape."""
        assert classify_type(tuple) is Shape.ARRAY
        assert classify_type(list) is Shape.SEQUENCE
        assert classify_type(collections.deque) is Shape.SEQUENCE
        assert classify_type(collections.abc.Iterable) is Shape.SEQUENCE
        assert classify_type(set) is Shape.SET
        assert classify_type(frozenset) is Shape.SET
        assert classify_type(dict) is Shape.MAP
        assert classify_type(collections.OrderedDict) is Shape.MAP

    def test_records_and_null(self):
        """None is NULL and any other class is a record."""
        assert classify(None) is Shape.NULL
        assert classify(Animal()) is Shape.RECORD
        assert classify_type(object) is Shape.RECORD

    def test_shape_properties(self):
        """Arity and composite flags."""
        assert Shape.MAP.arity == 2
        assert Shape.SEQUENCE.arity == 1
        assert Shape.RECORD.arity == 0
        assert Shape.ARRAY.is_collection
        assert not Shape.MAP.is_collection
        assert Shape.RECORD.is_composite
        assert not Shape.LEAF.is_composite

    def test_frozen_containers(self):
        """Tuples and frozensets must be rebuilt instead of filled."""
        assert is_frozen(tuple)
        assert is_frozen(frozenset)
        assert not is_frozen(list)


class TestTypeDescriptor:
    """Resolution of typing hints into descriptor trees."""

    def test_plain_classes(self):
        """Plain classes get top components padded to their arity."""
        assert TypeDescriptor.of(int) == TypeDescriptor(int)
        assert TypeDescriptor.of(list) == TypeDescriptor(list, (TOP,))
        assert TypeDescriptor.of(dict) == TypeDescriptor(dict, (TOP, TOP))
        assert TypeDescriptor.of(Any) is TOP

    def test_nested_containers(self):
        """Nested generic containers resolve recursively."""
        descriptor = TypeDescriptor.of(Dict[str, List[Set[int]]])
        assert descriptor.raw_type is dict
        assert descriptor.key_type == TypeDescriptor(str)
        assert descriptor.value_type.raw_type is list
        assert descriptor.value_type.element_type == TypeDescriptor(set, (TypeDescriptor(int),))

    def test_builtin_generics(self):
        """PEP 585 generics resolve like their typing counterparts."""
        assert TypeDescriptor.of(list[int]) == TypeDescriptor.of(List[int])
        assert TypeDescriptor.of(frozenset[str]) == TypeDescriptor.of(FrozenSet[str])

    def test_tuples(self):
        """Variadic tuples keep their element type, heterogeneous ones widen to top."""
        assert TypeDescriptor.of(Tuple[int, ...]).element_type == TypeDescriptor(int)
        assert TypeDescriptor.of(Tuple[int, int]).element_type == TypeDescriptor(int)
        assert TypeDescriptor.of(Tuple[int, str]).element_type is TOP

    def test_unwrapping(self):
        """Optional, Annotated and NewType resolve to the wrapped type."""
        assert TypeDescriptor.of(Optional[int]) == TypeDescriptor(int)
        assert TypeDescriptor.of(Annotated[str, "label"]) == TypeDescriptor(str)
        assert TypeDescriptor.of(UserId) == TypeDescriptor(int)
        assert TypeDescriptor.of(Union[int, str]) is TOP

    def test_type_variables(self):
        """TypeVars resolve through bindings and otherwise widen to top."""
        assert TypeDescriptor.of(T) is TOP
        assert TypeDescriptor.of(List[T], {T: int}) == TypeDescriptor.of(List[int])

    def test_generic_record_bindings(self):
        """Parameterized generic records carry their bindings."""
        descriptor = TypeDescriptor.of(Box[int])
        assert descriptor.raw_type is Box
        assert dict(descriptor.bindings) == {T: int}

    def test_class_bindings(self):
        """Bindings fixed by generic bases are collected through the MRO."""
        assert type_bindings(IntBox)[T] is int
        bindings = type_bindings(StrPair)
        assert bindings[T] is str
        assert bindings[U] is U

    def test_bindings_for_instances(self):
        """Instances created from a parameterized alias keep their bindings."""
        box = Box[str]()
        assert TypeDescriptor.of_value(box).bindings == ((T, str),)
        assert bindings_for(box)[T] is str
        assert bindings_for(IntBox())[T] is int

    def test_format(self):
        """Descriptors render as readable type names."""
        assert str(TypeDescriptor.of(List[int])) == "list[int]"
        assert str(TypeDescriptor.of(Dict[str, Tuple[int, ...]])) == "dict[str, tuple[int, ...]]"
        assert TypeDescriptor.of(Animal).format(simple=False) == f"{__name__}.Animal"

    def test_with_raw_type(self):
        """Narrowing keeps components when the arity matches."""
        descriptor = TypeDescriptor.of(Sequence[int]).with_raw_type(list)
        assert descriptor == TypeDescriptor.of(List[int])
        assert TypeDescriptor.of(List[int]).with_raw_type(dict) == TypeDescriptor(dict, (TOP, TOP))


class TestHierarchyRegistry:
    """Nearest ancestor/descendant views over class-keyed registrations."""

    def setup_method(self):
        self.registry = HierarchyRegistry()
        self.registry.put(Animal, "animal")
        self.registry.put(Dog, "dog")

    def test_exact_access(self):
        """get/contains only consider exact keys."""
        assert self.registry.get(Dog) == "dog"
        assert self.registry.get(Puppy) is None
        assert Dog in self.registry
        assert len(self.registry) == 2

    def test_nearest_ancestors(self):
        """The most specific registered ancestor wins."""
        assert self.registry.nearest_ancestor_matches(Puppy) == ("dog",)
        assert self.registry.nearest_ancestor_matches(Cat) == ("animal",)
        assert self.registry.nearest_ancestor_matches(Swimmer) == ()
        assert self.registry.nearest_ancestor_match(Swimmer, "none") == "none"

    def test_nearest_descendants(self):
        """The most general registered descendant wins."""
        assert self.registry.nearest_descendants(object) == (Animal,)
        assert self.registry.nearest_descendants(Dog) == (Dog,)
        assert self.registry.nearest_descendants(Cat) == ()

    def test_unrelated_ties(self):
        """Equally specific unrelated ancestors are all returned."""
        registry = HierarchyRegistry({Animal: 1, Swimmer: 2})
        assert set(registry.nearest_ancestor_matches(Otter)) == {1, 2}

    def test_mutation_invalidates_views(self):
        """Views computed before a put/remove are not served afterwards."""
        assert self.registry.nearest_ancestor_matches(Puppy) == ("dog",)
        self.registry.put(Puppy, "puppy")
        assert self.registry.nearest_ancestor_matches(Puppy) == ("puppy",)
        self.registry.remove(Puppy)
        self.registry.remove(Dog)
        assert self.registry.nearest_ancestor_matches(Puppy) == ("animal",)

    def test_rejects_non_class_keys(self):
        """Only classes can be keys."""
        with pytest.raises(TypeError):
            self.registry.put(List[int], "list")


class TestTypeDistance:
    """Shortest base-class path between two classes."""

    def test_distances(self):
        assert type_distance(Dog, Dog) == 0
        assert type_distance(Animal, Puppy) == 2
        assert type_distance(object, Dog) == 2
        assert type_distance(Cat, Dog) == -1

    def test_virtual_subclass_ranks_last(self):
        """ABC registrations rank behind every real ancestor."""
        assert type_distance(collections.abc.Sequence, list) > type_distance(object, list)


class TestTokenCache:
    """Version-token invalidation."""

    def test_recomputes_after_token_change(self):
        token = [0]
        calls = []
        cache = TokenCache(lambda: token[0])

        def compute():
            calls.append(1)
            return len(calls)

        key = CacheKey.from_args('view', int)
        assert cache.get_or_compute(key, compute) == 1
        assert cache.get_or_compute(key, compute) == 1
        token[0] += 1
        assert cache.get_or_compute(key, compute) == 2

    def test_manual_invalidation(self):
        cache = TokenCache(lambda: 0)
        key = CacheKey.from_args('a')
        cache.get_or_compute(key, lambda: "first")
        cache.invalidate()
        assert cache.get_or_compute(key, lambda: "second") == "second"
