"""Tests for record property discovery and mutator selection."""
import functools
from dataclasses import dataclass, field
from typing import ClassVar, List, Optional

import pytest

from objectgraph import AccessFailure, Mutator, PropertyModel, edit_distance
from typetree import TypeDescriptor


@dataclass
class Base:
    a: int = 0
    b: str = ""


@dataclass
class Derived(Base):
    b: Optional[str] = None
    c: List[int] = field(default_factory=list)
    counter: ClassVar[int] = 0
    _hidden: int = 0


@dataclass(frozen=True)
class FrozenPoint:
    x: int = 0
    y: int = 0


class Annotated:
    label: str
    size: int = 3


class Accessors:
    """Record exposing get_/is_/set_ methods and a property."""

    def __init__(self):
        self._name = ""
        self._active = False
        self._weight = 0.0

    def get_name(self) -> str:
        return self._name

    def set_name(self, value: str) -> None:
        self._name = value

    def is_active(self) -> bool:
        return self._active

    def set_active(self, value: bool) -> None:
        self._active = value

    @property
    def weight(self) -> float:
        return self._weight

    @weight.setter
    def weight(self, value: float) -> None:
        self._weight = value

    @property
    def description(self) -> str:
        return f"{self._name}:{self._weight}"

    def compute(self, factor: int) -> int:
        return factor


class Overloaded:
    def __init__(self):
        self.received = None

    def get_value(self) -> object:
        return self.received

    @functools.singledispatchmethod
    def set_value(self, value):
        self.received = ('object', value)

    @set_value.register
    def _(self, value: int):
        self.received = ('int', value)

    @set_value.register
    def _(self, value: str):
        self.received = ('str', value)


class Legacy:
    def __init__(self):
        self.raw = {}


class Animal:
    pass


class Dog(Animal):
    pass


class Cat(Animal):
    pass


@dataclass
class Point:
    x: int = 0
    y: int = 0


@dataclass
class Point3:
    x: int = 0
    y: int = 0
    z: int = 0


@dataclass
class Label:
    text: str = ""


class Widget:
    pass


class Widgets:
    pass


class Gadget:
    pass


def _mutator(hint):
    return Mutator(lambda obj, value: None, hint)


class TestDiscovery:
    """Discovery strategies and inheritance."""

    def setup_method(self):
        self.model = PropertyModel()

    def test_dataclass_fields_in_mro_order(self):
        """Inherited fields come first; overrides keep their position."""
        properties = self.model.describe(Derived)
        assert list(properties) == ['a', 'b', 'c']
        assert properties['b'].declared_type == TypeDescriptor(str)
        assert properties['c'].declared_type == TypeDescriptor.of(List[int])

    def test_read_and_write_fields(self):
        record = Derived()
        prop = self.model.describe(Derived)['a']
        prop.mutators[0].write(record, 5)
        assert prop.read(record) == 5

    def test_frozen_dataclass_is_writable(self):
        """Frozen dataclass fields are written through object.__setattr__."""
        point = FrozenPoint()
        self.model.describe(FrozenPoint)['x'].mutators[0].write(point, 4)
        assert point.x == 4

    def test_plain_annotations(self):
        """Plain class annotations become attribute properties."""
        properties = self.model.describe(Annotated)
        assert list(properties) == ['label', 'size']
        assert properties['label'].read(Annotated()) is None

    def test_accessor_methods_and_properties(self):
        """get_/is_/set_ pairs and property objects are discovered."""
        properties = self.model.describe(Accessors)
        assert set(properties) == {'name', 'active', 'weight', 'description'}
        assert properties['active'].declared_type == TypeDescriptor(bool)
        assert properties['weight'].writable
        assert not properties['description'].writable

        record = Accessors()
        properties['name'].mutators[0].write(record, "rex")
        assert record.get_name() == "rex"

    def test_singledispatch_mutators(self):
        """Each registered overload becomes one candidate mutator."""
        prop = self.model.describe(Overloaded)['value']
        assert {mutator.param_type.raw_type for mutator in prop.mutators} == {int, str}

        record = Overloaded()
        chosen = self.model.select_mutator(TypeDescriptor(str), prop.mutators)
        chosen.write(record, "x")
        assert record.received == ('str', "x")

    def test_registered_property(self):
        """Explicit registration adds properties to otherwise opaque classes."""
        self.model.register_property(
            Legacy, 'code',
            lambda obj: obj.raw.get('code'),
            lambda obj, value: obj.raw.__setitem__('code', value),
            hint=int,
        )
        record = Legacy()
        prop = self.model.describe(Legacy)['code']
        prop.mutators[0].write(record, 7)
        assert record.raw == {'code': 7}
        assert prop.read(record) == 7
        assert prop.mutators[0].param_type == TypeDescriptor(int)

    def test_registered_property_replaces_discovered(self):
        """A registered property overrides the discovered one of the same name."""
        self.model.register_property(Base, 'a', 'b')
        record = Base(a=1, b="one")
        prop = self.model.describe(Derived)['a']
        assert prop.read(record) == "one"
        assert prop.mutators == ()

    def test_non_records_have_no_property_names(self):
        assert self.model.property_names(list) == ()
        assert self.model.property_names(Point) == ('x', 'y')

    def test_failing_accessor_raises_access_failure(self):
        class Broken:
            @property
            def value(self) -> int:
                raise RuntimeError("boom")

        with pytest.raises(AccessFailure):
            self.model.describe(Broken)['value'].read(Broken())


class TestMutatorSelection:
    """Exact, assignable, structural and name-based mutator selection."""

    def setup_method(self):
        self.model = PropertyModel()

    def test_no_candidates(self):
        assert self.model.select_mutator(TypeDescriptor(int), ()) is None

    def test_exact_match_wins(self):
        """An exact parameter type beats an equally assignable one."""
        loose, exact = _mutator(List[str]), _mutator(List[int])
        assert self.model.select_mutator(TypeDescriptor.of(List[int]), [loose, exact]) is exact

    def test_nearest_assignable(self):
        """The closest ancestor parameter type wins."""
        general, closer, unrelated = _mutator(object), _mutator(Animal), _mutator(Cat)
        assert self.model.select_mutator(TypeDescriptor(Dog), [general, unrelated, closer]) is closer

    def test_structural_similarity(self):
        """Without assignable candidates, shared property names decide."""
        point3, label = _mutator(Point3), _mutator(Label)
        assert self.model.select_mutator(TypeDescriptor(Point), [label, point3]) is point3

    def test_edit_distance_last_resort(self):
        """Without shared properties, the closest type name wins."""
        gadget, widgets = _mutator(Gadget), _mutator(Widgets)
        assert self.model.select_mutator(TypeDescriptor(Widget), [gadget, widgets]) is widgets


def test_edit_distance():
    assert edit_distance("kitten", "sitting") == 3
    assert edit_distance("", "abc") == 3
    assert edit_distance("same", "same") == 0
