"""Tests for the converter registry and the built-in scalar conversions."""
import enum
from decimal import Decimal
from fractions import Fraction

import pytest

from objectgraph import Cloner, ConverterRegistry, default_converters


class Animal(enum.Enum):
    CAT = 1
    DOG = 2


class Priority(enum.IntEnum):
    LOW = 1
    HIGH = 2


class Shape:
    pass


class Square(Shape):
    pass


class TestConverterRegistry:
    """Lookup rules of the (source, target) converter table."""

    def test_source_dispatch_by_nearest_ancestor(self):
        registry = ConverterRegistry()
        registry.register(Shape, str, lambda value, target: "shape")
        registry.register(Square, str, lambda value, target: "square")
        assert registry.find(Square, str)(Square(), str) == "square"
        assert registry.find(Shape, str)(Shape(), str) == "shape"
        assert registry.find(int, str) is None

    def test_target_falls_back_to_ancestor_keys(self):
        """A converter registered for a base target also serves subclasses."""
        registry = ConverterRegistry()
        registry.register(str, Shape, lambda value, target: target())
        converter = registry.find(str, Square)
        assert isinstance(converter("x", Square), Square)

    def test_no_ancestor_fallback_when_source_satisfies_target(self):
        """Values already of the requested class are not rebuilt."""
        registry = ConverterRegistry()
        registry.register(object, Shape, lambda value, target: target())
        assert registry.find(Square, Square) is None
        assert registry.find(str, Square) is not None
        assert default_converters().find(Animal, Animal) is None
        assert default_converters().find(Priority, Priority) is None

    def test_parent_layer(self):
        """Local registrations shadow the parent, which is consulted otherwise."""
        parent = ConverterRegistry()
        parent.register(int, str, lambda value, target: "parent")
        child = ConverterRegistry(parent=parent)
        assert child.find(int, str)(1, str) == "parent"
        child.register(int, str, lambda value, target: "child")
        assert child.find(int, str)(1, str) == "child"
        child.unregister(int, str)
        assert child.find(int, str)(1, str) == "parent"

    def test_default_layer_is_shared(self):
        assert default_converters() is default_converters()


class TestScalarConversions:
    """Cross conversions between numbers, strings, booleans and enums."""

    def setup_method(self):
        self.cloner = Cloner()

    @pytest.mark.parametrize("value", [0, 0.0, Decimal(0), Fraction(0), 0j])
    def test_falsy_numbers(self, value):
        assert self.cloner.clone(value, bool) is False

    @pytest.mark.parametrize("value", [1, 2, Decimal("0.3"), 0.1, Fraction(1, 5)])
    def test_truthy_numbers(self, value):
        assert self.cloner.clone(value, bool) is True

    def test_numeric_targets(self):
        assert self.cloner.clone(7, float) == 7.0
        assert self.cloner.clone(7.9, int) == 7
        assert self.cloner.clone(0.5, Decimal) == Decimal("0.5")
        assert self.cloner.clone(Decimal("0.25"), Fraction) == Fraction(1, 4)
        assert self.cloner.clone(3, complex) == complex(3, 0)
        assert self.cloner.clone(complex(4, 2), int) == 4

    def test_strings(self):
        assert self.cloner.clone(12, str) == "12"
        assert self.cloner.clone("12", int) == 12
        assert self.cloner.clone("2.5", float) == 2.5
        assert self.cloner.clone("1/4", Fraction) == Fraction(1, 4)
        assert self.cloner.clone("(3+0j)", int) == 3
        assert self.cloner.clone("0.1", Decimal) == Decimal("0.1")

    def test_string_to_bool(self):
        assert self.cloner.clone("yes", bool) is True
        assert self.cloner.clone("False", bool) is False
        assert self.cloner.clone("0", bool) is False
        assert self.cloner.clone("2", bool) is True

    def test_enum_by_name(self):
        assert self.cloner.clone(Animal.CAT, str) == "CAT"
        assert self.cloner.clone("DOG", Animal) is Animal.DOG

    def test_int_enum_by_value(self):
        assert self.cloner.clone(2, Priority) is Priority.HIGH
        assert self.cloner.clone(Priority.LOW, str) == "LOW"

    def test_user_converter_overrides_builtin(self):
        self.cloner.add_converter(int, str, lambda value, target: f"#{value}")
        assert self.cloner.clone(5, str) == "#5"
        self.cloner.remove_converter(int, str)
        assert self.cloner.clone(5, str) == "5"

    def test_unparseable_text_raises(self):
        with pytest.raises(ValueError):
            self.cloner.clone("not a number", int)
