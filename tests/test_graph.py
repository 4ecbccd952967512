"""Tests for the ObjectGraph facade, defaults and end-to-end round trips."""
import enum
from dataclasses import dataclass, field
from decimal import Decimal
from fractions import Fraction
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from objectgraph import (
    Cloner,
    DumpFormat,
    Dumper,
    GraphConfig,
    ObjectGraph,
    get_default_config,
    set_default_config,
)


class Level(enum.Enum):
    LOW = 1
    HIGH = 2


@dataclass
class Address:
    street: str = ""
    number: int = 0


@dataclass
class Customer:
    name: str = ""
    level: Level = Level.LOW
    address: Optional[Address] = None
    tags: Set[str] = field(default_factory=set)
    history: List[Tuple[int, ...]] = field(default_factory=list)
    balances: Dict[str, Decimal] = field(default_factory=dict)
    codes: FrozenSet[int] = frozenset()


@dataclass
class Order:
    customer: Optional[Customer] = None
    lines: List[Address] = field(default_factory=list)
    quantities: Dict[int, List[float]] = field(default_factory=dict)


@dataclass
class ArrayBean:
    items: Tuple[Address, ...] = ()
    numbers: Tuple[int, ...] = ()


@dataclass
class ListBean:
    items: List[Address] = field(default_factory=list)
    numbers: List[int] = field(default_factory=list)


PLAIN = DumpFormat(
    include_id=False, include_name=False,
    include_declared_type=False, include_actual_type=False,
    indentation=" ", line_separator="",
)

NUMERIC_TYPES = [int, float, Decimal, Fraction, complex, str]

json_like = st.recursive(
    st.none() | st.booleans() | st.integers() | st.text(max_size=5),
    lambda children: st.lists(children, max_size=4) | st.dictionaries(st.text(max_size=3), children, max_size=4),
    max_leaves=20,
)


class TestFacade:
    """ObjectGraph wiring."""

    def setup_method(self):
        self.graph = ObjectGraph(GraphConfig(dump=PLAIN))

    def test_initialize_clone_dump_round_trip(self):
        order = self.graph.initialize(Order)
        copy = self.graph.clone(order)
        assert copy is not order
        assert copy == order
        assert self.graph.dump(copy) == self.graph.dump(order)

    def test_cross_shape_round_trip(self):
        """Array-typed and sequence-typed records copy into each other losslessly."""
        self.graph.dumper.configure_format(collection_delimiters=("[", "]"))
        source = self.graph.initialize(ArrayBean)
        as_lists = self.graph.clone(source, ListBean)
        assert self.graph.dump(as_lists) == self.graph.dump(source)
        assert self.graph.dump(self.graph.clone(as_lists, ArrayBean)) == self.graph.dump(source)

    def test_filters_apply_to_every_walker(self):
        self.graph.add_property_filter(Address, lambda name: name == "number")
        address = self.graph.initialize(Address)
        assert address.number == 0
        address.number = 5
        assert self.graph.clone(address).number == 0
        assert self.graph.dump(address) == "< street_1>"

    def test_path_access(self):
        order = self.graph.assign(Order(), ".lines[+].street", "Main")
        assert self.graph.evaluate(order, ".lines[0].street") == "Main"
        self.graph.assign(order, ".quantities[2][+]", 1.5)
        assert order.quantities == {2: [1.5]}

    def test_configure_applies_to_all_walkers(self):
        self.graph.configure(fail_fast=True)
        assert all(walker.config.fail_fast for walker in self.graph.walkers)

    def test_shared_property_model(self):
        assert self.graph.cloner.property_model is self.graph.dumper.property_model


class TestDefaultConfig:
    """Thread-local defaults."""

    def test_walkers_pick_up_default(self):
        set_default_config(GraphConfig(recursion_limit=1))
        assert Cloner().config.recursion_limit == 1
        assert ObjectGraph().initializer.config.recursion_limit == 1

    def test_default_is_restored_between_tests(self):
        assert get_default_config() == GraphConfig()


class TestProperties:
    """Property-based checks."""

    def setup_method(self):
        self.cloner = Cloner()
        self.dumper = Dumper(GraphConfig(dump=PLAIN))

    @given(
        value=st.integers(min_value=-10 ** 6, max_value=10 ** 6),
        chain=st.lists(st.sampled_from(NUMERIC_TYPES), max_size=12),
    )
    @settings(max_examples=60, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_numeric_fidelity(self, value, chain):
        """Integral values survive any chain of numeric and string conversions."""
        current = value
        for target in chain:
            current = self.cloner.clone(current, target)
        assert self.cloner.clone(current, int) == value

    @given(value=json_like)
    @settings(max_examples=60, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_clone_preserves_dump(self, value):
        copy = self.cloner.clone(value)
        assert self.dumper.dump(copy) == self.dumper.dump(value)

    @given(value=st.booleans())
    @settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_bool_round_trip_through_text(self, value):
        assert self.cloner.clone(self.cloner.clone(value, str), bool) is value


@pytest.mark.parametrize("target", NUMERIC_TYPES)
def test_zero_is_falsy_in_every_numeric_type(target):
    cloner = Cloner()
    assert cloner.clone(cloner.clone(0, target), bool) is False
