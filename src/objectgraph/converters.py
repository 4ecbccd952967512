"""
Custom converter registry with a built-in scalar conversion layer.

Converters are keyed by (source type, target type) and called as
``converter(value, target_class)``. Lookup for a runtime source class and a
requested target class:

1. every nearest-ancestor source key of the source class, in order
2. within it, the nearest-descendant target keys of the requested class
   (a converter producing a subclass satisfies the request); failing that,
   the nearest-ancestor target keys (the converter receives the requested
   class and is expected to build it); this fallback is skipped when the
   source class already is the requested class or a subclass of it
3. when several target keys tie, prefer one the source class already
   belongs to

A registry may have a parent layer that is consulted when nothing local
matches. ``default_converters()`` returns the shared built-in layer that
converts between every numeric type, strings, booleans and enums.
"""

import logging
import numbers
from decimal import Decimal, InvalidOperation
from enum import Enum
from fractions import Fraction
from typing import Any, Callable, Optional, Tuple

from typetree.hierarchy import HierarchyRegistry, is_subtype

logger = logging.getLogger(__name__)

Converter = Callable[[Any, type], Any]


class ConverterRegistry:
    """Hierarchy-dispatched (source, target) -> converter table."""

    def __init__(self, parent: Optional['ConverterRegistry'] = None):
        self._by_source: HierarchyRegistry[HierarchyRegistry[Converter]] = HierarchyRegistry()
        self._parent = parent

    def register(self, source: type, target: type, converter: Converter) -> None:
        targets = self._by_source.get(source)
        if targets is None:
            targets = HierarchyRegistry()
            self._by_source.put(source, targets)
        targets.put(target, converter)

    def unregister(self, source: type, target: type) -> None:
        targets = self._by_source.get(source)
        if targets is not None:
            targets.remove(target)
            if not len(targets):
                self._by_source.remove(source)

    def find(self, source_class: type, target_class: type) -> Optional[Converter]:
        """Most specific converter for the pair, or None."""
        satisfied = is_subtype(source_class, target_class)
        for targets in self._by_source.nearest_ancestor_matches(source_class):
            keys = targets.nearest_descendants(target_class)
            if not keys and not satisfied:
                keys = targets.nearest_ancestors(target_class)
            if keys:
                return targets.get(_prefer(keys, source_class))
        if self._parent is not None:
            return self._parent.find(source_class, target_class)
        return None


def _prefer(keys: Tuple[type, ...], source_class: type) -> type:
    for key in keys:
        if is_subtype(source_class, key):
            return key
    return keys[0]


# =============================================================================
# BUILT-IN SCALAR CONVERSIONS
# =============================================================================

def _real(value: Any) -> Any:
    return value.real if isinstance(value, complex) else value


def _build(target: type, value: Any) -> Any:
    return value if type(value) is target else target(value)


def _parse_real(text: str) -> Any:
    """Parse decimal, fractional or complex text into a real number."""
    text = text.strip()
    try:
        return Fraction(text)
    except ValueError:
        pass
    return complex(text.replace(" ", "")).real


def _number_to_int(value: Any, target: type) -> Any:
    return _build(target, int(_real(value)))


def _number_to_float(value: Any, target: type) -> Any:
    return _build(target, float(_real(value)))


def _number_to_complex(value: Any, target: type) -> Any:
    if isinstance(value, complex):
        return _build(target, value)
    return _build(target, complex(float(value)))


def _number_to_decimal(value: Any, target: type) -> Any:
    value = _real(value)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, numbers.Integral):
        result = Decimal(int(value))
    elif isinstance(value, numbers.Rational):
        result = Decimal(value.numerator) / Decimal(value.denominator)
    else:
        result = Decimal(repr(float(value)))
    return _build(target, result)


def _number_to_fraction(value: Any, target: type) -> Any:
    return _build(target, Fraction(_real(value)))


def _number_to_bool(value: Any, target: type) -> bool:
    return value != 0


def _to_str(value: Any, target: type) -> Any:
    return _build(target, str(value))


def _str_to_decimal(value: str, target: type) -> Any:
    try:
        return _build(target, Decimal(value.strip()))
    except InvalidOperation:
        return _number_to_decimal(_parse_real(value), target)


def _str_to_complex(value: str, target: type) -> Any:
    try:
        return _build(target, complex(value.replace(" ", "")))
    except ValueError:
        return _number_to_complex(_parse_real(value), target)


_TRUE_WORDS = frozenset({"true", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "no", "off", ""})


def _str_to_bool(value: str, target: type) -> bool:
    word = value.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    return _parse_real(word) != 0


def _enum_to_str(value: Enum, target: type) -> Any:
    return _build(target, value.name)


def _str_to_enum(value: str, target: type) -> Enum:
    return target[value.strip()]


def _from_text(number_converter: Converter) -> Converter:
    def convert(value: str, target: type) -> Any:
        return number_converter(_parse_real(value), target)
    return convert


_NUMBER_TARGETS = (
    (int, _number_to_int),
    (float, _number_to_float),
    (complex, _number_to_complex),
    (Decimal, _number_to_decimal),
    (Fraction, _number_to_fraction),
    (bool, _number_to_bool),
)

_default_layer: Optional[ConverterRegistry] = None


def default_converters() -> ConverterRegistry:
    """Shared built-in conversion layer (numbers, strings, booleans, enums)."""
    global _default_layer
    if _default_layer is None:
        layer = ConverterRegistry()
        # Enum first so IntEnum/StrEnum members render by name
        layer.register(Enum, str, _enum_to_str)
        for target, converter in _NUMBER_TARGETS:
            layer.register(numbers.Number, target, converter)
        layer.register(numbers.Number, str, _to_str)
        layer.register(str, int, _from_text(_number_to_int))
        layer.register(str, float, _from_text(_number_to_float))
        layer.register(str, Fraction, _from_text(_number_to_fraction))
        layer.register(str, Decimal, _str_to_decimal)
        layer.register(str, complex, _str_to_complex)
        layer.register(str, bool, _str_to_bool)
        layer.register(str, Enum, _str_to_enum)
        _default_layer = layer
    return _default_layer
