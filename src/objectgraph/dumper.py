"""
Canonical, human-readable rendering of object graphs.

Every node renders as one line prefix followed by its body:

    <indent>[id ][name ][declared type ][actual type ]<body>

Leaves render as text, composites as a delimited block with one child per
line, indented one level deeper. Maps render each entry as a key line and
a value line, with a blank indented line between entries.

- Reference cycles: nodes currently being rendered are kept on an identity
  stack; meeting one again renders the back-reference token instead of
  recursing.
- Synthetic ids: assigned on first encounter and kept for the whole dump,
  so a value reached twice through separate branches shows the same id.
- ``max_depth`` truncates deeper composites with the truncation token.
- An accessor that raises renders as the unknown token.
- Sets render their children sorted by rendered text so output does not
  depend on hash order; sequences and dicts keep iteration order.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from typetree.descriptors import TypeDescriptor, bindings_for, type_name
from typetree.hierarchy import HierarchyRegistry
from typetree.shapes import Shape

from objectgraph.config import DumpFormat
from objectgraph.walker import GraphWalker

logger = logging.getLogger(__name__)

CustomDumper = Callable[[Any], str]

_LINE_BREAK = re.compile(r"(\r\n|\n|\r)")


class _Unknown:
    """Stands in for a value whose accessor raised."""


_UNKNOWN = _Unknown()


@dataclass
class _DumpContext:
    """Identity bookkeeping of one dump call."""
    ids: Dict[int, Tuple[int, Any]] = field(default_factory=dict)
    open_nodes: Dict[int, Any] = field(default_factory=dict)

    def id_of(self, value: Any) -> int:
        entry = self.ids.get(id(value))
        if entry is None:
            # Keep the value alive so its id() cannot be reused mid-dump
            entry = (len(self.ids), value)
            self.ids[id(value)] = entry
        return entry[0]


class Dumper(GraphWalker):
    """Renders values to deterministic, diffable text."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.custom_dumpers: HierarchyRegistry[CustomDumper] = HierarchyRegistry()

    def add_dumper(self, cls: type, dumper: CustomDumper) -> None:
        """Render values of ``cls`` (and subclasses) as ``dumper(value)``."""
        self.custom_dumpers.put(cls, dumper)

    def remove_dumper(self, cls: type) -> None:
        self.custom_dumpers.remove(cls)

    @property
    def format(self) -> DumpFormat:
        return self.config.dump

    def configure_format(self, **changes) -> 'Dumper':
        """Replace dump layout fields, e.g. ``dumper.configure_format(include_id=False)``."""
        return self.configure(dump=replace(self.config.dump, **changes))

    # =========================================================================
    # Public API
    # =========================================================================

    def dump(self, value: Any, declared_type: Any = None) -> str:
        context = _DumpContext()
        descriptor = TypeDescriptor.of(declared_type) if declared_type is not None else None
        return self._dump(context, value, descriptor, "", 0, "")

    # =========================================================================
    # Traversal
    # =========================================================================

    def _dump(self, context: _DumpContext, value: Any, declared: Optional[TypeDescriptor],
              name: str, depth: int, indentation: str) -> str:
        fmt = self.format
        parts: List[str] = []
        if fmt.include_id:
            parts.append(str(context.id_of(value)))
        if fmt.include_name and name:
            parts.append(name)
        if fmt.include_declared_type and declared is not None:
            parts.append(declared.format(fmt.use_simple_names))
        if fmt.include_actual_type and value is not None:
            parts.append(fmt.unknown_token if value is _UNKNOWN
                         else type_name(type(value), fmt.use_simple_names))
        prefix = indentation + "".join(part + " " for part in parts)

        if value is _UNKNOWN:
            return prefix + fmt.unknown_token
        if id(value) in context.open_nodes:
            return prefix + fmt.reference_token

        context.open_nodes[id(value)] = value
        try:
            return prefix + self._dump_body(context, value, declared, depth, indentation)
        finally:
            del context.open_nodes[id(value)]

    def _dump_body(self, context: _DumpContext, value: Any, declared: Optional[TypeDescriptor],
                   depth: int, indentation: str) -> str:
        fmt = self.format
        if value is None:
            return fmt.null_token

        custom = self.custom_dumpers.nearest_ancestor_match(type(value))
        if custom is not None:
            return _LINE_BREAK.sub(lambda match: match.group(1) + indentation, custom(value))

        shape = self.shape_of(type(value))
        if shape is Shape.LEAF:
            return _format_leaf(value)

        declared = declared if declared is not None else TypeDescriptor.of_value(value)
        if shape is Shape.ARRAY:
            return self._dump_items(context, value, declared, depth, indentation, fmt.array_delimiters, False)
        if shape is Shape.SEQUENCE:
            return self._dump_items(context, value, declared, depth, indentation, fmt.collection_delimiters, False)
        if shape is Shape.SET:
            return self._dump_items(context, value, declared, depth, indentation, fmt.collection_delimiters, True)
        if shape is Shape.MAP:
            return self._dump_map(context, value, declared, depth, indentation)
        return self._dump_record(context, value, declared, depth, indentation)

    def _block(self, lines: List[str], indentation: str, delimiters: Tuple[str, str]) -> str:
        fmt = self.format
        begin, end = delimiters
        if not lines:
            return begin + end
        body = "".join(line + fmt.line_separator for line in lines)
        return begin + fmt.line_separator + body + indentation + end

    def _dump_items(self, context: _DumpContext, items: Any, declared: TypeDescriptor, depth: int,
                    indentation: str, delimiters: Tuple[str, str], unordered: bool) -> str:
        if depth == self.format.max_depth:
            return delimiters[0] + self.format.truncated_token + delimiters[1]
        nested = indentation + self.format.indentation
        lines = [self._dump(context, item, declared.element_type, "", depth + 1, nested) for item in items]
        if unordered:
            lines.sort()
        return self._block(lines, indentation, delimiters)

    def _dump_map(self, context: _DumpContext, mapping: Any, declared: TypeDescriptor,
                  depth: int, indentation: str) -> str:
        fmt = self.format
        if depth == fmt.max_depth:
            return fmt.map_delimiters[0] + fmt.truncated_token + fmt.map_delimiters[1]
        nested = indentation + fmt.indentation
        entries = [
            self._dump(context, key, declared.key_type, "", depth + 1, nested) + fmt.line_separator
            + self._dump(context, value, declared.value_type, "", depth + 1, nested)
            for key, value in mapping.items()
        ]
        # A blank indented line separates entries
        lines = []
        for index, entry in enumerate(entries):
            if index:
                lines.append(nested)
            lines.append(entry)
        return self._block(lines, indentation, fmt.map_delimiters)

    def _dump_record(self, context: _DumpContext, record: Any, declared: TypeDescriptor,
                     depth: int, indentation: str) -> str:
        fmt = self.format
        if depth == fmt.max_depth:
            return fmt.record_delimiters[0] + fmt.truncated_token + fmt.record_delimiters[1]
        cls = type(record)
        nested = indentation + fmt.indentation
        bindings = bindings_for(record, declared)
        lines = []
        for name, prop in self.property_model.describe(cls).items():
            if self.is_excluded(cls, name):
                continue
            try:
                value = prop.read(record)
            except Exception as exc:
                logger.debug(f"Rendering unreadable property {name} of class {type_name(cls)}: {exc}")
                value = _UNKNOWN
            lines.append(self._dump(context, value, prop.resolve_type(bindings), name, depth + 1, nested))
        return self._block(lines, indentation, fmt.record_delimiters)


def _format_leaf(value: Any) -> str:
    if isinstance(value, Enum):
        return value.name
    return str(value)
