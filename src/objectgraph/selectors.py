"""
Path expressions addressing values inside nested composites.

Grammar, tokens concatenated without separators:

    .name     property of a record
    [7]       index into a sequence or array (or key of a map)
    [-]       last index
    [+]       append index (one past the end)
    [text]    map key, given as literal text

Example: ``.items[+][10][xbar].child[0]``
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Union

from objectgraph.errors import InvalidPathSyntax


class SelectorKind(Enum):
    PROPERTY = 'property'
    INDEX = 'index'
    LAST_INDEX = 'last_index'
    APPEND_INDEX = 'append_index'
    KEY = 'key'


@dataclass(frozen=True)
class Selector:
    """One addressing step; ``literal`` is the property name, index digits or key text."""
    kind: SelectorKind
    literal: str = ''

    @property
    def index(self) -> int:
        return int(self.literal)

    @property
    def is_positional(self) -> bool:
        return self.kind in (SelectorKind.INDEX, SelectorKind.LAST_INDEX, SelectorKind.APPEND_INDEX)

    def __str__(self) -> str:
        if self.kind is SelectorKind.PROPERTY:
            return f".{self.literal}"
        if self.kind is SelectorKind.LAST_INDEX:
            return "[-]"
        if self.kind is SelectorKind.APPEND_INDEX:
            return "[+]"
        return f"[{self.literal}]"


# Tried in order; the generic key pattern must come last
_PATTERNS = (
    (re.compile(r"\.(\w+)"), SelectorKind.PROPERTY),
    (re.compile(r"\[-\]"), SelectorKind.LAST_INDEX),
    (re.compile(r"\[\+\]"), SelectorKind.APPEND_INDEX),
    (re.compile(r"\[(0|[1-9][0-9]*)\]"), SelectorKind.INDEX),
    (re.compile(r"\[(.*?)\]"), SelectorKind.KEY),
)


class SelectorParser:
    """Splits path text into selectors by greedy prefix matching."""

    def parse(self, path: str) -> List[Selector]:
        selectors = []
        position = 0
        while position < len(path):
            for pattern, kind in _PATTERNS:
                match = pattern.match(path, position)
                if match:
                    literal = match.group(1) if pattern.groups else ''
                    selectors.append(Selector(kind, literal))
                    position = match.end()
                    break
            else:
                raise InvalidPathSyntax(f"Invalid path subexpression: {path[position:]}.")
        return selectors


_parser = SelectorParser()

PathLike = Union[str, Sequence[Selector]]


def parse_path(path: PathLike, parser: Optional[SelectorParser] = None) -> List[Selector]:
    """Parse path text; selector sequences are returned as a list unchanged."""
    if isinstance(path, str):
        return (parser or _parser).parse(path)
    return list(path)


def format_path(selectors: Iterable[Selector]) -> str:
    return "".join(str(selector) for selector in selectors)
