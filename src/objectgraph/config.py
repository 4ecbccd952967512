"""
Engine configuration and thread-local defaults.

``GraphConfig`` holds the behavioral switches shared by all walkers and a
nested ``DumpFormat`` for the dumper's text layout. Both are frozen
dataclasses; derive variants with ``dataclasses.replace`` or a walker's
``configure(**changes)``.

Walkers created without an explicit config pick up the current default
from thread-local storage:

    set_default_config(GraphConfig(fail_fast=True))
    cloner = Cloner()          # fail-fast
    reset_default_config()
"""

import threading
from dataclasses import dataclass, field
from typing import Optional, Tuple

DelimiterPair = Tuple[str, str]


@dataclass(frozen=True)
class DumpFormat:
    """Text layout of dumps."""
    include_id: bool = True
    include_name: bool = True
    include_declared_type: bool = True
    include_actual_type: bool = True
    use_simple_names: bool = True
    indentation: str = ".  "
    line_separator: str = "\n"
    max_depth: int = 10
    array_delimiters: DelimiterPair = ("[", "]")
    collection_delimiters: DelimiterPair = ("(", ")")
    map_delimiters: DelimiterPair = ("{", "}")
    record_delimiters: DelimiterPair = ("<", ">")
    unknown_token: str = "???"
    truncated_token: str = "..."
    reference_token: str = "@@@"
    null_token: str = "None"


@dataclass(frozen=True)
class GraphConfig:
    """Behavior shared by cloner, initializer, dumper and path proxy.

    Attributes:
        fail_fast: Re-raise the first per-node failure instead of logging it
        recursion_limit: Max nesting of the same declared type while initializing
        composite_size: Fan-out of initialized sequences/maps; None defers to
            the leaf value provider
        prefix_strings: Prefix initialized string properties with their name
        dump: Text layout used by the dumper
    """
    fail_fast: bool = False
    recursion_limit: int = 3
    composite_size: Optional[int] = None
    prefix_strings: bool = True
    dump: DumpFormat = field(default_factory=DumpFormat)


_DEFAULT_CONFIG = GraphConfig()

# Thread-local storage for the process-wide default config
_default_config_context = threading.local()


def set_default_config(config: GraphConfig) -> None:
    """Set the config used by walkers created without one on this thread."""
    _default_config_context.value = config


def get_default_config() -> GraphConfig:
    """Current default config for this thread."""
    return getattr(_default_config_context, 'value', None) or _DEFAULT_CONFIG


def reset_default_config() -> None:
    """Forget any default set on this thread."""
    if hasattr(_default_config_context, 'value'):
        del _default_config_context.value
