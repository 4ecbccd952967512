"""
Type-directed operations over arbitrary object graphs.

Four walkers share one traversal model (shapes, type descriptors, a
property model for records and hierarchy-dispatched registrations):

- Cloner: deep copy, optionally into a related target type, with
  converters between numbers, strings, booleans and enums
- Initializer: deterministic population with generated values, bounded
  on self-referential types
- Dumper: canonical text rendering with cycle markers and stable ids
- PathProxy: read and write through path expressions such as
  ``.items[+][3][key].name``, growing containers on demand

Quick Start:
    >>> from objectgraph import ObjectGraph
    >>> graph = ObjectGraph()
    >>> order = graph.initialize(Order)
    >>> draft = graph.clone(order, DraftOrder)
    >>> graph.assign(draft, ".lines[+].quantity", 3)
    >>> print(graph.dump(draft))

Modules:
    - config: GraphConfig/DumpFormat and thread-local defaults
    - errors: error kinds
    - properties: record property discovery and mutator selection
    - providers: leaf value provider and implementation resolver
    - converters: scalar conversion layer and converter registry
    - walker: shared walker base
    - cloner, initializer, dumper, proxy: the four walkers
    - selectors: path expression parsing
    - graph: the ObjectGraph facade
"""

from objectgraph.config import (
    DumpFormat,
    GraphConfig,
    get_default_config,
    reset_default_config,
    set_default_config,
)
from objectgraph.errors import (
    AccessFailure,
    IndexOutOfRange,
    InstantiationFailure,
    InvalidPathSyntax,
    MissingProperty,
    ObjectGraphError,
    ShapeMismatch,
)
from objectgraph.properties import Mutator, PropertyDescriptor, PropertyModel, edit_distance
from objectgraph.providers import (
    BasicImplementationResolver,
    BasicLeafValueProvider,
    ImplementationResolver,
    LeafValueProvider,
)
from objectgraph.converters import ConverterRegistry, default_converters
from objectgraph.walker import GraphWalker, is_abstract
from objectgraph.cloner import Cloner
from objectgraph.initializer import SKIP, Initializer
from objectgraph.dumper import Dumper
from objectgraph.selectors import Selector, SelectorKind, SelectorParser, format_path, parse_path
from objectgraph.proxy import PathProxy
from objectgraph.graph import ObjectGraph

__all__ = [
    # Configuration
    'DumpFormat',
    'GraphConfig',
    'get_default_config',
    'reset_default_config',
    'set_default_config',
    # Errors
    'AccessFailure',
    'IndexOutOfRange',
    'InstantiationFailure',
    'InvalidPathSyntax',
    'MissingProperty',
    'ObjectGraphError',
    'ShapeMismatch',
    # Records
    'Mutator',
    'PropertyDescriptor',
    'PropertyModel',
    'edit_distance',
    # Collaborators
    'BasicImplementationResolver',
    'BasicLeafValueProvider',
    'ImplementationResolver',
    'LeafValueProvider',
    'ConverterRegistry',
    'default_converters',
    # Walkers
    'GraphWalker',
    'is_abstract',
    'Cloner',
    'SKIP',
    'Initializer',
    'Dumper',
    'Selector',
    'SelectorKind',
    'SelectorParser',
    'format_path',
    'parse_path',
    'PathProxy',
    'ObjectGraph',
]
