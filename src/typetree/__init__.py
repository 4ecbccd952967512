"""
Type-level infrastructure for object graph traversal.

Modules:
    - shapes: the leaf/array/sequence/set/map/record taxonomy
    - descriptors: TypeDescriptor trees resolved from typing hints
    - hierarchy: class-keyed registry with nearest ancestor/descendant views
    - token_cache: version-token invalidated memo cache
"""

from typetree.shapes import Shape, LEAF_TYPES, classify, classify_type, is_frozen, is_named_tuple
from typetree.descriptors import (
    TOP,
    TypeDescriptor,
    bindings_for,
    clear_descriptor_cache,
    type_bindings,
    type_name,
)
from typetree.hierarchy import HierarchyRegistry, clear_distance_cache, is_subtype, type_distance
from typetree.token_cache import CacheKey, TokenCache

__all__ = [
    'Shape',
    'LEAF_TYPES',
    'classify',
    'classify_type',
    'is_frozen',
    'is_named_tuple',
    'TOP',
    'TypeDescriptor',
    'bindings_for',
    'clear_descriptor_cache',
    'type_bindings',
    'type_name',
    'HierarchyRegistry',
    'clear_distance_cache',
    'is_subtype',
    'type_distance',
    'CacheKey',
    'TokenCache',
]
