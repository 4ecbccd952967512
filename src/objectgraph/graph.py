"""One-stop facade over the four graph walkers."""

from typing import Any, Optional

from objectgraph.cloner import Cloner
from objectgraph.config import GraphConfig, get_default_config
from objectgraph.converters import Converter
from objectgraph.dumper import CustomDumper, Dumper
from objectgraph.initializer import CustomInitializer, Initializer
from objectgraph.properties import PropertyModel
from objectgraph.providers import (BasicImplementationResolver, BasicLeafValueProvider,
                                   ImplementationResolver, LeafValueProvider)
from objectgraph.proxy import PathProxy
from objectgraph.selectors import PathLike, SelectorParser
from objectgraph.walker import PropertyFilter


class ObjectGraph:
    """Owns one cloner, initializer, dumper and path proxy sharing collaborators.

    The walkers share the property model, leaf value provider and
    implementation resolver. Property filters and immutable registrations
    made through the facade apply to all four walkers; converters,
    initializers and dumpers go to the walker that uses them.

    Example:
        >>> graph = ObjectGraph()
        >>> order = graph.initialize(Order)
        >>> copy = graph.clone(order)
        >>> graph.dump(copy) == graph.dump(order)
        True
    """

    def __init__(self,
                 config: Optional[GraphConfig] = None,
                 leaf_provider: Optional[LeafValueProvider] = None,
                 implementation_resolver: Optional[ImplementationResolver] = None,
                 property_model: Optional[PropertyModel] = None,
                 path_parser: Optional[SelectorParser] = None):
        config = config or get_default_config()
        shared = dict(
            config=config,
            leaf_provider=leaf_provider or BasicLeafValueProvider(),
            implementation_resolver=implementation_resolver or BasicImplementationResolver(),
            property_model=property_model or PropertyModel(),
        )
        self.cloner = Cloner(**shared)
        self.initializer = Initializer(**shared)
        self.dumper = Dumper(**shared)
        self.proxy = PathProxy(parser=path_parser, **shared)

    @property
    def walkers(self):
        return (self.cloner, self.initializer, self.dumper, self.proxy)

    @property
    def property_model(self) -> PropertyModel:
        return self.cloner.property_model

    def configure(self, **changes) -> 'ObjectGraph':
        """Apply config changes to every walker."""
        for walker in self.walkers:
            walker.configure(**changes)
        return self

    # =========================================================================
    # Registrations
    # =========================================================================

    def add_property_filter(self, cls: type, exclude: PropertyFilter) -> None:
        for walker in self.walkers:
            walker.add_property_filter(cls, exclude)

    def remove_property_filter(self, cls: type) -> None:
        for walker in self.walkers:
            walker.remove_property_filter(cls)

    def register_immutable(self, cls: type) -> None:
        for walker in self.walkers:
            walker.register_immutable(cls)

    def add_converter(self, source: type, target: type, converter: Converter) -> None:
        self.cloner.add_converter(source, target, converter)

    def add_initializer(self, cls: type, initializer: CustomInitializer) -> None:
        self.initializer.add_initializer(cls, initializer)

    def add_dumper(self, cls: type, dumper: CustomDumper) -> None:
        self.dumper.add_dumper(cls, dumper)

    # =========================================================================
    # Operations
    # =========================================================================

    def clone(self, source: Any, target_type: Any = None) -> Any:
        return self.cloner.clone(source, target_type)

    def clone_into(self, source: Any, target: Any) -> Any:
        return self.cloner.clone_into(source, target)

    def initialize(self, target: Any, declared_type: Any = None) -> Any:
        return self.initializer.initialize(target, declared_type)

    def dump(self, value: Any, declared_type: Any = None) -> str:
        return self.dumper.dump(value, declared_type)

    def evaluate(self, root: Any, path: PathLike, root_type: Any = None) -> Any:
        return self.proxy.evaluate(root, path, root_type)

    def assign(self, root: Any, path: PathLike, value: Any, root_type: Any = None) -> Any:
        return self.proxy.assign(root, path, value, root_type)
