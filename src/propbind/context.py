"""The instantiation context: property lookup plus pluggable strategies.

A :class:`Context` is built once per binding configuration through
:class:`ContextBuilder` and reused across any number of ``create`` calls.
It is immutable. The two flags that bias retrieval during a single call
(``tolerate_empty_collection`` and ``has_mandatory_parameter``) are carried
by derived copies handed down the recursion, so concurrent ``create`` calls
never observe each other's scopes.
"""

from collections.abc import Collection, Iterable, Mapping, MutableMapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Optional

from propbind import strategies
from propbind.domain import Shape, TypeRef

__all__ = ["PropertySource", "Context", "ContextBuilder", "LookupTracker"]

PropertySource = Callable[[str], Any]
"""Looks up the raw value stored under a full property name, None if absent."""


class LookupTracker:
    """Counts lookups that found a value within one scope and its enclosing scopes."""

    def __init__(self, parent: Optional["LookupTracker"] = None):
        self.hits = 0
        self._parent = parent

    def record(self):
        tracker = self
        while tracker is not None:
            tracker.hits += 1
            tracker = tracker._parent


@dataclass(frozen=True)
class Context:
    """Facade over a property source and the strategies used to bind it.

    Attributes:
        property_source: Raw value lookup by full property name.
        simple_types: Types retrieved by direct lookup and conversion. Subclasses
            of these types are simple too.
        collection_types: Types populated by probing indexed element properties.
        map_discovery_depth: How deep ``Any`` values are probed for map or
            collection structure.
        tolerate_empty_collection: Whether a collection with no elements is an
            acceptable outcome in the current scope, rather than "no data".
        has_mandatory_parameter: Whether the variant currently being built has a
            parameter that is neither optional nor nullable.
    """

    property_source: PropertySource
    type_converter: Callable[[Any, type], Any]
    regular_property_name_strategy: Callable[[str, str], str]
    collection_creator: Callable[[type], Collection]
    collection_element_property_name_strategy: Callable[[str, int], str]
    simple_types: frozenset
    collection_types: frozenset
    map_creator: Callable[[], MutableMapping]
    map_key_strategy: Callable[[str, TypeRef], set[str]]
    map_value_property_name_strategy: Callable[[str, str], str]
    map_discovery_depth: int = 5
    tolerate_empty_collection: bool = True
    has_mandatory_parameter: bool = False
    lookup_tracker: Optional[LookupTracker] = field(default=None, compare=False, repr=False)

    @staticmethod
    def builder(property_source: PropertySource) -> "ContextBuilder":
        """Start configuring a context reading from ``property_source``.

        Example:
            >>> properties = {"server.port": "8080"}
            >>> context = Context.builder(properties.get).build()
        """
        return ContextBuilder(property_source)

    def with_tolerate_empty_collection(self, value: bool) -> "Context":
        return replace(self, tolerate_empty_collection=value)

    def with_mandatory_parameter(self, value: bool) -> "Context":
        return replace(self, has_mandatory_parameter=value)

    def tracking_lookups(self) -> tuple["Context", LookupTracker]:
        """Derive a context counting the successful lookups made through it."""
        tracker = LookupTracker(self.lookup_tracker)
        return replace(self, lookup_tracker=tracker), tracker

    def is_simple_type(self, cls: type) -> bool:
        return any(issubclass(cls, simple_type) for simple_type in self.simple_types)

    def is_collection(self, cls: type) -> bool:
        return cls in self.collection_types

    def is_map(self, cls: type) -> bool:
        return issubclass(cls, Mapping)

    def classify(self, type_ref: TypeRef) -> Shape:
        raw = type_ref.raw
        if raw is Any or raw is object:
            return Shape.ANY
        if not isinstance(raw, type):
            return Shape.UNSUPPORTED
        if issubclass(raw, Enum):
            return Shape.ENUM
        if self.is_simple_type(raw):
            return Shape.SCALAR
        if self.is_collection(raw):
            if raw is tuple and type_ref.args and type_ref.args[-1].raw is not Ellipsis:
                return Shape.UNSUPPORTED
            return Shape.COLLECTION
        if self.is_map(raw):
            return Shape.MAP
        return Shape.COMPOSITE

    def lookup(self, property_name: str) -> Any:
        value = self.property_source(property_name)
        if value is not None and self.lookup_tracker is not None:
            self.lookup_tracker.record()
        return value

    def convert(self, raw: Any, target: Any) -> Any:
        """Convert ``raw`` to ``target``.

        Raises:
            ConversionError: If no strategy accepts the value and it isn't
                already an instance of ``target``.
        """
        if target is Any:
            target = object
        return self.type_converter(raw, target)

    def create_collection(self, collection_type: type) -> Collection:
        """Create an empty mutable collection to fill with ``collection_type`` elements.

        Immutable types such as ``tuple`` get their mutable counterpart; the
        caller converts the filled collection afterwards.
        """
        mutable_type = strategies.MUTABLE_COUNTERPARTS.get(collection_type, collection_type)
        return self.collection_creator(mutable_type)

    def create_map(self) -> MutableMapping:
        return self.map_creator()

    def map_keys(self, property_name: str, key_type: TypeRef) -> set[str]:
        return self.map_key_strategy(property_name, key_type)

    def regular_property_name(self, base: str, property_name: str) -> str:
        return self.regular_property_name_strategy(base, property_name)

    def collection_element_property_name(self, base: str, index: int) -> str:
        return self.collection_element_property_name_strategy(base, index)

    def map_value_property_name(self, base: str, key: str) -> str:
        return self.map_value_property_name_strategy(base, key)


class ContextBuilder:
    """Configure the strategies of a :class:`Context`.

    Strategies taking a ``replace`` flag are additive by default: the built-in
    behaviour is tried first and the custom strategy is the fallback. Passing
    ``replace=True`` discards the built-in behaviour altogether.
    """

    def __init__(self, property_source: PropertySource):
        self._property_source = property_source
        self._simple_types = set(strategies.DEFAULT_SIMPLE_TYPES)
        self._collection_types = set(strategies.DEFAULT_COLLECTION_TYPES)
        self._type_converter = strategies.default_type_converter
        self._collection_creator = strategies.default_collection_creator
        self._regular_property_name_strategy = strategies.default_regular_property_name
        self._collection_element_property_name_strategy = (
            strategies.default_collection_element_property_name
        )
        self._map_creator = strategies.default_map_creator
        self._map_key_strategy = strategies.default_map_key_strategy
        self._map_value_property_name_strategy = strategies.default_regular_property_name
        self._map_discovery_depth = 5

    def with_simple_types(self, types: Iterable[type], replace: bool = False) -> "ContextBuilder":
        if replace:
            self._simple_types.clear()
        self._simple_types.update(types)
        return self

    def with_collection_types(self, types: Iterable[type], replace: bool = False) -> "ContextBuilder":
        if replace:
            self._collection_types.clear()
        self._collection_types.update(types)
        return self

    def with_type_converter(
        self, converter: Callable[[Any, type], Any], replace: bool = False
    ) -> "ContextBuilder":
        """Set the strategy converting raw values to declared types.

        Args:
            converter: Called with the raw value and the target class. Returns
                the converted value, or None to decline.
            replace: Use ``converter`` alone instead of as a fallback.
        """
        if replace:
            self._type_converter = converter
        else:
            self._type_converter = strategies.chain_type_converters(
                self._type_converter, converter
            )
        return self

    def with_collection_creator(
        self, creator: Callable[[type], Optional[Collection]], replace: bool = False
    ) -> "ContextBuilder":
        """Set the strategy creating empty collections of a declared collection type.

        Args:
            creator: Returns a new empty mutable collection, or None if it
                doesn't know the requested type.
            replace: Use ``creator`` alone instead of as a fallback.
        """
        if replace:
            self._collection_creator = creator
        else:
            self._collection_creator = strategies.chain_collection_creators(
                self._collection_creator, creator
            )
        return self

    def with_regular_property_name_strategy(
        self, strategy: Callable[[str, str], str]
    ) -> "ContextBuilder":
        self._regular_property_name_strategy = strategy
        return self

    def with_collection_element_property_name_strategy(
        self, strategy: Callable[[str, int], str]
    ) -> "ContextBuilder":
        self._collection_element_property_name_strategy = strategy
        return self

    def with_map_creator(self, creator: Callable[[], MutableMapping]) -> "ContextBuilder":
        self._map_creator = creator
        return self

    def with_map_key_strategy(
        self, strategy: Callable[[str, TypeRef], set[str]], replace: bool = False
    ) -> "ContextBuilder":
        """Set the strategy listing candidate keys for a map property.

        Args:
            strategy: Called with the map's property name and key type; returns
                the keys to try. An empty set means no keys are known.
            replace: Use ``strategy`` alone. Otherwise it's consulted only when
                the current strategy returns no keys.
        """
        if replace:
            self._map_key_strategy = strategy
        else:
            self._map_key_strategy = strategies.chain_map_key_strategies(
                self._map_key_strategy, strategy
            )
        return self

    def with_map_value_property_name_strategy(
        self, strategy: Callable[[str, str], str]
    ) -> "ContextBuilder":
        self._map_value_property_name_strategy = strategy
        return self

    def with_map_keys(self, all_keys: Iterable[str]) -> "ContextBuilder":
        """Derive map keys and map value names from every known property key.

        Keys containing dots may be escaped in square brackets:
        ``target.email[name.surname@example.com]``.
        """
        key_strategy, value_name_strategy = strategies.derive_map_key_strategies(all_keys)
        self.with_map_key_strategy(key_strategy)
        self.with_map_value_property_name_strategy(value_name_strategy)
        return self

    def with_map_discovery_depth(self, depth: int) -> "ContextBuilder":
        if depth < 0:
            raise ValueError(f"map discovery depth must not be negative, got {depth}")
        self._map_discovery_depth = depth
        return self

    def build(self) -> Context:
        return Context(
            property_source=self._property_source,
            type_converter=strategies.wrap_type_converter(self._type_converter),
            regular_property_name_strategy=self._regular_property_name_strategy,
            collection_creator=strategies.wrap_collection_creator(self._collection_creator),
            collection_element_property_name_strategy=(
                self._collection_element_property_name_strategy
            ),
            simple_types=frozenset(self._simple_types),
            collection_types=frozenset(self._collection_types),
            map_creator=self._map_creator,
            map_key_strategy=self._map_key_strategy,
            map_value_property_name_strategy=self._map_value_property_name_strategy,
            map_discovery_depth=self._map_discovery_depth,
        )
