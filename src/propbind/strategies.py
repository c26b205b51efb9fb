"""Built-in strategies used by a :class:`~propbind.context.Context`.

Every behaviour the engine delegates to the context (turning raw values into
typed ones, naming properties, creating containers and enumerating map keys)
is a plain callable. This module holds the defaults plus the helpers that
combine a built-in strategy with a custom one.
"""

import re
from collections.abc import Collection, Iterable, MutableSequence, MutableSet, Sequence, Set
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from propbind.domain import TypeRef
from propbind.errors import BindingError, ConversionError

__all__ = [
    "Char",
    "DEFAULT_SIMPLE_TYPES",
    "DEFAULT_COLLECTION_TYPES",
    "MUTABLE_COUNTERPARTS",
    "default_type_converter",
    "default_collection_creator",
    "default_regular_property_name",
    "default_collection_element_property_name",
    "default_map_creator",
    "default_map_key_strategy",
    "chain_type_converters",
    "chain_collection_creators",
    "chain_map_key_strategies",
    "wrap_type_converter",
    "wrap_collection_creator",
    "derive_map_key_strategies",
]

TypeConverter = Callable[[Any, type], Any]
CollectionCreator = Callable[[type], Optional[Collection]]
MapKeyStrategy = Callable[[str, TypeRef], set[str]]
PropertyNameStrategy = Callable[[str, str], str]


class Char(str):
    """A string holding exactly one character.

    Declare a parameter as ``Char`` to have single-character values validated
    during conversion.
    """

    def __new__(cls, value: Any) -> "Char":
        value = str(value)
        if len(value) != 1:
            raise ValueError(f"expected a single character but got {len(value)}: '{value}'")
        return super().__new__(cls, value)


DEFAULT_SIMPLE_TYPES: frozenset = frozenset({bool, int, float, str, Char, Decimal, ZoneInfo})

DEFAULT_COLLECTION_TYPES: frozenset = frozenset(
    {list, set, tuple, frozenset, Sequence, MutableSequence, Set, MutableSet, Collection, Iterable}
)

MUTABLE_COUNTERPARTS: dict[type, type] = {tuple: list, frozenset: set}

_INTEGER = re.compile(r"[+-]?[0-9]+")
_REAL = re.compile(r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|NaN|Infinity)")

_NUMBER_PARSERS: dict[type, tuple[re.Pattern, Callable[[str], Any]]] = {
    int: (_INTEGER, int),
    float: (_REAL, float),
    Decimal: (_REAL, Decimal),
}

_INDEX = re.compile(r"[0-9]+")


def default_type_converter(raw: Any, target: type) -> Any:
    """Convert ``raw`` to ``target`` for the built-in simple types and enums.

    Returns:
        The converted value, or None if this converter doesn't handle ``target``.

    Raises:
        ConversionError: If ``target`` is handled but ``raw`` can't be parsed.
    """
    if isinstance(raw, target):
        return raw

    trimmed = str(raw).strip()

    if issubclass(target, Enum):
        return next((member for member in target if member.name == str(raw)), None)

    if target is bool:
        lowered = trimmed.lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        raise ConversionError(trimmed, target)

    if target is Char:
        if len(trimmed) != 1:
            raise ConversionError(trimmed, target)
        return Char(trimmed)

    if target in _NUMBER_PARSERS:
        pattern, parse = _NUMBER_PARSERS[target]
        if not pattern.fullmatch(trimmed):
            raise ConversionError(trimmed, target)
        try:
            return parse(trimmed)
        except (ValueError, ArithmeticError) as e:
            raise ConversionError(trimmed, target, str(e)) from e

    if target is str:
        return str(raw)

    if target is ZoneInfo:
        try:
            return ZoneInfo(trimmed)
        except (ZoneInfoNotFoundError, ValueError, OSError) as e:
            raise ConversionError(trimmed, target, str(e)) from e

    return None


def default_collection_creator(collection_type: type) -> Optional[Collection]:
    """Create an empty list or set, whichever satisfies ``collection_type``."""
    if issubclass(list, collection_type):
        return []
    if issubclass(set, collection_type):
        return set()
    return None


def default_regular_property_name(base: str, property_name: str) -> str:
    """Build ``base.property_name``, or just ``property_name`` for a blank base.

    Example:
        >>> default_regular_property_name("outer", "inner")   # "outer.inner"
        >>> default_regular_property_name("", "inner")        # "inner"
    """
    if not base.strip():
        return property_name
    return f"{base}.{property_name}"


def default_collection_element_property_name(base: str, index: int) -> str:
    return f"{base}[{index}]"


def default_map_creator() -> dict:
    return {}


def default_map_key_strategy(_property_name: str, key_type: TypeRef) -> set[str]:
    """Offer every member name for enum keys; nothing is known for other key types."""
    if key_type.is_enum:
        return {member.name for member in key_type.raw}
    return set()


def chain_type_converters(first: TypeConverter, second: TypeConverter) -> TypeConverter:
    def convert(raw: Any, target: type) -> Any:
        result = first(raw, target)
        if result is not None:
            return result
        return second(raw, target)

    return convert


def chain_collection_creators(first: CollectionCreator, second: CollectionCreator) -> CollectionCreator:
    def create(collection_type: type) -> Optional[Collection]:
        result = first(collection_type)
        if result is not None and isinstance(result, collection_type):
            return result
        return second(collection_type)

    return create


def chain_map_key_strategies(first: MapKeyStrategy, second: MapKeyStrategy) -> MapKeyStrategy:
    def keys(property_name: str, key_type: TypeRef) -> set[str]:
        return first(property_name, key_type) or second(property_name, key_type)

    return keys


def wrap_type_converter(converter: TypeConverter) -> TypeConverter:
    """Make ``converter`` strict: its result must be an instance of the target type.

    A converter declines by returning None (or anything that isn't an
    instance of the target). Then the raw value is used if it already has the
    target type, otherwise a ConversionError is raised.
    """

    def convert(raw: Any, target: type) -> Any:
        try:
            result = converter(raw, target)
        except ConversionError:
            raise
        except (ValueError, TypeError) as e:
            raise ConversionError(raw, target, str(e)) from e

        if result is not None and isinstance(result, target):
            return result
        if isinstance(raw, target):
            return raw
        raise ConversionError(raw, target)

    return convert


def wrap_collection_creator(creator: CollectionCreator) -> Callable[[type], Collection]:
    def create(collection_type: type) -> Collection:
        result = creator(collection_type)
        if result is None or not isinstance(result, collection_type):
            raise BindingError(
                f"Failed creating a collection of type '{collection_type.__qualname__}'"
            )
        return result

    return create


def derive_map_key_strategies(
    all_keys: Iterable[str],
) -> tuple[MapKeyStrategy, PropertyNameStrategy]:
    """Build a map key strategy and a map value naming strategy from known keys.

    Keys containing dots can be escaped with square brackets, e.g. the full key
    ``target.email[name.surname@example.com]`` yields the map key
    ``name.surname@example.com`` under ``target.email``. Numeric bracket
    segments are collection indices and never treated as keys.

    Args:
        all_keys: Every full property key known to the property source.

    Returns:
        A ``(map_key_strategy, map_value_property_name_strategy)`` pair.
    """
    known_keys = frozenset(all_keys)

    def map_keys(base: str, _key_type: TypeRef) -> set[str]:
        common_prefix = f"{base}."
        special_prefix = f"{base}["
        keys = set()
        for full_key in known_keys:
            if full_key.startswith(common_prefix):
                candidate = _next_segment(full_key, len(common_prefix))
                if candidate:
                    candidate = candidate.split("[", 1)[0]
            elif full_key.startswith(special_prefix):
                end = full_key.find("]", len(special_prefix))
                candidate = full_key[len(special_prefix):end] if end >= 0 else None
                if candidate and _INDEX.fullmatch(candidate):
                    candidate = None
            else:
                candidate = None
            if candidate:
                keys.add(candidate)
        return keys

    def map_value_property_name(base: str, key: str) -> str:
        if not base.strip():
            return key
        escaped = f"{base}[{key}]"
        if any(full_key.startswith(escaped) for full_key in known_keys):
            return escaped
        return f"{base}.{key}"

    return map_keys, map_value_property_name


def _next_segment(full_key: str, offset: int) -> Optional[str]:
    if offset >= len(full_key):
        return None
    end = full_key.find(".", offset)
    if end > 0:
        return full_key[offset:end]
    return full_key[offset:]
