from collections import deque
from collections.abc import Iterable, MutableSequence, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

import pytest

from propbind.context import Context
from propbind.domain import ANY_TYPE, STRING_TYPE, Shape, TypeRef
from propbind.errors import BindingError, ConversionError
from propbind.strategies import Char, derive_map_key_strategies


class Color(Enum):
    RED = "r"
    GREEN = "g"


@dataclass
class Point:
    x: int
    y: int


@pytest.fixture
def context() -> Context:
    return Context.builder({}.get).build()


@pytest.mark.parametrize(
    "declared, shape",
    [
        (Any, Shape.ANY),
        (object, Shape.ANY),
        (int, Shape.SCALAR),
        (Char, Shape.SCALAR),
        (Decimal, Shape.SCALAR),
        (Color, Shape.ENUM),
        (list[int], Shape.COLLECTION),
        (Sequence[str], Shape.COLLECTION),
        (set[int], Shape.COLLECTION),
        (tuple[int, ...], Shape.COLLECTION),
        (frozenset[str], Shape.COLLECTION),
        (tuple[int, str], Shape.UNSUPPORTED),
        (dict[str, int], Shape.MAP),
        (Point, Shape.COMPOSITE),
        (Optional[Point], Shape.COMPOSITE),
    ],
)
def test_classify(context, declared, shape):
    assert context.classify(TypeRef.of(declared)) is shape


def test_custom_collection_type_is_not_a_collection_by_default(context):
    assert not context.is_collection(deque)


def test_derived_context_leaves_original_untouched(context):
    strict = context.with_tolerate_empty_collection(False).with_mandatory_parameter(True)

    assert context.tolerate_empty_collection
    assert not context.has_mandatory_parameter
    assert not strict.tolerate_empty_collection
    assert strict.has_mandatory_parameter


def test_lookups_are_tracked_in_enclosing_scopes():
    context = Context.builder({"a": "1"}.get).build()
    outer, outer_tracker = context.tracking_lookups()
    inner, inner_tracker = outer.tracking_lookups()

    inner.lookup("a")
    inner.lookup("b")
    outer.lookup("a")

    assert inner_tracker.hits == 1
    assert outer_tracker.hits == 2


@pytest.mark.parametrize(
    "raw, target, expected",
    [
        ("TRUE", bool, True),
        ("GREEN", Color, Color.GREEN),
        (" 7 ", int, 7),
        ("-1.5e3", float, -1500.0),
        ("+.5", Decimal, Decimal("0.5")),
        ("x", Char, "x"),
        (3, Any, 3),
    ],
)
def test_convert(context, raw, target, expected):
    assert context.convert(raw, target) == expected


def test_convert_rejects_enum_value_instead_of_name(context):
    with pytest.raises(ConversionError, match="Color"):
        context.convert("g", Color)


def test_custom_converter_is_a_fallback():
    calls = []

    def converter(raw, target):
        calls.append(target)
        return Point(*map(int, str(raw).split(","))) if target is Point else None

    context = Context.builder({}.get).with_type_converter(converter).build()

    assert context.convert("1", int) == 1
    assert context.convert("1,2", Point) == Point(1, 2)
    assert calls == [Point]


@pytest.mark.parametrize(
    "raw, target",
    [
        ("1_000", int),
        ("\u0661\u0662", int),
        ("0x10", int),
        ("1_0.5", float),
        ("inf", float),
        ("1,5", Decimal),
    ],
)
def test_convert_accepts_plain_ascii_numbers_only(context, raw, target):
    with pytest.raises(ConversionError, match="can't convert value"):
        context.convert(raw, target)


def test_replacing_converter_drops_built_in_conversion():
    context = Context.builder({}.get).with_type_converter(lambda raw, target: None, replace=True).build()

    with pytest.raises(ConversionError):
        context.convert("1", int)


def test_value_error_raised_by_custom_converter_is_a_conversion_error():
    def converter(raw, target):
        raise ValueError("boom")

    context = Context.builder({}.get).with_type_converter(converter, replace=True).build()

    with pytest.raises(ConversionError, match="boom"):
        context.convert("1", int)


@pytest.mark.parametrize(
    "declared, expected",
    [
        (list, list),
        (MutableSequence, list),
        (Iterable, list),
        (set, set),
        (tuple, list),
        (frozenset, set),
    ],
)
def test_default_collection_creator(context, declared, expected):
    created = context.create_collection(declared)

    assert type(created) is expected
    assert not created


def test_unknown_collection_type_is_reported(context):
    with pytest.raises(BindingError, match="Failed creating a collection of type 'deque'"):
        context.create_collection(deque)


def test_custom_collection_creator_is_a_fallback():
    context = Context.builder({}.get).with_collection_creator(lambda cls: deque()).build()

    assert type(context.create_collection(list)) is list
    assert type(context.create_collection(deque)) is deque


def test_default_naming(context):
    assert context.regular_property_name("", "port") == "port"
    assert context.regular_property_name("server", "port") == "server.port"
    assert context.collection_element_property_name("hosts", 2) == "hosts[2]"
    assert context.map_value_property_name("limits", "cpu") == "limits.cpu"


def test_default_map_keys(context):
    assert context.map_keys("colors", TypeRef.of(Color)) == {"RED", "GREEN"}
    assert context.map_keys("colors", STRING_TYPE) == set()


def test_custom_map_key_strategy_is_used_when_default_has_no_keys():
    context = Context.builder({}.get).with_map_key_strategy(lambda name, key_type: {"custom"}).build()

    assert context.map_keys("colors", TypeRef.of(Color)) == {"RED", "GREEN"}
    assert context.map_keys("names", STRING_TYPE) == {"custom"}


def test_negative_map_discovery_depth_is_rejected():
    with pytest.raises(ValueError):
        Context.builder({}.get).with_map_discovery_depth(-1)


def test_derived_map_keys():
    map_keys, value_name = derive_map_key_strategies(
        [
            "limits.cpu",
            "limits.memory.max",
            "hosts[0]",
            "hosts[1].name",
            "emails[first.last@example.com]",
            "emails.admin[0]",
        ]
    )

    assert map_keys("limits", ANY_TYPE) == {"cpu", "memory"}
    assert map_keys("hosts", ANY_TYPE) == set()
    assert map_keys("emails", ANY_TYPE) == {"first.last@example.com", "admin"}
    assert value_name("emails", "first.last@example.com") == "emails[first.last@example.com]"
    assert value_name("emails", "admin") == "emails.admin"
    assert value_name("", "limits") == "limits"
