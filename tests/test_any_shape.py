from dataclasses import dataclass
from typing import Any, Optional

import pytest

from propbind.context import Context
from propbind.creator import Creator
from propbind.errors import MissingValueError


@dataclass
class Target:
    data: Any


@pytest.fixture
def make():
    creator = Creator()

    def do_create(target: type, data: dict[str, Any], keys=("one", "two", "three"), depth=5):
        context = (
            Context.builder(data.get)
            .with_map_key_strategy(lambda _name, _type: set(keys))
            .with_map_discovery_depth(depth)
            .build()
        )
        return creator.create("", target, context)

    return do_create


def test_scalar_is_picked_up_as_any(make):
    assert make(Target, {"data": 5}) == Target(5)


def test_map_is_picked_up_as_any(make):
    assert make(Target, {"data.one": "1", "data.two": "2"}) == Target({"one": "1", "two": "2"})


def test_nested_maps_are_picked_up_as_any(make):
    actual = make(
        Target,
        {
            "data.one": "1",
            "data.two.one": "2",
            "data.two.two": "3",
            "data.three.one.one": "4",
            "data.three.one.two": "5",
            "data.three.two": "6",
        },
    )
    assert actual == Target(
        {
            "one": "1",
            "two": {"one": "2", "two": "3"},
            "three": {"one": {"one": "4", "two": "5"}, "two": "6"},
        }
    )


def test_list_is_picked_up_as_any(make):
    assert make(Target, {"data[0]": "1", "data[1]": "2"}) == Target(["1", "2"])


def test_list_of_maps_is_picked_up_as_any(make):
    actual = make(Target, {"data[0].one": "1", "data[0].two": "2", "data[1]": "3"})
    assert actual == Target([{"one": "1", "two": "2"}, "3"])


def test_map_of_lists_is_picked_up_as_any(make):
    actual = make(
        Target,
        {"data.one[0].one": "1", "data.one[0].two": "2", "data.one[1]": "3", "data.two": "4"},
    )
    assert actual == Target({"one": [{"one": "1", "two": "2"}, "3"], "two": "4"})


def test_map_with_list_value_is_picked_up_as_any(make):
    assert make(Target, {"data.one[0]": "1", "data.one[1]": "2"}) == Target({"one": ["1", "2"]})


def test_map_of_any_values_keeps_raw_values(make):
    @dataclass
    class Holder:
        data: dict[str, Any]

    actual = make(Holder, {"data.key1": "value1", "data.key2": 2}, keys=("key1", "key2"))
    assert actual.data == {"key1": "value1", "key2": 2}


def test_absent_values_of_nullable_any_map_are_not_propagated(make):
    @dataclass
    class Holder:
        data: dict[str, Optional[Any]]

    actual = make(Holder, {"data.key1": "value1"}, keys=("key1", "key2"))
    assert actual.data == {"key1": "value1"}


def test_nested_maps_and_lists_are_picked_up_in_typed_map(make):
    @dataclass
    class Holder:
        parameters: dict[str, Any]

    actual = make(
        Holder,
        {
            "parameters.map1.list1[0].When.Or[0].value1": "ABC",
            "parameters.map1.list1[0].When.Or[1].value1": "XYZ",
            "parameters.map1.list1[0].Then": "123456",
        },
        keys=("map1", "list1", "When", "Then", "Or", "value1"),
        depth=3,
    )
    assert actual == Holder(
        {
            "map1": {
                "list1": [
                    {
                        "When": {"Or": [{"value1": "ABC"}, {"value1": "XYZ"}]},
                        "Then": "123456",
                    }
                ]
            }
        }
    )


def test_absent_required_any_is_reported(make):
    with pytest.raises(MissingValueError, match="no value found for property 'data'"):
        make(Target, {})


def test_absent_nullable_any_is_none(make):
    @dataclass
    class Holder:
        data: Optional[Any]

    assert make(Holder, {}) == Holder(None)


def test_map_discovery_depth_bounds_probing():
    data = {"data.one.one.one": "1"}
    creator = Creator()

    def context(depth: int) -> Context:
        return (
            Context.builder(data.get)
            .with_map_key_strategy(lambda _name, _type: {"one"})
            .with_map_discovery_depth(depth)
            .build()
        )

    assert creator.create("", Target, context(5)) == Target({"one": {"one": {"one": "1"}}})
    with pytest.raises(MissingValueError, match="no value found for property 'data'"):
        creator.create("", Target, context(2))


def test_keys_derived_from_known_properties_drive_any_maps():
    data = {
        "data.server.host": "localhost",
        "data.server.port": "80",
        "data.email[first.last@example.com]": "admin",
    }
    context = Context.builder(data.get).with_map_keys(data).build()

    actual = Creator().create("", Target, context)

    assert actual == Target(
        {
            "server": {"host": "localhost", "port": "80"},
            "email": {"first.last@example.com": "admin"},
        }
    )
