from dataclasses import dataclass

import pytest

from propbind.context import Context
from propbind.events import ConfigChangedEvent, ConfigEventManager, RefreshConfigsEvent
from propbind.provider import ConfigProviderFactory, config_prefix


@dataclass(frozen=True)
class Config1:
    data1: str


@dataclass(frozen=True)
class Config2:
    data2: str


@dataclass(frozen=True)
class Config3:
    data3: str


@config_prefix("server")
@dataclass(frozen=True)
class ServerConfig:
    host: str
    port: int = 8080


class RecordingEventManager(ConfigEventManager):
    def __init__(self):
        super().__init__()
        self.fired_events = []

    def fire(self, event):
        self.fired_events.append(event)
        super().fire(event)


@pytest.fixture
def data() -> dict:
    return {}


@pytest.fixture
def event_manager() -> RecordingEventManager:
    return RecordingEventManager()


@pytest.fixture
def factory(data, event_manager) -> ConfigProviderFactory:
    return ConfigProviderFactory(Context.builder(data.get).build(), event_manager)


def test_config_prefix_is_used_by_default(data, factory):
    data["server.host"] = "localhost"

    assert factory.build(ServerConfig).data == ServerConfig("localhost", 8080)


def test_explicit_prefix_overrides_declared_one(data, factory):
    data["backup.host"] = "remote"

    assert factory.build(ServerConfig, prefix="backup").data.host == "remote"


def test_data_is_cached(data, factory):
    data["data1"] = "first"
    provider = factory.build(Config1)
    assert provider.data.data1 == "first"

    data["data1"] = "second"
    assert provider.data.data1 == "first"


def test_derived_config_is_cached(data, factory):
    data["data1"] = "first"
    provider = factory.build_derived(Config1, lambda raw: Config2(raw.data1))
    assert provider.data.data2 == "first"

    data["data1"] = "second"
    assert provider.data.data2 == "first"


def test_probe_shows_actual_data(data, factory):
    data["data1"] = "first"
    provider = factory.build_derived(Config1, lambda raw: Config2(raw.data1))
    assert provider.data.data2 == "first"

    data["data1"] = "second"
    assert provider.probe().data2 == "second"
    assert provider.data.data2 == "first"


def test_refresh_replaces_cached_data(data, factory):
    data["data1"] = "first"
    provider = factory.build_derived(Config1, lambda raw: Config2(raw.data1))
    assert provider.data.data2 == "first"

    data["data1"] = "second"
    provider.refresh()
    assert provider.data.data2 == "second"


def test_change_event_is_fired_on_change(data, factory, event_manager):
    data["data1"] = "1"
    provider = factory.build_derived(
        Config1, lambda raw: Config2(raw.data1 + str(int(raw.data1) + 1))
    )
    assert provider.data.data2 == "12"

    data["data1"] = "2"
    provider.refresh()

    assert event_manager.fired_events == [ConfigChangedEvent(Config2("12"), Config2("23"))]


def test_no_event_is_fired_without_change(data, factory, event_manager):
    data["data1"] = "1"
    provider = factory.build(Config1)
    assert provider.data == Config1("1")

    provider.refresh()

    assert event_manager.fired_events == []


def test_refresh_event_refreshes_every_provider(data, factory, event_manager):
    data["data1"] = "1"
    provider = factory.build(Config1)
    assert provider.data == Config1("1")

    data["data1"] = "2"
    event_manager.fire(RefreshConfigsEvent())

    assert provider.data == Config1("2")
    assert ConfigChangedEvent(Config1("1"), Config1("2")) in event_manager.fired_events


def test_composite_is_built_from_underlying_providers(data, factory):
    data["data1"] = "1"
    provider1 = factory.build_derived(
        Config1, lambda raw: Config2(raw.data1 + str(int(raw.data1) + 1))
    )
    provider2 = factory.build_composite(
        [provider1],
        lambda source: Config3(
            source.get(Config2).data2 + str(int(source.get(Config2).data2) + 1)
        ),
    )

    data["data1"] = "2"
    provider1.refresh()

    assert provider2.data.data3 == "2324"


def test_composite_refreshes_when_underlying_config_changes(data, factory):
    data["data1"] = "1"
    provider1 = factory.build(Config1)
    provider2 = factory.build_composite(
        [provider1], lambda source: Config3(source.get(Config1).data1 * 2)
    )
    assert provider2.data == Config3("11")

    data["data1"] = "2"
    provider1.refresh()

    assert provider2.data == Config3("22")


def test_composite_reports_unknown_class(data, factory):
    data["data1"] = "1"
    provider = factory.build_composite(
        [factory.build(Config1)], lambda source: source.get(Config2)
    )

    with pytest.raises(LookupError, match="available: Config1"):
        provider.probe()
