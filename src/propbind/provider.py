"""Cached access to bound configuration objects, refreshed on demand.

A :class:`ConfigProvider` wraps a bound configuration class: ``data`` returns
the cached instance (created on first access), ``probe()`` binds a fresh one
without touching the cache and ``refresh()`` swaps the cache when the fresh
value differs, announcing the change through a :class:`ConfigEventManager`.

Example:
    @config_prefix("server")
    @dataclass(frozen=True)
    class ServerConfig:
        host: str
        port: int = 8080

    factory = ConfigProviderFactory(context, ConfigEventManager())
    provider = factory.build(ServerConfig)
    provider.data.port
"""

import logging
from typing import Any, Callable, Iterable, Optional

from propbind.context import Context
from propbind.creator import Creator
from propbind.events import ConfigChangedEvent, ConfigEvent, ConfigEventManager, RefreshConfigsEvent

__all__ = ["config_prefix", "ConfigProvider", "ConfigProviderFactory", "Source"]

logger = logging.getLogger(__name__)

_PREFIX_ATTRIBUTE = "__config_prefix__"
_MISSING = object()


def config_prefix(prefix: str) -> Callable[[type], type]:
    """Class decorator recording the property prefix a config class is bound from."""

    def decorator(cls: type) -> type:
        setattr(cls, _PREFIX_ATTRIBUTE, prefix)
        return cls

    return decorator


class ConfigProvider:
    """Caches the latest value produced by ``probe``.

    Args:
        probe: Produces a fresh value on every call.
        event_manager: Receives a :class:`ConfigChangedEvent` whenever
            :meth:`refresh` detects a change.
        description: Used in log messages.
        depends_on: Tells whether a change announced by another provider
            affects this one. Such changes trigger a refresh.
    """

    def __init__(
        self,
        probe: Callable[[], Any],
        event_manager: ConfigEventManager,
        description: str,
        depends_on: Optional[Callable[[ConfigChangedEvent], bool]] = None,
    ):
        self._probe = probe
        self._event_manager = event_manager
        self._description = description
        self._depends_on = depends_on
        self._cached = _MISSING
        event_manager.subscribe(self._on_event)

    @property
    def data(self) -> Any:
        """The cached value, bound on first access."""
        if self._cached is _MISSING:
            self._cached = self._probe()
            logger.info("Cached %s: %s", self._description, self._cached)
        return self._cached

    def probe(self) -> Any:
        """Bind a fresh value without touching the cache."""
        return self._probe()

    def refresh(self):
        """Re-bind the value and fire a :class:`ConfigChangedEvent` if it changed."""
        current = self.data
        latest = self._probe()
        if current != latest:
            self._cached = latest
            logger.info(
                "Configuration change detected for %s, previous: %s, current: %s",
                self._description,
                current,
                latest,
            )
            self._event_manager.fire(ConfigChangedEvent(current, latest))

    def _on_event(self, event: ConfigEvent):
        if isinstance(event, RefreshConfigsEvent):
            self.refresh()
        elif self._depends_on is not None and self._depends_on(event):
            self.refresh()

    def __repr__(self) -> str:
        return f"ConfigProvider({self._description})"


class Source:
    """Gives a composite builder access to the fresh values of its providers."""

    def __init__(self, providers: list[ConfigProvider]):
        self._providers = providers

    def get(self, cls: type) -> Any:
        """Probe the providers and return the first value that is an instance of ``cls``.

        Raises:
            LookupError: If no provider produces a ``cls`` instance.
        """
        available = []
        for provider in self._providers:
            value = provider.probe()
            if isinstance(value, cls):
                return value
            available.append(type(value).__qualname__)
        raise LookupError(
            f"no config provider is registered for class {cls.__qualname__}, "
            f"available: {', '.join(available)}"
        )


class ConfigProviderFactory:
    """Builds :class:`ConfigProvider` instances bound through one context.

    Args:
        context: The context every provider binds from.
        event_manager: Shared by every provider built by this factory.
        creator: The engine used for binding. Defaults to a new :class:`Creator`.
    """

    def __init__(
        self,
        context: Context,
        event_manager: ConfigEventManager,
        creator: Optional[Creator] = None,
    ):
        self._context = context
        self._event_manager = event_manager
        self._creator = creator or Creator()

    def build(self, target: type, prefix: Optional[str] = None) -> ConfigProvider:
        """Build a provider of ``target`` instances.

        Args:
            target: The config class to bind.
            prefix: The property prefix to bind from. Defaults to the prefix
                declared with :func:`config_prefix`, then to the blank prefix.
        """
        prefix = self._prefix_of(target, prefix)
        return ConfigProvider(
            lambda: self._creator.create(prefix, target, self._context),
            self._event_manager,
            f"{_name(target)} config under '{prefix}'",
        )

    def build_derived(
        self,
        raw_type: type,
        builder: Callable[[Any], Any],
        prefix: Optional[str] = None,
    ) -> ConfigProvider:
        """Build a provider of values derived from a bound ``raw_type`` instance.

        Args:
            raw_type: The config class to bind.
            builder: Turns a bound ``raw_type`` instance into the public value.
            prefix: As in :meth:`build`.

        Example:
            >>> provider = factory.build_derived(RawLimits, lambda raw: Limits(raw.max * 2))
        """
        prefix = self._prefix_of(raw_type, prefix)
        return ConfigProvider(
            lambda: builder(self._creator.create(prefix, raw_type, self._context)),
            self._event_manager,
            f"public config based on raw class {_name(raw_type)}",
            depends_on=lambda event: isinstance(event.previous, raw_type),
        )

    def build_composite(
        self,
        providers: Iterable[ConfigProvider],
        builder: Callable[[Source], Any],
    ) -> ConfigProvider:
        """Build a provider combining the values of other providers.

        The composite refreshes whenever one of ``providers`` announces a change.

        Args:
            providers: The underlying providers.
            builder: Builds the public value, reading underlying values through
                :meth:`Source.get`.
        """
        providers = list(providers)
        source = Source(providers)
        return ConfigProvider(
            lambda: builder(source),
            self._event_manager,
            "public config based on underlying config providers",
            depends_on=lambda event: any(
                isinstance(event.previous, type(p.data)) for p in providers
            ),
        )

    @staticmethod
    def _prefix_of(target: type, prefix: Optional[str]) -> str:
        if prefix is not None:
            return prefix
        return getattr(target, _PREFIX_ATTRIBUTE, "")


def _name(target: Any) -> str:
    return getattr(target, "__qualname__", str(target))
