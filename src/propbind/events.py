"""Configuration change notifications used by :mod:`propbind.provider`."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Union

__all__ = ["ConfigChangedEvent", "RefreshConfigsEvent", "ConfigEvent", "ConfigEventManager"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfigChangedEvent:
    """Fired by a provider when a refresh produced a value different from the cached one.

    Attributes:
        previous: The value cached before the refresh.
        current: The value cached after the refresh.
    """

    previous: Any
    current: Any


@dataclass(frozen=True)
class RefreshConfigsEvent:
    """Asks every subscribed provider to re-read its configuration."""

    pass


ConfigEvent = Union[ConfigChangedEvent, RefreshConfigsEvent]


class ConfigEventManager:
    """In-process registry of configuration event subscribers.

    Subscribers are called synchronously, in subscription order, on the
    thread that fires the event.
    """

    def __init__(self):
        self._subscribers: list[Callable[[ConfigEvent], None]] = []

    def subscribe(self, callback: Callable[[ConfigEvent], None]):
        """Register ``callback`` to receive every event fired from now on."""
        self._subscribers.append(callback)

    def fire(self, event: ConfigEvent):
        """Deliver ``event`` to every subscriber.

        Subscribers added while the event is being delivered only receive
        later events.
        """
        logger.debug("Firing %s to %d subscribers", event, len(self._subscribers))
        for callback in list(self._subscribers):
            callback(event)
