import logging
from typing import TYPE_CHECKING, Any

from propbind.context import Context
from propbind.errors import NoViableConstructorError
from propbind.instantiator import Instantiator
from propbind.introspection import construction_variants

if TYPE_CHECKING:
    from propbind.creator import Creator

__all__ = ["ClassCreator"]

logger = logging.getLogger(__name__)


class ClassCreator:
    """Builds instances of one class by trying each of its construction variants.

    Variants are parsed once, when the creator is built, and tried in
    declaration order on every call. The first one that succeeds wins.
    """

    def __init__(self, cls: type, creator: "Creator"):
        self.cls = cls
        self.instantiators = [Instantiator(v, creator) for v in construction_variants(cls)]

    def create(self, prefix: str, context: Context) -> Any:
        """Build an instance from the properties under ``prefix``.

        Raises:
            NoViableConstructorError: If no variant could be satisfied. The
                error lists every variant with the reason it failed.
        """
        failures: dict[str, str] = {}
        for instantiator in self.instantiators:
            result = instantiator.maybe_create(prefix, context)
            if result.success:
                return result.value
            logger.debug(
                "Variant %s can't be used for '%s': %s", instantiator, prefix, result.failure_reason
            )
            failures[str(instantiator)] = result.failure_reason
        raise NoViableConstructorError(self.cls, failures)

    def __str__(self) -> str:
        return f"{self.cls.__qualname__} creator"
