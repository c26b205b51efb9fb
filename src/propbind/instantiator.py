from collections.abc import Collection, Mapping
from typing import TYPE_CHECKING, Any, Optional

from propbind.context import Context
from propbind.domain import ParameterSpec, Shape
from propbind.errors import ConversionError, MissingValueError
from propbind.introspection import ConstructionVariant
from propbind.result import ProcessingResult
from propbind.retriever import ParameterValueRetriever

if TYPE_CHECKING:
    from propbind.creator import Creator

__all__ = ["Instantiator"]

_EMPTY_DISALLOWED = "found an empty collection parameter but current context disallows that"


class Instantiator:
    """Builds an object through a single construction variant.

    Args:
        variant: The ``__init__`` or ``@constructor`` factory to call.
        creator: Used for nested objects.
    """

    def __init__(self, variant: ConstructionVariant, creator: "Creator"):
        self.variant = variant
        self._retrievers = [ParameterValueRetriever(p, creator) for p in variant.parameters]

    def maybe_create(self, prefix: str, context: Context) -> ProcessingResult:
        """Try to build an object from the properties under ``prefix``.

        Returns:
            A successful result holding the new object, or a failure explaining
            which parameters couldn't be resolved.
        """
        error = self.variant.error
        if error:
            return ProcessingResult.failure(error)

        scoped = context.with_mandatory_parameter(self.variant.has_mandatory_parameter)
        resolved: list[tuple[ParameterSpec, Optional[ProcessingResult]]] = []
        for retriever in self._retrievers:
            parameter = retriever.parameter
            try:
                result = retriever.retrieve(prefix, scoped)
            except (MissingValueError, ConversionError) as e:
                if not scoped.tolerate_empty_collection:
                    return ProcessingResult.failure(str(e))
                if parameter.optional:
                    result = None
                elif parameter.nullable:
                    result = ProcessingResult.of(None)
                else:
                    return ProcessingResult.failure(str(e))
            resolved.append((parameter, self._remap(parameter, result, scoped)))

        failures = [r.failure_reason for _, r in resolved if r is not None and not r.success]
        if failures:
            return ProcessingResult.failure(", ".join(failures))

        arguments: dict[str, Any] = {}
        for parameter, result in resolved:
            if result is None:
                if not parameter.optional:
                    arguments[parameter.name] = None
            else:
                arguments[parameter.name] = result.value

        try:
            return ProcessingResult.of(self.variant.func(**arguments))
        except Exception as e:
            rendered = ", ".join(f"{name}={value!r}" for name, value in arguments.items())
            return ProcessingResult.failure(f"{type(e).__name__}: {e} for parameters {rendered}")

    @staticmethod
    def _remap(
        parameter: ParameterSpec, result: Optional[ProcessingResult], context: Context
    ) -> Optional[ProcessingResult]:
        if context.tolerate_empty_collection or not parameter.required:
            return result
        if context.classify(parameter.type) not in (Shape.COLLECTION, Shape.MAP):
            return result
        if result is not None and not result.success:
            return result
        if result is None or result.value is None or _is_empty(result.value):
            return ProcessingResult.failure(_EMPTY_DISALLOWED)
        return result

    def __str__(self) -> str:
        return str(self.variant)


def _is_empty(value: Any) -> bool:
    return isinstance(value, (Collection, Mapping)) and not value
