import logging
from collections.abc import MutableSet
from typing import TYPE_CHECKING, Any, Optional

from propbind.context import Context
from propbind.domain import ANY_TYPE, STRING_TYPE, ParameterSpec, Shape, TypeRef
from propbind.errors import (
    ConversionError,
    MissingValueError,
    StructuralMismatchError,
    UnnamedParameterError,
)
from propbind.result import ProcessingResult

if TYPE_CHECKING:
    from propbind.creator import Creator

__all__ = ["ParameterValueRetriever"]

logger = logging.getLogger(__name__)

_ANY_MAP = TypeRef(dict[str, Any], dict, (STRING_TYPE, ANY_TYPE))
_ANY_LIST = TypeRef(list[Any], list, (ANY_TYPE,))


class ParameterValueRetriever:
    """Fetches the value of one declared parameter from the property source.

    The retrieval strategy is picked from the shape of the declared type.
    Every retrieval returns either a :class:`ProcessingResult` or ``None``;
    ``None`` means no data was found and the parameter's default should apply.
    """

    def __init__(self, parameter: ParameterSpec, creator: "Creator"):
        self.parameter = parameter
        self._creator = creator

    def retrieve(self, prefix: str, context: Context) -> Optional[ProcessingResult]:
        """Retrieve the parameter value for the object rooted at ``prefix``.

        Args:
            prefix: Property name of the object being built. For a parameter
                ``port`` and prefix ``server`` the property ``server.port``
                is read with the default naming strategy.
            context: The active context.

        Returns:
            The retrieval result, or None when the declared default should apply.

        Raises:
            ConversionError: If a value is present but can't be converted.
            StructuralMismatchError: If a simple value sits where a collection,
                map or nested object is declared.
            MissingValueError: If a required nested value has no data.
        """
        if self.parameter.name is None:
            raise UnnamedParameterError(
                f"Can't retrieve parameter #{self.parameter.index} under '{prefix}': "
                "it doesn't expose a name"
            )
        path = context.regular_property_name(prefix, self.parameter.name)
        return self._retrieve(
            path, self.parameter.type, self.parameter.optional, self.parameter.nullable, context
        )

    def _retrieve(
        self, path: str, type_ref: TypeRef, optional: bool, nullable: bool, context: Context
    ) -> Optional[ProcessingResult]:
        shape = context.classify(type_ref)

        if shape is Shape.ANY:
            return self._retrieve_any(path, optional, nullable, context)
        if shape in (Shape.SCALAR, Shape.ENUM):
            return self._retrieve_simple(path, type_ref, optional, nullable, context)
        if shape is Shape.UNSUPPORTED:
            return ProcessingResult.failure(
                f"type '{type_ref}' of property '{path}' is not supported"
            )

        found = context.lookup(path)
        if found is not None:
            raise StructuralMismatchError(
                f"Expected to find {shape.value} data of type '{type_ref}' under property "
                f"'{path}' but found a simple value '{found}' instead"
            )

        if shape is Shape.COLLECTION:
            return self._retrieve_collection(path, type_ref, optional, nullable, context)
        if shape is Shape.MAP:
            return self._retrieve_map(path, type_ref, optional, nullable, context)
        return self._retrieve_composite(path, type_ref, optional, nullable, context)

    def _retrieve_any(
        self, path: str, optional: bool, nullable: bool, context: Context
    ) -> Optional[ProcessingResult]:
        depth = context.map_discovery_depth
        if _is_map_like(path, context, depth):
            logger.debug("Property '%s' looks like a map", path)
            return self._retrieve_map(path, _ANY_MAP, False, False, context)
        if _is_collection_like(path, context, depth):
            logger.debug("Property '%s' looks like a collection", path)
            return self._retrieve_collection(path, _ANY_LIST, False, False, context)
        return self._retrieve_simple(path, ANY_TYPE, optional, nullable, context)

    def _retrieve_simple(
        self, path: str, type_ref: TypeRef, optional: bool, nullable: bool, context: Context
    ) -> Optional[ProcessingResult]:
        raw = context.lookup(path)
        if raw is None:
            return _absent(optional, nullable, f"no value found for property '{path}'")
        return ProcessingResult.of(context.convert(raw, type_ref.raw))

    def _retrieve_collection(
        self, path: str, type_ref: TypeRef, optional: bool, nullable: bool, context: Context
    ) -> Optional[ProcessingResult]:
        element_type = type_ref.arg(0)
        collection = context.create_collection(type_ref.raw)
        add = collection.add if isinstance(collection, MutableSet) else collection.append
        strict = context.with_tolerate_empty_collection(False)

        index = 0
        while True:
            element_path = context.collection_element_property_name(path, index)
            element_context, tracker = strict.tracking_lookups()
            try:
                result = self._retrieve(element_path, element_type, False, False, element_context)
            except MissingValueError:
                if tracker.hits:
                    raise
                break
            if result is None or not result.success or tracker.hits == 0:
                break
            add(result.value)
            index += 1

        if not collection:
            first = context.collection_element_property_name(path, 0)
            return _absent(
                optional,
                nullable,
                f"no data found for collection property '{path}' of type '{type_ref}', "
                f"tried key '{first}'",
            )
        if not isinstance(collection, type_ref.raw):
            collection = type_ref.raw(collection)
        return ProcessingResult.of(collection)

    def _retrieve_map(
        self, path: str, type_ref: TypeRef, optional: bool, nullable: bool, context: Context
    ) -> Optional[ProcessingResult]:
        key_type = type_ref.arg(0)
        value_type = type_ref.arg(1)
        mapping = context.create_map()

        for key in sorted(context.map_keys(path, key_type)):
            value_path = context.map_value_property_name(path, key)
            try:
                result = self._retrieve(value_path, value_type, True, False, context)
                if result is None or not result.success or result.value is None:
                    continue
                mapping[context.convert(key, key_type.raw)] = result.value
            except (MissingValueError, ConversionError) as e:
                logger.debug("Skipping map entry '%s': %s", value_path, e)

        if not mapping:
            if optional:
                return None
            if nullable:
                return ProcessingResult.of(None)
            raise MissingValueError(
                f"Can't build a map of type '{type_ref}' for property '{path}': "
                "no key-value pairs are found and it's not optional"
            )
        return ProcessingResult.of(mapping)

    def _retrieve_composite(
        self, path: str, type_ref: TypeRef, optional: bool, nullable: bool, context: Context
    ) -> Optional[ProcessingResult]:
        try:
            return ProcessingResult.of(self._creator.create(path, type_ref, context))
        except MissingValueError:
            if optional:
                return None
            if nullable:
                return ProcessingResult.of(None)
            raise

    def __str__(self) -> str:
        return f"{self.parameter} value retriever"


def _absent(optional: bool, nullable: bool, reason: str) -> Optional[ProcessingResult]:
    if optional:
        return None
    if nullable:
        return ProcessingResult.of(None)
    return ProcessingResult.failure(reason)


def _is_map_like(path: str, context: Context, depth: int) -> bool:
    if depth <= 0:
        return False
    value_paths = [
        context.map_value_property_name(path, key) for key in context.map_keys(path, STRING_TYPE)
    ]
    for value_path in value_paths:
        if (
            context.lookup(value_path) is not None
            or context.lookup(context.collection_element_property_name(value_path, 0)) is not None
        ):
            return True
    return any(
        _is_map_like(value_path, context, depth - 1)
        or _is_collection_like(value_path, context, depth - 1)
        for value_path in value_paths
    )


def _is_collection_like(path: str, context: Context, depth: int) -> bool:
    first = context.collection_element_property_name(path, 0)
    if context.lookup(first) is not None:
        return True
    return _is_map_like(first, context, depth)
