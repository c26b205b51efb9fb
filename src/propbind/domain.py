"""Domain models used throughout the binding engine."""

import types
from dataclasses import dataclass, replace
from enum import Enum
from typing import Annotated, Any, Optional, Union, get_args, get_origin

__all__ = ["Shape", "TypeRef", "ParameterSpec", "ANY_TYPE", "STRING_TYPE"]

_NONE_TYPE = type(None)
_UNION_TYPES: tuple = (Union, types.UnionType) if hasattr(types, "UnionType") else (Union,)


class Shape(Enum):
    """Closed classification of a declared type, used to pick a retrieval strategy."""

    ANY = "any"
    SCALAR = "scalar"
    ENUM = "enum"
    COLLECTION = "collection"
    MAP = "map"
    COMPOSITE = "composite"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class TypeRef:
    """Structural description of a declared type.

    Built once per declared parameter from its type hint, so that retrieval
    never has to pick apart ``typing`` constructs again.

    Attributes:
        annotation: The original type hint.
        raw: The class (or generic origin such as ``list`` or
            ``collections.abc.Mapping``) the hint refers to. ``typing.Any`` for
            untyped values.
        args: Type references for the generic arguments, if any.
        nullable: True when ``None`` is an accepted value (``Optional[X]``).
        error: Set when the hint can't be bound at all, e.g. ``Union[int, str]``.

    Example:
        >>> TypeRef.of(Optional[list[int]])
        >>> # TypeRef(raw=list, args=(TypeRef(raw=int),), nullable=True)
    """

    annotation: Any
    raw: Any
    args: tuple["TypeRef", ...] = ()
    nullable: bool = False
    error: Optional[str] = None

    @staticmethod
    def of(annotation: Any) -> "TypeRef":
        origin = get_origin(annotation)

        if origin is Annotated:
            return replace(TypeRef.of(get_args(annotation)[0]), annotation=annotation)

        if origin in _UNION_TYPES:
            members = get_args(annotation)
            non_null = [member for member in members if member is not _NONE_TYPE]
            nullable = len(non_null) < len(members)
            if len(non_null) != 1:
                return TypeRef(
                    annotation,
                    annotation,
                    nullable=nullable,
                    error=f"union type '{annotation}' is not supported",
                )
            inner = TypeRef.of(non_null[0])
            return replace(inner, annotation=annotation, nullable=nullable or inner.nullable)

        if annotation is _NONE_TYPE or annotation is None:
            return TypeRef(annotation, Any, nullable=True)

        if origin is None:
            return TypeRef(annotation, annotation)

        return TypeRef(
            annotation,
            origin,
            tuple(TypeRef.of(arg) for arg in get_args(annotation) if not isinstance(arg, list)),
        )

    @property
    def is_class(self) -> bool:
        return isinstance(self.raw, type)

    @property
    def is_enum(self) -> bool:
        return self.is_class and issubclass(self.raw, Enum)

    def arg(self, index: int) -> "TypeRef":
        """Return the generic argument at ``index``, treating a missing one as ``Any``."""
        if index < len(self.args):
            return self.args[index]
        return ANY_TYPE

    def __str__(self) -> str:
        if isinstance(self.annotation, type):
            return self.annotation.__qualname__
        return str(self.annotation).replace("typing.", "")


ANY_TYPE = TypeRef(Any, Any)
STRING_TYPE = TypeRef(str, str)


@dataclass(frozen=True)
class ParameterSpec:
    """A declared parameter of a construction variant.

    Attributes:
        name: The keyword the parameter is bound by, or None if it has no usable name.
        index: Position of the parameter in the variant's signature.
        type: Reference to the parameter's declared type.
        optional: True when the parameter declares a default value.
        error: Why the parameter can't be bound, if it can't.
    """

    name: Optional[str]
    index: int
    type: TypeRef
    optional: bool
    error: Optional[str] = None

    @property
    def nullable(self) -> bool:
        return self.type.nullable

    @property
    def required(self) -> bool:
        return not self.optional and not self.nullable

    def __str__(self) -> str:
        return self.name or f"#{self.index}"
