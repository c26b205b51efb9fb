import inspect
from dataclasses import dataclass
from typing import Any, Callable, Optional, get_type_hints

from propbind.domain import ParameterSpec, TypeRef

__all__ = ["constructor", "ConstructionVariant", "construction_variants"]

_MARKER = "__propbind_constructor__"

_UNNAMED_KINDS = {
    inspect.Parameter.POSITIONAL_ONLY: "positional-only",
    inspect.Parameter.VAR_POSITIONAL: "variadic positional",
    inspect.Parameter.VAR_KEYWORD: "variadic keyword",
}


def constructor(func: Callable) -> Callable:
    """Mark a classmethod or staticmethod as an alternative way to build its class.

    Marked factories are tried after the class's own ``__init__``, in the
    order they are defined. The decorator may be placed above or below
    ``@classmethod``.

    Example:
        @dataclass
        class Endpoint:
            host: str
            port: int

            @constructor
            @classmethod
            def from_url(cls, url: str) -> "Endpoint":
                host, port = url.rsplit(":", 1)
                return cls(host, int(port))
    """
    target = func.__func__ if isinstance(func, (classmethod, staticmethod)) else func
    setattr(target, _MARKER, True)
    return func


@dataclass(frozen=True)
class ConstructionVariant:
    """One way to build a class: its ``__init__`` or an ``@constructor`` factory.

    Attributes:
        owner: The class the variant builds.
        name: The factory name, or None for the class's own constructor.
        func: The callable to invoke with keyword arguments.
        parameters: The declared parameters, in signature order.
    """

    owner: type
    name: Optional[str]
    func: Callable
    parameters: tuple[ParameterSpec, ...]

    @property
    def error(self) -> Optional[str]:
        """Why the variant can never be invoked, if it can't."""
        errors = [p.error for p in self.parameters if p.error]
        return ", ".join(errors) if errors else None

    @property
    def has_mandatory_parameter(self) -> bool:
        return any(p.required for p in self.parameters)

    def __str__(self) -> str:
        label = self.owner.__name__ if self.name is None else f"{self.owner.__name__}.{self.name}"
        return f"{label}({', '.join(str(p) for p in self.parameters)})"


def construction_variants(cls: type) -> list[ConstructionVariant]:
    """List every construction variant of ``cls`` in the order they're tried."""
    variants = [ConstructionVariant(cls, None, cls, _parameters(cls, cls.__init__))]

    for name, attribute in vars(cls).items():
        if not isinstance(attribute, (classmethod, staticmethod)):
            continue
        if not getattr(attribute.__func__, _MARKER, False):
            continue
        func = getattr(cls, name)
        variants.append(ConstructionVariant(cls, name, func, _parameters(func, func)))

    return variants


def _parameters(func: Callable, annotated: Any) -> tuple[ParameterSpec, ...]:
    try:
        signature = inspect.signature(func)
    except (ValueError, TypeError):
        return ()

    try:
        hints = get_type_hints(annotated, include_extras=True)
    except (TypeError, NameError):
        # unresolvable forward references stay as declared
        hints = {
            name: param.annotation
            for name, param in signature.parameters.items()
            if param.annotation is not inspect.Parameter.empty
        }

    result = []
    for index, (name, param) in enumerate(signature.parameters.items()):
        type_ref = TypeRef.of(hints.get(name, Any))
        error = type_ref.error
        if param.kind in _UNNAMED_KINDS:
            error = (
                f"can't bind {_UNNAMED_KINDS[param.kind]} parameter #{index} "
                f"('{name}') by name"
            )
        result.append(
            ParameterSpec(
                name=None if param.kind in _UNNAMED_KINDS else name,
                index=index,
                type=type_ref,
                optional=param.default is not inspect.Parameter.empty,
                error=error,
            )
        )
    return tuple(result)
