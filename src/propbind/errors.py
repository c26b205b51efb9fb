"""Exceptions raised while binding properties to typed objects."""

from typing import Optional

__all__ = [
    "BindingError",
    "MissingValueError",
    "NoViableConstructorError",
    "ConversionError",
    "StructuralMismatchError",
    "UnnamedParameterError",
]


class BindingError(Exception):
    """Base class for every error raised by the binding engine."""

    pass


class MissingValueError(BindingError):
    """Raised when a required value has no data in the property source."""

    pass


class NoViableConstructorError(MissingValueError):
    """Raised when none of a type's construction variants could be satisfied.

    Attributes:
        target: The type that could not be instantiated.
        failures: Mapping of variant description to the reason it failed,
            in the order the variants were tried.
    """

    def __init__(self, target: object, failures: dict[str, str]):
        self.target = target
        self.failures = failures
        details = "\n  ".join(
            f"{variant} - {reason}" for variant, reason in failures.items()
        )
        super().__init__(
            f"Failed instantiating a {_type_name(target)} instance. "
            f"None of {len(failures)} constructors match:\n  {details}"
        )


class ConversionError(BindingError, ValueError):
    """Raised when a raw value cannot be converted to the declared type."""

    def __init__(self, value: object, target: object, reason: Optional[str] = None):
        self.value = value
        self.target = target
        message = (
            f"can't convert value '{value}' of type '{_type_name(type(value))}' "
            f"to type '{_type_name(target)}'"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class StructuralMismatchError(BindingError):
    """Raised when the data shape disagrees with the declared shape.

    For example a simple value is found under a path where a collection, a
    map or a nested object is declared.
    """

    pass


class UnnamedParameterError(BindingError):
    """Raised when a constructor parameter can't be bound by name."""

    pass


def _type_name(target: object) -> str:
    if isinstance(target, type):
        return f"{target.__module__}.{target.__qualname__}"
    return str(target)
