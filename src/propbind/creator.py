"""Entry point of the binding engine."""

from typing import Any

from propbind.class_creator import ClassCreator
from propbind.context import Context
from propbind.domain import Shape, TypeRef
from propbind.errors import BindingError, ConversionError, MissingValueError

__all__ = ["Creator", "create"]


class Creator:
    """Creates typed objects from the properties exposed by a context.

    One :class:`ClassCreator` is kept per distinct class, so a class's
    construction variants are only inspected the first time it's seen.
    A creator holds no per-call state and may be shared between threads.
    """

    def __init__(self):
        self._creators: dict[type, ClassCreator] = {}

    def create(self, prefix: str, target: Any, context: Context) -> Any:
        """Create an instance of ``target`` from the properties under ``prefix``.

        Args:
            prefix: The property name the object is rooted at. May be blank, in
                which case the object's fields are read by their bare names.
            target: The class or type hint to build, e.g. ``ServerConfig``,
                ``Optional[Any]`` or an enum class.
            context: The context providing properties and strategies.

        Returns:
            The created object.

        Raises:
            NoViableConstructorError: If no construction variant of the class
                could be satisfied.
            MissingValueError: If no value is found for a scalar, enum or
                ``Any`` target.
            ConversionError: If a value is present but can't be converted.
            StructuralMismatchError: If the data shape disagrees with the
                declared shape.

        Example:
            >>> properties = {"server.host": "localhost", "server.port": "8080"}
            >>> context = Context.builder(properties.get).build()
            >>> Creator().create("server", ServerConfig, context)
            ServerConfig(host='localhost', port=8080)
        """
        type_ref = target if isinstance(target, TypeRef) else TypeRef.of(target)
        if type_ref.error:
            raise BindingError(f"Can't create '{type_ref}' for property '{prefix}': {type_ref.error}")

        shape = context.classify(type_ref)
        if shape is Shape.ENUM:
            return self._create_enum(prefix, type_ref.raw, context)
        if shape is Shape.ANY:
            return self._create_any(prefix, type_ref, context)
        if shape is Shape.SCALAR:
            raw = context.lookup(prefix)
            if raw is None:
                if type_ref.nullable:
                    return None
                raise MissingValueError(f"Failed finding value for property '{prefix}'")
            return context.convert(raw, type_ref.raw)
        if shape is Shape.UNSUPPORTED:
            raise BindingError(f"Can't create '{type_ref}' for property '{prefix}': type is not supported")
        if shape in (Shape.COLLECTION, Shape.MAP):
            raise BindingError(
                f"Can't create '{type_ref}' for property '{prefix}': collections and maps are only "
                "supported as parameters of a class"
            )

        class_creator = self._creators.get(type_ref.raw)
        if class_creator is None:
            class_creator = self._creators.setdefault(type_ref.raw, ClassCreator(type_ref.raw, self))
        return class_creator.create(prefix, context)

    @staticmethod
    def _create_enum(prefix: str, enum_cls: type, context: Context) -> Any:
        raw = context.lookup(prefix)
        if raw is None:
            raise MissingValueError(
                f"Failed instantiating an enum of type '{enum_cls.__qualname__}': its name is not "
                f"specified under property '{prefix}'"
            )
        name = str(raw)
        for member in enum_cls:
            if member.name == name:
                return member
        raise ConversionError(
            raw, enum_cls, f"known names: {', '.join(m.name for m in enum_cls)}"
        )

    @staticmethod
    def _create_any(prefix: str, type_ref: TypeRef, context: Context) -> Any:
        raw = context.lookup(prefix)
        if raw is None:
            if type_ref.nullable:
                return None
            raise MissingValueError(f"Failed finding value for property '{prefix}'")
        return raw


_default = Creator()


def create(prefix: str, target: Any, context: Context) -> Any:
    """Create ``target`` with a shared, module level :class:`Creator`."""
    return _default.create(prefix, target, context)
