from __future__ import annotations
from typing import Any, Callable, ClassVar, Dict, Type, TypeVar

TC = TypeVar("TC", bound="TypeClass")


class NoInstanceError(TypeError):
    """No instance of a type class is registered for a type (or any of its bases)."""


class TypeClass:
    """Base class for type classes.

    A type class is declared by subclassing with ``typeclass=True``; it gets
    its own registry mapping Python types to instances. Instances are plain
    subclasses of one or more type classes, registered with ``@instance``.
    Lookup walks the MRO of the requested type, so an instance registered for
    ``Option`` also serves ``Some`` and ``NONE``.

    Example:
        ```python
        class Pretty(TypeClass, typeclass=True):
            def pretty(self, a) -> str: raise NotImplementedError

        @instance(int)
        class PrettyInt(Pretty):
            def pretty(self, a: int) -> str: return f"#{a}"

        Pretty.of(int).pretty(3)        # '#3'
        Pretty.for_value(3).pretty(3)   # same, dispatching on the value
        ```
    """

    _registry: ClassVar[Dict[type, "TypeClass"]]

    def __init_subclass__(cls, typeclass: bool = False, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if typeclass:
            cls._is_typeclass = True  # type: ignore[attr-defined]
            cls._registry = {}

    @classmethod
    def of(cls: Type[TC], tpe: type) -> TC:
        registry = cls.__dict__.get("_registry")
        if registry is None:
            raise TypeError(f"{cls.__name__} is an instance, not a type class")
        for klass in tpe.__mro__:
            if klass in registry:
                return registry[klass]  # type: ignore[return-value]
        raise NoInstanceError(f"No {cls.__name__} instance for {tpe.__name__}")

    @classmethod
    def for_value(cls: Type[TC], value: Any) -> TC:
        return cls.of(type(value))

    @classmethod
    def has_instance(cls, tpe: type) -> bool:
        try:
            cls.of(tpe)
        except NoInstanceError:
            return False
        return True


def typeclasses_of(obj: TypeClass) -> list[type]:
    return [k for k in type(obj).__mro__ if k.__dict__.get("_is_typeclass")]


def register(obj: TypeClass, *types: type) -> TypeClass:
    """Register ``obj`` for ``types`` under every type class it implements."""
    tcs = typeclasses_of(obj)
    if not tcs:
        raise TypeError(f"{type(obj).__name__} does not implement any type class")
    for tc in tcs:
        for tpe in types:
            tc._registry[tpe] = obj
    return obj


def instance(*types: type) -> Callable[[type], type]:
    """Class decorator: instantiate the class and register it for ``types``."""
    def deco(klass: type) -> type:
        register(klass(), *types)
        return klass
    return deco


def summon(tc: Type[TC], tpe: type) -> TC:
    return tc.of(tpe)
