from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable, Iterator
from typing import Any, ClassVar, Generic, TypeVar

from bedrock.errors import ConfigurationError

T = TypeVar("T")
C = TypeVar("C", bound="Collectable")
S = TypeVar("S", bound="Collector[Any]")
P = TypeVar("P", bound="ComposableOption")

DEFAULT_MARKER = "__option_default__"


class Option:
    # Marker base for values stored in OptionsByType.
    # A subclass may declare __option_key__ to resolve under a shared resolution class.
    __slots__ = ()


class ComposableOption(Option):
    # Options merged with the existing value instead of replacing it.
    # Contract: compose(other) keeps self's non-null fields and falls back to other's.
    __slots__ = ()

    def compose(self: P, other: P) -> P:
        raise NotImplementedError("ComposableOption.compose must be implemented")


class Collectable(Option):
    # Options accumulated into a collector of type collector_class.
    __slots__ = ()
    collector_class: ClassVar[type[Collector[Any]]]


class Collector(Option, Generic[C]):
    # Immutable container of collectables; with_/without return new collectors.
    __slots__ = ()

    def with_(self: S, item: C) -> S:
        raise NotImplementedError("Collector.with_ must be implemented")

    def without(self: S, item: C) -> S:
        raise NotImplementedError("Collector.without must be implemented")

    def holds(self, item: C) -> bool:
        # Whether an entry standing for item is present; add_if_absent skips such items.
        return item in list(self)

    def __iter__(self) -> Iterator[C]:
        raise NotImplementedError("Collector.__iter__ must be implemented")

    def instances_of(self, required: type[T]) -> list[T]:
        return [item for item in self if isinstance(item, required)]


_MARKERS: tuple[type, ...] = (Option, ComposableOption, Collectable, Collector)


def default(target: T) -> T:
    # Marks the canonical default factory of an option type.
    # Apply to a function wrapped by classmethod/staticmethod, or to a class whose
    # constructor (with the arguments given to OptionsByType.get) builds the default.
    setattr(target, DEFAULT_MARKER, True)
    return target


def resolution_key(option_class: type[Any] | None) -> type[Any] | None:
    if option_class is None:
        return None
    declared = getattr(option_class, "__option_key__", None)
    if isinstance(declared, type):
        return declared

    mro = [klass for klass in option_class.__mro__ if klass is not object]
    for index, klass in enumerate(mro):
        if klass in _MARKERS:
            return None
        if any(base in _MARKERS for base in klass.__bases__):
            # Abstract intermediates resolve to the nearest concrete subclass on the path.
            for candidate in reversed(mro[: index + 1]):
                if not inspect.isabstract(candidate):
                    return candidate
            return None
    return None


def resolution_key_of(option: object | None) -> type[Any] | None:
    return None if option is None else resolution_key(type(option))


def is_option_class(value: object) -> bool:
    return isinstance(value, type) and issubclass(value, Option)


def default_factory(option_class: type[T], arity: int) -> Callable[..., T] | None:
    # Locate a factory marked with @default that accepts `arity` positional arguments.
    if getattr(option_class, DEFAULT_MARKER, False) is True and DEFAULT_MARKER in vars(option_class):
        if _accepts(option_class, arity):
            return option_class
    for klass in option_class.__mro__:
        for name, attr in vars(klass).items():
            function = attr.__func__ if isinstance(attr, (classmethod, staticmethod)) else None
            if function is None or getattr(function, DEFAULT_MARKER, False) is not True:
                continue
            bound = getattr(option_class, name)
            if _accepts(bound, arity):
                return bound
    return None


def default_for(option_class: type[T] | None, arguments: Iterable[object] = ()) -> T | None:
    if option_class is None:
        return None
    args = tuple(arguments)
    factory = default_factory(option_class, len(args))
    if factory is None:
        return None
    try:
        value = factory(*args)
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to create the default {option_class.__name__} option: {exc}"
        ) from exc
    if value is not None and not isinstance(value, option_class):
        raise ConfigurationError(
            f"Default factory of {option_class.__name__} returned {type(value).__name__}"
        )
    return value


def _accepts(function: Callable[..., object], arity: int) -> bool:
    try:
        signature = inspect.signature(function)
    except (TypeError, ValueError):
        return False
    try:
        signature.bind(*([None] * arity))
    except TypeError:
        return False
    return True
