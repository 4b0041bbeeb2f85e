from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, TypeVar

from bedrock.options.option import Collectable, Collector, default

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Decoration(Collectable):
    # Wraps an arbitrary object (listener, handler) so it can travel in OptionsByType.
    value: Any

    @classmethod
    def of(cls, value: object) -> Decoration:
        return cls(value)


@default
@dataclass(frozen=True, slots=True)
class Decorations(Collector[Decoration]):
    # Ordered, duplicate-free decorations; instances_of also looks inside each decoration.
    items: tuple[Decoration, ...] = field(default_factory=tuple)

    @classmethod
    def of(cls, *values: object) -> Decorations:
        result = cls()
        for value in values:
            result = result.with_(value if isinstance(value, Decoration) else Decoration(value))
        return result

    def with_(self, item: Decoration) -> Decorations:
        if item is None or item in self.items:
            return self
        return Decorations(self.items + (item,))

    def without(self, item: Decoration) -> Decorations:
        if item not in self.items:
            return self
        return Decorations(tuple(existing for existing in self.items if existing != item))

    def __iter__(self) -> Iterator[Decoration]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def instances_of(self, required: type[T]) -> list[T]:
        result: list[T] = []
        for decoration in self.items:
            if isinstance(decoration, required):
                result.append(decoration)
            if isinstance(decoration.value, required):
                result.append(decoration.value)
        return result


Decoration.collector_class = Decorations
