from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any, TypeVar, cast

from bedrock.errors import ConfigurationError
from bedrock.options.option import (
    Collectable,
    Collector,
    ComposableOption,
    Option,
    default_for,
    resolution_key,
    resolution_key_of,
)

T = TypeVar("T")
O = TypeVar("O", bound=Option)


class OptionsByType:
    # Ordered mapping of resolution key -> option value.
    # Application order is the caller's call order: later scalars replace earlier ones,
    # composables are stored as existing.compose(new), collectables accumulate in their collector.
    # Instances are single-owner: build one per launch or invocation, never share for mutation.
    __slots__ = ("_options",)

    def __init__(self, options: Iterable[Option | None] = ()) -> None:
        self._options: dict[type[Any], Option] = {}
        for option in options:
            self.add(option)

    @classmethod
    def of(cls, *options: Option | None) -> OptionsByType:
        return cls(options)

    @classmethod
    def from_options(cls, other: OptionsByType | Iterable[Option | None] | None) -> OptionsByType:
        result = cls()
        if isinstance(other, OptionsByType):
            result.add_all_from(other)
        elif other is not None:
            result.add_all(*other)
        return result

    @classmethod
    def empty(cls) -> OptionsByType:
        return cls()

    def get(self, option_class: type[O] | None, *arguments: object) -> O | None:
        # Stored value, else the declared default (stored once created), else None.
        key = resolution_key(option_class)
        if key is None or option_class is None:
            return None
        option = self._options.get(key)
        if option is None:
            option = default_for(option_class, arguments)
            if option is None:
                return None
            self.add(option)
            option = self._options.get(key, option)
        return cast(O, option)

    def get_or_default(self, option_class: type[O] | None, default: O | None) -> O | None:
        key = resolution_key(option_class)
        if key is None:
            return None
        option = self._options.get(key)
        return default if option is None else cast(O, option)

    def get_or_set_default(self, option_class: type[O] | None, default: O | None) -> O | None:
        key = resolution_key(option_class)
        if key is None:
            return None
        option = self._options.get(key)
        if option is None and default is not None:
            self.add(default)
            option = self._options.get(key, default)
        return cast(O, option) if option is not None else None

    def contains(self, option_class: type[Option] | None) -> bool:
        key = resolution_key(option_class)
        return key is not None and key in self._options

    def contains_option(self, option: Option | None) -> bool:
        if option is None:
            return False
        if isinstance(option, Collectable):
            collector = self._options.get(_collector_key(option))
            return collector is not None and option in list(cast(Collector[Any], collector))
        return self._options.get(resolution_key_of(option)) == option

    def get_instances_of(self, required: type[T]) -> list[T]:
        result: list[T] = []
        for option in self._options.values():
            if isinstance(option, required):
                result.append(option)
            if isinstance(option, Collector):
                result.extend(option.instances_of(required))
        return result

    def as_list(self) -> list[Option]:
        return list(self._options.values())

    def add(self, option: Option | None) -> OptionsByType:
        if option is None:
            return self
        if not isinstance(option, Option):
            raise ConfigurationError(f"{type(option).__name__} is not an Option")

        if isinstance(option, Collectable):
            key = _collector_key(option)
            collector = self._options.get(key)
            if collector is None:
                collector = default_for(key)
            if collector is None:
                raise ConfigurationError(
                    f"Failed to instantiate a default collector of type {key.__name__} for {option!r}"
                )
            self._options[key] = cast(Collector[Any], collector).with_(option)
            return self

        key = resolution_key_of(option)
        if key is None:
            raise ConfigurationError(f"Unable to determine the option type of {option!r}")
        if isinstance(option, ComposableOption):
            existing = self._options.get(key)
            if existing is not None:
                option = cast(ComposableOption, existing).compose(option)
        self._options[key] = option
        return self

    def add_if_absent(self, option: Option | None) -> OptionsByType:
        if option is None:
            return self
        if isinstance(option, Collectable):
            # Collectables are absent when their collector holds nothing standing for them.
            collector = self._options.get(_collector_key(option))
            if collector is None or not cast(Collector[Any], collector).holds(option):
                self.add(option)
            return self
        if resolution_key_of(option) not in self._options:
            self.add(option)
        return self

    def add_all(self, *options: Option | None) -> OptionsByType:
        for option in options:
            self.add(option)
        return self

    def add_all_from(self, other: OptionsByType) -> OptionsByType:
        for option in other.as_list():
            self.add(option)
        return self

    def remove(self, option: Option | None) -> bool:
        if option is None:
            return False
        if isinstance(option, Collectable):
            key = _collector_key(option)
            collector = self._options.get(key)
            if collector is None:
                return False
            updated = cast(Collector[Any], collector).without(option)
            self._options[key] = updated
            return updated is not collector
        key = resolution_key_of(option)
        existing = self._options.get(key)
        if existing is None or existing != option:
            return False
        del self._options[key]
        return True

    def remove_type(self, option_class: type[Option] | None) -> bool:
        key = resolution_key(option_class)
        if key is None:
            return False
        return self._options.pop(key, None) is not None

    def copy(self) -> OptionsByType:
        return OptionsByType.from_options(self)

    def __iter__(self) -> Iterator[Option]:
        return iter(list(self._options.values()))

    def __len__(self) -> int:
        return len(self._options)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, type):
            return self.contains(item)
        return isinstance(item, Option) and self.contains_option(item)

    def __repr__(self) -> str:
        return "OptionsByType{" + ", ".join(repr(option) for option in self._options.values()) + "}"


def _collector_key(collectable: Collectable) -> type[Any]:
    collector_class = getattr(type(collectable), "collector_class", None)
    key = resolution_key(collector_class)
    if key is None:
        raise ConfigurationError(f"{type(collectable).__name__} does not declare a collector_class")
    return key
