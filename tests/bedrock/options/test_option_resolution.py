from __future__ import annotations

import abc
from collections.abc import Iterator
from dataclasses import dataclass

import pytest

from bedrock.errors import ConfigurationError
from bedrock.options import Collectable, Collector, ComposableOption, Option, OptionsByType, default, resolution_key
from bedrock.options.option import default_for


@dataclass(frozen=True, slots=True)
class _Colour(Option):
    name: str


class _Shade(_Colour):
    __slots__ = ()


class _Codec(Option, abc.ABC):
    __slots__ = ()

    @abc.abstractmethod
    def encode(self, text: str) -> bytes: ...


@dataclass(frozen=True)
class _Utf8(_Codec):
    def encode(self, text: str) -> bytes:
        return text.encode("utf-8")


@dataclass(frozen=True)
class _Latin1(_Codec):
    def encode(self, text: str) -> bytes:
        return text.encode("latin-1")


@dataclass(frozen=True, slots=True)
class _Retries(Option):
    count: int

    @classmethod
    @default
    def of(cls, count: int = 3) -> _Retries:
        return cls(count)


class _Broken(Option):
    __slots__ = ()

    @staticmethod
    @default
    def create() -> _Broken:
        raise RuntimeError("boom")


@dataclass(frozen=True, slots=True)
class _Tag(Collectable):
    value: str


@dataclass(frozen=True, slots=True)
class _Tags(Collector[_Tag]):
    items: tuple[_Tag, ...] = ()

    def with_(self, item: _Tag) -> _Tags:
        return _Tags(self.items + (item,))

    def without(self, item: _Tag) -> _Tags:
        return _Tags(tuple(existing for existing in self.items if existing != item))

    def __iter__(self) -> Iterator[_Tag]:
        return iter(self.items)


_Tag.collector_class = _Tags


def test_subclass_resolves_to_the_class_implementing_option() -> None:
    # A subtype replaces its parent in the container: both share one resolution key.
    assert resolution_key(_Shade) is _Colour
    options = OptionsByType.of(_Colour("red"), _Shade("dark red"))
    assert options.get(_Colour) == _Shade("dark red")
    assert len(options) == 1


def test_abstract_option_classes_resolve_to_the_concrete_class() -> None:
    assert resolution_key(_Codec) is None
    assert resolution_key(_Utf8) is _Utf8
    options = OptionsByType.of(_Utf8(), _Latin1())
    assert len(options) == 2


def test_marker_classes_have_no_resolution_key() -> None:
    assert resolution_key(Option) is None
    assert resolution_key(ComposableOption) is None
    assert resolution_key(None) is None


def test_default_factory_receives_get_arguments() -> None:
    assert OptionsByType.empty().get(_Retries) == _Retries(3)
    assert OptionsByType.empty().get(_Retries, 7) == _Retries(7)


def test_failing_default_factory_surfaces_as_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="_Broken"):
        OptionsByType.empty().get(_Broken)


def test_default_for_without_factory_is_none() -> None:
    assert default_for(_Colour) is None


def test_collector_without_default_factory_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="default collector"):
        OptionsByType.empty().add(_Tag("x"))


def test_explicit_collector_accepts_collectables() -> None:
    options = OptionsByType.of(_Tags())
    options.add(_Tag("x")).add(_Tag("y"))
    assert [tag.value for tag in options.get(_Tags)] == ["x", "y"]
    assert options.get_instances_of(_Tag) == [_Tag("x"), _Tag("y")]
