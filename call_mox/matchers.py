"""Matcher classes used for argument and value comparison.

Matchers are immutable predicates with a human readable ``label``. They can be
passed anywhere an expected argument is accepted and combine with ``&``,
``|`` and ``~``::

    spy.called_with(InstanceOf(str) & Contains("foo"), ANY)

Plain expected values are compared with :func:`deep_equal`.
"""

from __future__ import annotations

import abc
import collections.abc as cabc
import dataclasses as dc
import inspect
import numbers
import re
import typing as t

from .formatting import format_value

_MISSING = object()


def _quote(text: str) -> str:
    return f'"{text}"'


class Matcher(abc.ABC):
    """Base class for value matchers."""

    __slots__ = ()

    @property
    @abc.abstractmethod
    def label(self) -> str:
        """Return the description used in diagnostics."""

    @abc.abstractmethod
    def test(self, value: object) -> bool:
        """Return ``True`` if *value* satisfies the matcher."""

    def __call__(self, value: object) -> bool:
        """Return ``True`` if *value* satisfies the matcher."""
        return self.test(value)

    def __and__(self, other: object) -> Matcher:
        """Return a matcher requiring both operands to match."""
        return AllOf(self, match(other))

    def __or__(self, other: object) -> Matcher:
        """Return a matcher requiring either operand to match."""
        return AnyOf(self, match(other))

    def __invert__(self) -> Matcher:
        """Return a matcher negating this one."""
        return Not(self)

    def __str__(self) -> str:
        """Return the matcher label."""
        return self.label


@dc.dataclass(frozen=True, slots=True)
class Any(Matcher):
    """Match any value."""

    @property
    def label(self) -> str:
        """Return ``any``."""
        return "any"

    def test(self, value: object) -> bool:
        """Return ``True`` for any input."""
        return True


@dc.dataclass(frozen=True, slots=True)
class Defined(Matcher):
    """Match anything except ``None``."""

    @property
    def label(self) -> str:
        """Return ``defined``."""
        return "defined"

    def test(self, value: object) -> bool:
        """Return ``True`` when *value* is not ``None``."""
        return value is not None


@dc.dataclass(frozen=True, slots=True)
class Truthy(Matcher):
    """Match truthy values."""

    @property
    def label(self) -> str:
        """Return ``truthy``."""
        return "truthy"

    def test(self, value: object) -> bool:
        """Return ``bool(value)``."""
        return bool(value)


@dc.dataclass(frozen=True, slots=True)
class Falsy(Matcher):
    """Match falsy values."""

    @property
    def label(self) -> str:
        """Return ``falsy``."""
        return "falsy"

    def test(self, value: object) -> bool:
        """Return ``not value``."""
        return not value


@dc.dataclass(frozen=True, slots=True)
class Same(Matcher):
    """Match only the very same object as ``expected``."""

    expected: object

    @property
    def label(self) -> str:
        """Return ``same(<expected>)``."""
        return f"same({format_value(self.expected)})"

    def test(self, value: object) -> bool:
        """Return ``True`` if *value* is ``expected``."""
        return value is self.expected


@dc.dataclass(frozen=True, slots=True)
class TypeOf(Matcher):
    """Match values whose type is called ``name``.

    ``"function"`` matches any callable that is not a class.
    """

    name: str

    @property
    def label(self) -> str:
        """Return ``type_of("<name>")``."""
        return f"type_of({_quote(self.name)})"

    def test(self, value: object) -> bool:
        """Return ``True`` when ``type(value).__name__`` equals ``name``."""
        if self.name == "function":
            return callable(value) and not inspect.isclass(value)
        return type(value).__name__ == self.name


@dc.dataclass(frozen=True, slots=True)
class InstanceOf(Matcher):
    """Match instances of ``typ``."""

    typ: type | tuple[type, ...]

    @property
    def label(self) -> str:
        """Return ``instance_of(<Type>)``."""
        types = self.typ if isinstance(self.typ, tuple) else (self.typ,)
        return f"instance_of({', '.join(typ.__name__ for typ in types)})"

    def test(self, value: object) -> bool:
        """Return ``isinstance(value, typ)``."""
        return isinstance(value, self.typ)


@dc.dataclass(frozen=True, slots=True)
class Regex(Matcher):
    """Match strings in which ``pattern`` is found."""

    pattern: str
    _compiled: re.Pattern[str] = dc.field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Compile the pattern once."""
        object.__setattr__(self, "_compiled", re.compile(self.pattern))

    @property
    def label(self) -> str:
        """Return ``match(/<pattern>/)``."""
        return f"match(/{self.pattern}/)"

    def test(self, value: object) -> bool:
        """Return ``True`` if *value* is a string the regex matches."""
        return isinstance(value, str) and bool(self._compiled.search(value))


@dc.dataclass(frozen=True, slots=True)
class Contains(Matcher):
    """Match if ``item`` is found in *value*."""

    item: object

    @property
    def label(self) -> str:
        """Return ``contains(<item>)``."""
        item = _quote(self.item) if isinstance(self.item, str) else self.item
        return f"contains({format_value(item)})"

    def test(self, value: object) -> bool:
        """Return ``True`` if ``item in value``."""
        if isinstance(self.item, str) and not isinstance(value, str):
            return False
        try:
            return self.item in value  # type: ignore[operator]
        except TypeError:
            return False


@dc.dataclass(frozen=True, slots=True)
class StartsWith(Matcher):
    """Match strings beginning with ``prefix``."""

    prefix: str

    @property
    def label(self) -> str:
        """Return ``starts_with("<prefix>")``."""
        return f"starts_with({_quote(self.prefix)})"

    def test(self, value: object) -> bool:
        """Return ``True`` if *value* starts with ``prefix``."""
        return isinstance(value, str) and value.startswith(self.prefix)


@dc.dataclass(frozen=True, slots=True)
class HasAttrs(Matcher):
    """Match objects or mappings carrying at least the entries in ``spec``.

    Values in ``spec`` may be matchers, nested dictionaries (matched
    structurally) or plain values (compared with :func:`deep_equal`).
    """

    spec: cabc.Mapping[str, object]

    @property
    def label(self) -> str:
        """Return ``match(key: value, ...)``."""
        parts = ", ".join(
            f"{key}: {format_value(value)}" for key, value in self.spec.items()
        )
        return f"match({parts})"

    def test(self, value: object) -> bool:
        """Return ``True`` when every entry in ``spec`` matches *value*."""
        for key, expected in self.spec.items():
            actual = _lookup(value, key)
            if actual is _MISSING:
                return False
            if isinstance(expected, cabc.Mapping):
                if not HasAttrs(expected).test(actual):
                    return False
            elif not deep_equal(expected, actual):
                return False
        return True


def _lookup(value: object, key: str) -> object:
    if isinstance(value, cabc.Mapping):
        return value.get(key, _MISSING)
    return getattr(value, key, _MISSING)


@dc.dataclass(frozen=True, slots=True)
class Predicate(Matcher):
    """Use a custom ``func`` to determine a match."""

    func: t.Callable[[t.Any], object]

    @property
    def label(self) -> str:
        """Return ``match(<function name>)``."""
        return f"match({getattr(self.func, '__name__', 'custom')})"

    def test(self, value: object) -> bool:
        """Return ``True`` if ``func(value)`` is truthy."""
        return bool(self.func(value))


@dc.dataclass(frozen=True, slots=True)
class Equals(Matcher):
    """Match values deeply equal to ``expected``."""

    expected: object

    @property
    def label(self) -> str:
        """Return ``match(<expected>)``."""
        return f"match({format_value(self.expected)})"

    def test(self, value: object) -> bool:
        """Return ``deep_equal(expected, value)``."""
        return deep_equal(self.expected, value)


@dc.dataclass(frozen=True, slots=True)
class AllOf(Matcher):
    """Match when both ``left`` and ``right`` match."""

    left: Matcher
    right: Matcher

    @property
    def label(self) -> str:
        """Return ``<left> & <right>``."""
        return f"{self.left.label} & {self.right.label}"

    def test(self, value: object) -> bool:
        """Return ``True`` if both operands match."""
        return self.left.test(value) and self.right.test(value)


@dc.dataclass(frozen=True, slots=True)
class AnyOf(Matcher):
    """Match when ``left`` or ``right`` matches."""

    left: Matcher
    right: Matcher

    @property
    def label(self) -> str:
        """Return ``<left> | <right>``."""
        return f"{self.left.label} | {self.right.label}"

    def test(self, value: object) -> bool:
        """Return ``True`` if either operand matches."""
        return self.left.test(value) or self.right.test(value)


@dc.dataclass(frozen=True, slots=True)
class Not(Matcher):
    """Invert ``matcher``."""

    matcher: Matcher

    @property
    def label(self) -> str:
        """Return ``not(<matcher>)``."""
        return f"not({self.matcher.label})"

    def test(self, value: object) -> bool:
        """Return ``True`` if ``matcher`` rejects *value*."""
        return not self.matcher.test(value)


ANY: t.Final = Any()
DEFINED: t.Final = Defined()
TRUTHY: t.Final = Truthy()
FALSY: t.Final = Falsy()


def match(expectation: object) -> Matcher:
    """Coerce *expectation* into a :class:`Matcher`.

    - matchers are returned unchanged
    - mappings match structurally (:class:`HasAttrs`)
    - strings match as substrings (:class:`Contains`)
    - compiled patterns become :class:`Regex`
    - objects with a callable ``test`` attribute and plain callables become
      :class:`Predicate`
    - anything else is compared with :func:`deep_equal` (:class:`Equals`)
    """
    if isinstance(expectation, Matcher):
        return expectation
    if isinstance(expectation, cabc.Mapping):
        return HasAttrs(dict(expectation))
    if isinstance(expectation, str):
        return Contains(expectation)
    if isinstance(expectation, re.Pattern):
        return Regex(expectation.pattern)
    if not inspect.isclass(expectation):
        test = getattr(expectation, "test", None)
        if callable(test):
            return Predicate(test)
        if callable(expectation):
            return Predicate(expectation)
    return Equals(expectation)


def deep_equal(expected: object, actual: object) -> bool:
    """Return ``True`` if *actual* structurally equals *expected*.

    Matchers inside *expected* are applied to the corresponding part of
    *actual*. Lists and tuples compare element-wise and must share a type,
    mappings need equal key sets, and ``bool`` never equals a number.
    """
    if isinstance(expected, Matcher):
        return expected.test(actual)
    if expected is actual:
        return True
    if isinstance(expected, bool) or isinstance(actual, bool):
        return type(expected) is type(actual) and expected == actual
    if isinstance(expected, numbers.Number) and isinstance(actual, numbers.Number):
        return expected == actual
    if isinstance(expected, cabc.Mapping):
        return _mappings_equal(expected, actual)
    if isinstance(expected, (list, tuple)):
        return _sequences_equal(expected, actual)
    return type(expected) is type(actual) and bool(expected == actual)


def _mappings_equal(expected: cabc.Mapping[t.Any, t.Any], actual: object) -> bool:
    if not isinstance(actual, cabc.Mapping):
        return False
    if set(expected) != set(actual):
        return False
    return all(deep_equal(value, actual[key]) for key, value in expected.items())


def _sequences_equal(
    expected: list[object] | tuple[object, ...], actual: object
) -> bool:
    if type(expected) is not type(actual):
        return False
    actual_seq = t.cast("cabc.Sequence[object]", actual)
    if len(expected) != len(actual_seq):
        return False
    return all(deep_equal(e, a) for e, a in zip(expected, actual_seq, strict=True))


__all__ = [
    "ANY",
    "DEFINED",
    "FALSY",
    "TRUTHY",
    "AllOf",
    "Any",
    "AnyOf",
    "Contains",
    "Defined",
    "Equals",
    "Falsy",
    "HasAttrs",
    "InstanceOf",
    "Matcher",
    "Not",
    "Predicate",
    "Regex",
    "Same",
    "StartsWith",
    "Truthy",
    "TypeOf",
    "deep_equal",
    "match",
]
