"""Capability interface shared by spies and individual call records."""

from __future__ import annotations

import abc
import inspect
import typing as t

from .matchers import Matcher, deep_equal, match

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .call_record import CallRecord

ExceptionSpec: t.TypeAlias = "type[BaseException] | BaseException | str | None"


def _receiver_matches(expected: object, receiver: object) -> bool:
    if isinstance(expected, Matcher):
        return expected.test(receiver)
    return receiver is expected


def _loose_equal(expected: object, actual: object) -> bool:
    return match(expected).test(actual)


def arguments_match(  # noqa: PLR0913
    expected_args: t.Sequence[object],
    expected_kwargs: t.Mapping[str, object],
    actual_args: t.Sequence[object],
    actual_kwargs: t.Mapping[str, object],
    *,
    exact: bool = False,
    loose: bool = False,
) -> bool:
    """Return ``True`` if the actual arguments satisfy the expected ones.

    Positional arguments are a prefix match: trailing actual arguments are
    ignored unless *exact* is set. Expected keyword arguments must all be
    present; *exact* additionally forbids extra ones. With *loose* every
    expected value is coerced through :func:`~call_mox.matchers.match`.
    """
    if len(expected_args) > len(actual_args):
        return False
    if exact and len(expected_args) != len(actual_args):
        return False
    if exact and set(expected_kwargs) != set(actual_kwargs):
        return False
    compare = _loose_equal if loose else deep_equal
    if not all(
        compare(exp, act) for exp, act in zip(expected_args, actual_args, strict=False)
    ):
        return False
    return all(
        key in actual_kwargs and compare(value, actual_kwargs[key])
        for key, value in expected_kwargs.items()
    )


def call_matches(
    call: CallRecord,
    args: t.Sequence[object],
    kwargs: t.Mapping[str, object],
    *,
    exact: bool = False,
    loose: bool = False,
) -> bool:
    """Return ``True`` if *call* was made with *args* and *kwargs*."""
    return arguments_match(
        args, kwargs, call.args, call.kwargs, exact=exact, loose=loose
    )


def threw_matching(call: CallRecord, exc: ExceptionSpec = None) -> bool:
    """Return ``True`` if *call* raised an exception described by *exc*.

    *exc* may be ``None`` (any exception), an exception class, the name of an
    exception type, or an exception instance compared by identity.
    """
    error = call.exception
    if error is None:
        return False
    if exc is None:
        return True
    if isinstance(exc, str):
        return type(error).__name__ == exc
    if inspect.isclass(exc):
        return isinstance(error, exc)
    return error is exc


class Recordable(abc.ABC):
    """Anything exposing an ordered call history.

    :class:`~call_mox.spies.Spy` implements it over all recorded calls and
    :class:`~call_mox.call_record.CallRecord` over itself, so the assertion
    engine can query either. ``always_*`` queries are ``False`` when nothing
    was recorded.
    """

    __slots__ = ()

    @property
    @abc.abstractmethod
    def calls(self) -> t.Sequence[CallRecord]:
        """Return recorded calls in invocation order."""

    @property
    @abc.abstractmethod
    def display_name(self) -> str:
        """Return the name used in diagnostics."""

    # ------------------------------------------------------------------
    # Counts
    # ------------------------------------------------------------------
    @property
    def call_count(self) -> int:
        """Return the number of recorded calls."""
        return len(self.calls)

    @property
    def called(self) -> bool:
        """Return ``True`` if at least one call was recorded."""
        return self.call_count > 0

    @property
    def not_called(self) -> bool:
        """Return ``True`` if no call was recorded."""
        return self.call_count == 0

    @property
    def called_once(self) -> bool:
        """Return ``True`` if exactly one call was recorded."""
        return self.call_count == 1

    @property
    def called_twice(self) -> bool:
        """Return ``True`` if exactly two calls were recorded."""
        return self.call_count == 2  # noqa: PLR2004

    @property
    def called_thrice(self) -> bool:
        """Return ``True`` if exactly three calls were recorded."""
        return self.call_count == 3  # noqa: PLR2004

    # ------------------------------------------------------------------
    # Predicates over the history
    # ------------------------------------------------------------------
    def _any(self, predicate: t.Callable[[CallRecord], bool]) -> bool:
        return any(predicate(call) for call in self.calls)

    def _all(self, predicate: t.Callable[[CallRecord], bool]) -> bool:
        calls = self.calls
        return bool(calls) and all(predicate(call) for call in calls)

    def called_on(self, obj: object) -> bool:
        """Return ``True`` if any call had *obj* as receiver."""
        return self._any(lambda call: _receiver_matches(obj, call.receiver))

    def always_called_on(self, obj: object) -> bool:
        """Return ``True`` if every call had *obj* as receiver."""
        return self._all(lambda call: _receiver_matches(obj, call.receiver))

    def called_with(self, /, *args: object, **kwargs: object) -> bool:
        """Return ``True`` if any call started with *args* and had *kwargs*."""
        return self._any(lambda call: call_matches(call, args, kwargs))

    def always_called_with(self, /, *args: object, **kwargs: object) -> bool:
        """Return ``True`` if every call started with *args* and had *kwargs*."""
        return self._all(lambda call: call_matches(call, args, kwargs))

    def never_called_with(self, /, *args: object, **kwargs: object) -> bool:
        """Return ``True`` if no call started with *args* and had *kwargs*."""
        return not self.called_with(*args, **kwargs)

    def called_with_match(self, /, *args: object, **kwargs: object) -> bool:
        """Like :meth:`called_with`, coercing expectations through ``match``."""
        return self._any(lambda call: call_matches(call, args, kwargs, loose=True))

    def always_called_with_match(self, /, *args: object, **kwargs: object) -> bool:
        """Like :meth:`always_called_with`, coercing expectations."""
        return self._all(lambda call: call_matches(call, args, kwargs, loose=True))

    def never_called_with_match(self, /, *args: object, **kwargs: object) -> bool:
        """Like :meth:`never_called_with`, coercing expectations."""
        return not self.called_with_match(*args, **kwargs)

    def called_with_exactly(self, /, *args: object, **kwargs: object) -> bool:
        """Return ``True`` if any call had exactly *args* and *kwargs*."""
        return self._any(lambda call: call_matches(call, args, kwargs, exact=True))

    def always_called_with_exactly(self, /, *args: object, **kwargs: object) -> bool:
        """Return ``True`` if every call had exactly *args* and *kwargs*."""
        return self._all(lambda call: call_matches(call, args, kwargs, exact=True))

    def threw(self, exc: ExceptionSpec = None) -> bool:
        """Return ``True`` if any call raised an exception matching *exc*."""
        return self._any(lambda call: threw_matching(call, exc))

    def always_threw(self, exc: ExceptionSpec = None) -> bool:
        """Return ``True`` if every call raised an exception matching *exc*."""
        return self._all(lambda call: threw_matching(call, exc))

    def returned(self, value: object) -> bool:
        """Return ``True`` if any call returned *value* (deep equality)."""
        return self._any(
            lambda call: call.exception is None and deep_equal(value, call.return_value)
        )

    def always_returned(self, value: object) -> bool:
        """Return ``True`` if every call returned *value* (deep equality)."""
        return self._all(
            lambda call: call.exception is None and deep_equal(value, call.return_value)
        )

    def called_with_new(self) -> bool:
        """Return ``True`` if any call constructed a new instance."""
        return self._any(lambda call: call.constructed)

    def always_called_with_new(self) -> bool:
        """Return ``True`` if every call constructed a new instance."""
        return self._all(lambda call: call.constructed)


__all__ = [
    "ExceptionSpec",
    "Recordable",
    "arguments_match",
    "call_matches",
    "threw_matching",
]
