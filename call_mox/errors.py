"""Exception hierarchy for call-mox."""

from __future__ import annotations

import functools


class CallMoxError(Exception):
    """Base class for all call-mox errors."""


class InvalidArgumentError(CallMoxError, TypeError):
    """Raised when a double is created or driven with an unusable value."""


class AssertError(CallMoxError, AssertionError):
    """Raised by the default fail handler when an assertion does not hold."""


DEFAULT_FAIL_EXCEPTION = AssertError.__name__


@functools.cache
def assert_error_type(name: str) -> type[AssertError]:
    """Return the :class:`AssertError` subclass called *name*.

    The default name maps to :class:`AssertError` itself. Other names produce a
    cached subclass so repeated failures raise the same type and callers can
    still catch them as ``AssertionError``.
    """
    if not name.isidentifier():
        msg = f"fail exception name must be an identifier, got {name!r}"
        raise ValueError(msg)
    if name == DEFAULT_FAIL_EXCEPTION:
        return AssertError
    return type(name, (AssertError,), {"__module__": __name__})


__all__ = [
    "DEFAULT_FAIL_EXCEPTION",
    "AssertError",
    "CallMoxError",
    "InvalidArgumentError",
    "assert_error_type",
]
