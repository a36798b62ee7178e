"""Assertions over recorded call history.

Every assertion takes a spy, stub or call record first, checks it, and then
either reports success to the pass handler or hands a diagnostic message to
:func:`fail`. The default fail handler raises :class:`~call_mox.errors.AssertError`
(or the subclass named by :func:`get_fail_exception`); installing a handler
that does not raise turns assertions into observations::

    with use_handlers(fail=messages.append):
        called_once(my_spy)
"""

from __future__ import annotations

import collections.abc as cabc
import contextlib
import dataclasses as dc
import functools
import logging
import typing as t

from . import matchers
from .errors import DEFAULT_FAIL_EXCEPTION, assert_error_type
from .formatting import CALL_INDENT, count_word, format_args, format_calls, format_value
from .recordable import Recordable

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .recordable import ExceptionSpec

logger = logging.getLogger(__name__)

FailHandler: t.TypeAlias = t.Callable[[str], object]
PassHandler: t.TypeAlias = t.Callable[[str], object]


def default_fail(message: str) -> t.NoReturn:
    """Raise the configured assertion error carrying *message*."""
    raise assert_error_type(get_fail_exception())(message)


def default_pass(name: str) -> None:
    """Ignore a passing assertion."""
    del name


@dc.dataclass(frozen=True, slots=True)
class AssertionConfig:
    """Process-wide handlers used by every assertion."""

    fail: FailHandler = default_fail
    on_pass: PassHandler = default_pass
    fail_exception: str = DEFAULT_FAIL_EXCEPTION


@dc.dataclass(slots=True)
class _State:
    config: AssertionConfig = dc.field(default_factory=AssertionConfig)


_state = _State()


# ----------------------------------------------------------------------
# Handler configuration
# ----------------------------------------------------------------------
def current_config() -> AssertionConfig:
    """Return the handlers currently in force."""
    return _state.config


def install_handlers(
    *,
    fail: FailHandler | None = None,
    on_pass: PassHandler | None = None,
    fail_exception: str | None = None,
) -> AssertionConfig:
    """Replace the given handlers and return the previous configuration.

    Arguments left as ``None`` keep their current value. Pass the returned
    object to :func:`restore_handlers` to undo the change.
    """
    previous = _state.config
    changes: dict[str, object] = {}
    if fail is not None:
        changes["fail"] = fail
    if on_pass is not None:
        changes["on_pass"] = on_pass
    if fail_exception is not None:
        assert_error_type(fail_exception)
        changes["fail_exception"] = fail_exception
    _state.config = dc.replace(previous, **changes)
    logger.debug("Installed assertion handlers: %s", sorted(changes))
    return previous


def restore_handlers(config: AssertionConfig) -> None:
    """Reinstate *config*, typically returned by :func:`install_handlers`."""
    _state.config = config
    logger.debug("Restored assertion handlers")


@contextlib.contextmanager
def use_handlers(
    *,
    fail: FailHandler | None = None,
    on_pass: PassHandler | None = None,
    fail_exception: str | None = None,
) -> t.Iterator[AssertionConfig]:
    """Install handlers for the duration of a ``with`` block."""
    previous = install_handlers(
        fail=fail, on_pass=on_pass, fail_exception=fail_exception
    )
    try:
        yield _state.config
    finally:
        restore_handlers(previous)


def reset_handlers() -> None:
    """Return to the default handlers and exception name."""
    _state.config = AssertionConfig()


def get_fail_exception() -> str:
    """Return the name of the exception raised by the default fail handler."""
    return _state.config.fail_exception


def set_fail_exception(name: str) -> None:
    """Set the name of the exception raised by the default fail handler."""
    install_handlers(fail_exception=name)


def fail(message: str) -> None:
    """Report a failed assertion through the installed fail handler."""
    _state.config.fail(message)


# ----------------------------------------------------------------------
# Assertion plumbing
# ----------------------------------------------------------------------
_ASSERTIONS: dict[str, t.Callable[..., None]] = {}


def _register(func: t.Callable[..., None]) -> t.Callable[..., None]:
    _ASSERTIONS[func.__name__] = func
    return func


def _settle(name: str, message: str | None) -> None:
    if message is None:
        _state.config.on_pass(name)
    else:
        fail(message)


def _accepts(fake: object) -> bool:
    """Return ``True`` if *fake* records calls, failing otherwise."""
    if isinstance(fake, Recordable):
        return True
    fail("fake is not a spy" if fake is None else f"{format_value(fake)} is not a spy")
    return False


def _assertion(check: t.Callable[..., str | None]) -> t.Callable[..., None]:
    """Turn *check*, returning a failure message or ``None``, into an assertion."""
    name = check.__name__

    @functools.wraps(check)
    def assertion(fake: object = None, /, *args: t.Any, **kwargs: t.Any) -> None:
        if not _accepts(fake):
            return
        _settle(name, check(fake, *args, **kwargs))

    return _register(assertion)


def _never_called(fake: Recordable) -> str:
    return (
        f"expected {fake.display_name} to have been called at least once "
        "but was never called"
    )


def _count_failure(fake: Recordable, expected: int) -> str:
    if fake.not_called:
        return _never_called(fake)
    return (
        f"expected {fake.display_name} to be called {count_word(expected)} "
        f"but was called {count_word(fake.call_count)}{format_calls(fake.calls)}"
    )


def _args_failure(
    fake: Recordable,
    phrase: str,
    args: tuple[object, ...],
    kwargs: dict[str, object],
) -> str:
    return (
        f"expected {fake.display_name} to {phrase} {format_args(args, kwargs)}"
        f"{format_calls(fake.calls)}"
    )


def _receiver_failure(fake: Recordable, obj: object, *, always: bool) -> str:
    receivers = ", ".join(format_value(call.receiver) for call in fake.calls)
    qualifier = "always " if always else ""
    return (
        f"expected {fake.display_name} to {qualifier}be called with "
        f"{format_value(obj)} as this but was called with {receivers}"
    )


# ----------------------------------------------------------------------
# Call counts
# ----------------------------------------------------------------------
@_assertion
def called(fake: Recordable) -> str | None:
    """Assert that *fake* was called at least once."""
    return None if fake.called else _never_called(fake)


@_assertion
def not_called(fake: Recordable) -> str | None:
    """Assert that *fake* was never called."""
    if fake.not_called:
        return None
    return (
        f"expected {fake.display_name} to not have been called but was called "
        f"{count_word(fake.call_count)}{format_calls(fake.calls)}"
    )


@_assertion
def called_once(fake: Recordable) -> str | None:
    """Assert that *fake* was called exactly once."""
    return None if fake.called_once else _count_failure(fake, 1)


@_assertion
def called_twice(fake: Recordable) -> str | None:
    """Assert that *fake* was called exactly twice."""
    return None if fake.called_twice else _count_failure(fake, 2)


@_assertion
def called_thrice(fake: Recordable) -> str | None:
    """Assert that *fake* was called exactly three times."""
    return None if fake.called_thrice else _count_failure(fake, 3)


@_assertion
def call_count(fake: Recordable, count: int) -> str | None:
    """Assert that *fake* was called exactly *count* times."""
    return None if fake.call_count == count else _count_failure(fake, count)


@_register
def call_order(*fakes: object) -> None:
    """Assert that *fakes* were called in the given order.

    Each fake must have a call later than the one chosen for the fake before
    it; a fake may appear more than once.
    """
    if not all(_accepts(fake) for fake in fakes):
        return
    recordables = t.cast("tuple[Recordable, ...]", fakes)
    _settle("call_order", _order_failure(recordables))


def _order_failure(fakes: tuple[Recordable, ...]) -> str | None:
    previous = 0
    for fake in fakes:
        later = [call.call_id for call in fake.calls if call.call_id > previous]
        if not later:
            break
        previous = later[0]
    else:
        return None

    unique = list({id(fake): fake for fake in fakes}.values())
    called_fakes = sorted(
        (fake for fake in unique if fake.called),
        key=lambda fake: fake.calls[0].call_id,
    )
    expected = ", ".join(fake.display_name for fake in fakes)
    actual = ", ".join(fake.display_name for fake in called_fakes)
    return f"expected {expected} to be called in order but were called as {actual}"


# ----------------------------------------------------------------------
# Receivers
# ----------------------------------------------------------------------
@_assertion
def called_on(fake: Recordable, obj: object) -> str | None:
    """Assert that some call of *fake* had *obj* as receiver."""
    if fake.called_on(obj):
        return None
    return _receiver_failure(fake, obj, always=False)


@_assertion
def always_called_on(fake: Recordable, obj: object) -> str | None:
    """Assert that every call of *fake* had *obj* as receiver."""
    if fake.always_called_on(obj):
        return None
    return _receiver_failure(fake, obj, always=True)


# ----------------------------------------------------------------------
# Arguments
# ----------------------------------------------------------------------
@_assertion
def called_with(fake: Recordable, /, *args: object, **kwargs: object) -> str | None:
    """Assert that some call of *fake* started with *args* and had *kwargs*."""
    if fake.called_with(*args, **kwargs):
        return None
    return _args_failure(fake, "be called with arguments", args, kwargs)


@_assertion
def always_called_with(
    fake: Recordable, /, *args: object, **kwargs: object
) -> str | None:
    """Assert that every call of *fake* started with *args* and had *kwargs*."""
    if fake.always_called_with(*args, **kwargs):
        return None
    return _args_failure(fake, "always be called with arguments", args, kwargs)


@_assertion
def never_called_with(
    fake: Recordable, /, *args: object, **kwargs: object
) -> str | None:
    """Assert that no call of *fake* started with *args* and had *kwargs*."""
    if fake.never_called_with(*args, **kwargs):
        return None
    return _args_failure(fake, "never be called with arguments", args, kwargs)


@_assertion
def called_with_match(
    fake: Recordable, /, *args: object, **kwargs: object
) -> str | None:
    """Assert that some call of *fake* matched *args* loosely."""
    if fake.called_with_match(*args, **kwargs):
        return None
    return _args_failure(fake, "be called with match", args, kwargs)


@_assertion
def always_called_with_match(
    fake: Recordable, /, *args: object, **kwargs: object
) -> str | None:
    """Assert that every call of *fake* matched *args* loosely."""
    if fake.always_called_with_match(*args, **kwargs):
        return None
    return _args_failure(fake, "always be called with match", args, kwargs)


@_assertion
def never_called_with_match(
    fake: Recordable, /, *args: object, **kwargs: object
) -> str | None:
    """Assert that no call of *fake* matched *args* loosely."""
    if fake.never_called_with_match(*args, **kwargs):
        return None
    return _args_failure(fake, "never be called with match", args, kwargs)


@_assertion
def called_with_exactly(
    fake: Recordable, /, *args: object, **kwargs: object
) -> str | None:
    """Assert that some call of *fake* had exactly *args* and *kwargs*."""
    if fake.called_with_exactly(*args, **kwargs):
        return None
    return _args_failure(fake, "be called with exact arguments", args, kwargs)


@_assertion
def always_called_with_exactly(
    fake: Recordable, /, *args: object, **kwargs: object
) -> str | None:
    """Assert that every call of *fake* had exactly *args* and *kwargs*."""
    if fake.always_called_with_exactly(*args, **kwargs):
        return None
    return _args_failure(fake, "always be called with exact arguments", args, kwargs)


# ----------------------------------------------------------------------
# Construction and exceptions
# ----------------------------------------------------------------------
@_assertion
def called_with_new(fake: Recordable) -> str | None:
    """Assert that some call of *fake* constructed an instance."""
    if fake.called_with_new():
        return None
    return f"expected {fake.display_name} to be called with new"


@_assertion
def always_called_with_new(fake: Recordable) -> str | None:
    """Assert that every call of *fake* constructed an instance."""
    if fake.always_called_with_new():
        return None
    return f"expected {fake.display_name} to always be called with new"


@_assertion
def threw(fake: Recordable, exc: ExceptionSpec = None) -> str | None:
    """Assert that some call of *fake* raised an exception matching *exc*."""
    if fake.threw(exc):
        return None
    return f"{fake.display_name} did not throw exception{format_calls(fake.calls)}"


@_assertion
def always_threw(fake: Recordable, exc: ExceptionSpec = None) -> str | None:
    """Assert that every call of *fake* raised an exception matching *exc*."""
    if fake.always_threw(exc):
        return None
    return (
        f"{fake.display_name} did not always throw exception"
        f"{format_calls(fake.calls)}"
    )


@_register
def match(actual: object, expected: object) -> None:
    """Assert that *actual* satisfies ``matchers.match(expected)``."""
    if matchers.match(expected).test(actual):
        _settle("match", None)
        return
    fail(
        f"expected value to match{CALL_INDENT}expected = {format_value(expected)}"
        f"{CALL_INDENT}actual = {format_value(actual)}"
    )


# ----------------------------------------------------------------------
# Exposure
# ----------------------------------------------------------------------
def assertion_names() -> list[str]:
    """Return the names of every assertion in registration order."""
    return list(_ASSERTIONS)


def expose(
    target: object, *, prefix: str = "assert", include_fail: bool = True
) -> object:
    """Copy every assertion onto *target* and return it.

    Names become ``f"{prefix}_{name}"``, or the bare name when *prefix* is
    empty. Mutable mappings such as ``globals()`` receive keys; other objects
    receive attributes. With *include_fail* the current :func:`fail` and the
    configured exception name are copied as ``fail`` and ``fail_exception``.
    """
    if target is None:
        msg = "expose() requires a target object"
        raise TypeError(msg)
    entries: dict[str, object] = {
        f"{prefix}_{name}" if prefix else name: func
        for name, func in _ASSERTIONS.items()
    }
    if include_fail:
        entries["fail"] = fail
        entries["fail_exception"] = get_fail_exception()
    if isinstance(target, cabc.MutableMapping):
        target.update(entries)
    else:
        for key, value in entries.items():
            setattr(target, key, value)
    return target


__all__ = [
    "AssertionConfig",
    "FailHandler",
    "PassHandler",
    "always_called_on",
    "always_called_with",
    "always_called_with_exactly",
    "always_called_with_match",
    "always_called_with_new",
    "always_threw",
    "assertion_names",
    "call_count",
    "call_order",
    "called",
    "called_on",
    "called_once",
    "called_thrice",
    "called_twice",
    "called_with",
    "called_with_exactly",
    "called_with_match",
    "called_with_new",
    "current_config",
    "default_fail",
    "default_pass",
    "expose",
    "fail",
    "get_fail_exception",
    "install_handlers",
    "match",
    "never_called_with",
    "never_called_with_match",
    "not_called",
    "reset_handlers",
    "restore_handlers",
    "set_fail_exception",
    "threw",
    "use_handlers",
]
