"""Spies: callables that record every invocation of the function they wrap."""

from __future__ import annotations

import bisect
import dataclasses as dc
import functools
import inspect
import itertools
import logging
import operator
import time
import types
import typing as t

from .call_record import CallRecord, next_call_id
from .errors import InvalidArgumentError
from .recordable import Recordable

logger = logging.getLogger(__name__)

_spy_ids = itertools.count(1)

_by_call_id = operator.attrgetter("call_id")


@dc.dataclass(slots=True)
class Attachment:
    """Where an attached double lives and what it replaced."""

    owner: object
    attribute: str
    original: object
    owned: bool


def _owns_attribute(owner: object, attribute: str) -> bool:
    """Return ``True`` if *attribute* lives in *owner*'s own namespace."""
    try:
        return attribute in vars(owner)
    except TypeError:
        return False


class Spy(Recordable):
    """Record calls to an optional wrapped callable.

    Calling the spy forwards to the wrapped callable and returns its result.
    Exceptions are recorded and re-raised unchanged. A spy without a wrapped
    callable returns ``None``.
    """

    default_name: t.ClassVar[str] = "spy"

    def __init__(
        self, func: t.Callable[..., t.Any] | None = None, *, name: str | None = None
    ) -> None:
        if func is not None and not callable(func):
            msg = f"cannot wrap non-callable {func!r}"
            raise InvalidArgumentError(msg)
        self.func = func
        self.id = next(_spy_ids)
        self.name = name or getattr(func, "__name__", None) or self.default_name
        self._calls: list[CallRecord] = []
        self._invocations = 0
        self._receiver: object = None
        self._bind_receiver = False
        self._constructor = inspect.isclass(func)
        self._attachment: Attachment | None = None
        if func is not None:
            functools.update_wrapper(self, func, updated=())

    # ------------------------------------------------------------------
    # Creation helpers
    # ------------------------------------------------------------------
    @classmethod
    def attach(
        cls, owner: object, attribute: str, *, name: str | None = None
    ) -> t.Self:
        """Replace ``owner.attribute`` with a new double wrapping it.

        Plain functions on a class are wrapped as descriptors so calls made
        through an instance record that instance as receiver. Anything else
        records *owner* as receiver. Use :meth:`restore` to undo.
        """
        if owner is None:
            msg = f"cannot wrap attribute {attribute!r} of None"
            raise InvalidArgumentError(msg)
        try:
            raw = inspect.getattr_static(owner, attribute)
        except AttributeError:
            msg = f"attempted to wrap missing attribute {attribute!r} of {owner!r}"
            raise InvalidArgumentError(msg) from None
        if isinstance(raw, Spy):
            msg = f"attempted to wrap {attribute!r} which is already wrapped"
            raise InvalidArgumentError(msg)

        bind = inspect.isclass(owner) and inspect.isfunction(raw)
        target = raw if bind else getattr(owner, attribute)
        if not callable(target):
            msg = f"attempted to wrap non-callable attribute {attribute!r}"
            raise InvalidArgumentError(msg)

        double = cls(target, name=name or attribute)
        if bind:
            double._bind_receiver = True
            double._constructor = attribute == "__init__"
        else:
            double._receiver = owner
        double._attachment = Attachment(
            owner=owner,
            attribute=attribute,
            original=raw,
            owned=_owns_attribute(owner, attribute),
        )
        setattr(owner, attribute, double)
        logger.debug("Attached %s to %r.%s", cls.__name__, owner, attribute)
        return double

    @property
    def attached(self) -> bool:
        """Return ``True`` while the spy replaces an attribute."""
        return self._attachment is not None

    def restore(self) -> None:
        """Put back the attribute replaced by :meth:`attach`.

        Inherited attributes are restored by deleting the override. Calling
        this on a spy that is not attached does nothing.
        """
        attachment = self._attachment
        if attachment is None:
            return
        if attachment.owned:
            setattr(attachment.owner, attachment.attribute, attachment.original)
        else:
            delattr(attachment.owner, attachment.attribute)
        self._attachment = None
        logger.debug("Restored %r.%s", attachment.owner, attachment.attribute)

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------
    @property
    def _binds_instances(self) -> bool:
        # Spies placed in a class body act like the functions they wrap.
        if self._bind_receiver:
            return True
        if self._attachment is not None:
            return False
        return self.func is None or inspect.isfunction(self.func)

    def __get__(self, instance: object, owner: type | None = None) -> t.Any:  # noqa: ANN401
        """Bind to *instance* when the spy stands in for a method."""
        if instance is None or not self._binds_instances:
            return self
        return types.MethodType(self._call_method, instance)

    def __call__(self, /, *args: t.Any, **kwargs: t.Any) -> t.Any:  # noqa: ANN401
        """Invoke the spy, recording the call."""
        receiver = self._receiver
        bound = self._bind_receiver and bool(args)
        if bound:
            receiver, args = args[0], args[1:]
        return self._invoke(receiver, args, kwargs, bound=bound)

    def invoke_on(
        self, receiver: object, /, *args: t.Any, **kwargs: t.Any
    ) -> t.Any:  # noqa: ANN401
        """Invoke the spy with *receiver* recorded as the call's receiver.

        Spies attached over a class's method also pass *receiver* on to the
        original as its first argument.
        """
        return self._invoke(receiver, args, kwargs, bound=self._bind_receiver)

    def _call_method(
        self, receiver: object, /, *args: t.Any, **kwargs: t.Any
    ) -> t.Any:  # noqa: ANN401
        return self._invoke(receiver, args, kwargs, bound=True)

    def _invoke(
        self,
        receiver: object,
        args: tuple[t.Any, ...],
        kwargs: dict[str, t.Any],
        *,
        bound: bool = False,
    ) -> t.Any:  # noqa: ANN401
        index = self._invocations
        self._invocations += 1
        call_id = next_call_id()
        started = time.monotonic()
        record = functools.partial(
            CallRecord,
            spy_name=self.name,
            call_id=call_id,
            args=args,
            kwargs=dict(kwargs),
            timestamp=started,
        )
        try:
            result = self._call_target(receiver, args, kwargs, index, bound=bound)
        except BaseException as exc:
            self._record(
                record(
                    receiver=receiver,
                    exception=exc,
                    constructed=self._constructed(None, bound=bound),
                )
            )
            raise
        constructed = self._constructed(result, bound=bound)
        if constructed and receiver is None:
            receiver = result
        self._record(
            record(receiver=receiver, return_value=result, constructed=constructed)
        )
        return result

    def _constructed(self, result: object, *, bound: bool) -> bool:
        """Return ``True`` if the call built an instance of the wrapped class."""
        if not self._constructor:
            return False
        if self._bind_receiver:
            # __init__ called through an instance
            return bound
        return isinstance(result, t.cast("type", self.func))

    def _record(self, call: CallRecord) -> None:
        # Nested calls finish first, so keep the history sorted by ordinal.
        bisect.insort(self._calls, call, key=_by_call_id)

    def _call_target(
        self,
        receiver: object,
        args: tuple[t.Any, ...],
        kwargs: dict[str, t.Any],
        index: int,
        *,
        bound: bool = False,
    ) -> t.Any:  # noqa: ANN401
        """Produce the result of one invocation; subclasses override this."""
        del index
        if self.func is None:
            return None
        return self._forward(self.func, receiver, args, kwargs, bound=bound)

    def _forward(
        self,
        func: t.Callable[..., t.Any],
        receiver: object,
        args: tuple[t.Any, ...],
        kwargs: dict[str, t.Any],
        *,
        bound: bool = False,
    ) -> t.Any:  # noqa: ANN401
        if bound:
            return func(receiver, *args, **kwargs)
        return func(*args, **kwargs)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    @property
    def calls(self) -> tuple[CallRecord, ...]:
        """Return the recorded calls in invocation order."""
        return tuple(self._calls)

    @property
    def display_name(self) -> str:
        """Return the name used in diagnostics."""
        return self.name

    def get_call(self, index: int) -> CallRecord | None:
        """Return the call at *index* or ``None`` when out of range."""
        try:
            return self._calls[index]
        except IndexError:
            return None

    @property
    def first_call(self) -> CallRecord | None:
        """Return the first recorded call, if any."""
        return self.get_call(0)

    @property
    def second_call(self) -> CallRecord | None:
        """Return the second recorded call, if any."""
        return self.get_call(1)

    @property
    def third_call(self) -> CallRecord | None:
        """Return the third recorded call, if any."""
        return self.get_call(2)

    @property
    def last_call(self) -> CallRecord | None:
        """Return the most recent call, if any."""
        return self.get_call(-1)

    @property
    def args(self) -> list[tuple[object, ...]]:
        """Return the positional arguments of every call."""
        return [call.args for call in self._calls]

    @property
    def kwargs_list(self) -> list[dict[str, object]]:
        """Return the keyword arguments of every call."""
        return [call.kwargs for call in self._calls]

    @property
    def receivers(self) -> list[object]:
        """Return the receiver of every call."""
        return [call.receiver for call in self._calls]

    @property
    def return_values(self) -> list[object]:
        """Return the value returned by every call (``None`` if it raised)."""
        return [call.return_value for call in self._calls]

    @property
    def exceptions(self) -> list[BaseException | None]:
        """Return the exception raised by every call, or ``None``."""
        return [call.exception for call in self._calls]

    def called_before(self, other: Recordable) -> bool:
        """Return ``True`` if this spy's first call precedes *other*'s last."""
        theirs = other.calls
        if not self._calls or not theirs:
            return False
        return self._calls[0].call_id < theirs[-1].call_id

    def called_after(self, other: Recordable) -> bool:
        """Return ``True`` if this spy's last call follows *other*'s first."""
        theirs = other.calls
        if not self._calls or not theirs:
            return False
        return self._calls[-1].call_id > theirs[0].call_id

    def called_immediately_before(self, other: Recordable) -> bool:
        """Return ``True`` if this spy's last call directly precedes *other*'s."""
        theirs = other.calls
        if not self._calls or not theirs:
            return False
        return self._calls[-1].call_id == theirs[-1].call_id - 1

    def called_immediately_after(self, other: Recordable) -> bool:
        """Return ``True`` if this spy's last call directly follows *other*'s."""
        theirs = other.calls
        if not self._calls or not theirs:
            return False
        return self._calls[-1].call_id == theirs[-1].call_id + 1

    def reset_history(self) -> None:
        """Forget all recorded calls."""
        self._calls.clear()
        self._invocations = 0

    def __str__(self) -> str:
        """Return the spy's display name."""
        return self.name

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"<{type(self).__name__} {self.name!r} calls={self.call_count}>"


def spy(
    target: object = None, attribute: str | None = None, *, name: str | None = None
) -> Spy:
    """Create a spy.

    ``spy()`` records calls and returns ``None``; ``spy(func)`` wraps *func*;
    ``spy(obj, "method")`` replaces ``obj.method`` until :meth:`Spy.restore`.
    """
    if attribute is not None:
        return Spy.attach(target, attribute, name=name)
    return Spy(t.cast("t.Callable[..., t.Any] | None", target), name=name)


__all__ = ["Attachment", "Spy", "spy"]
