"""Stubs: spies with programmable behaviour."""

from __future__ import annotations

import abc
import builtins
import dataclasses as dc
import enum
import functools
import inspect
import typing as t

from .errors import InvalidArgumentError
from .recordable import Recordable, arguments_match, call_matches
from .spies import Spy

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .call_record import CallRecord

ExceptionLike: t.TypeAlias = "BaseException | type[BaseException] | str | None"


class BehaviorKind(enum.StrEnum):
    """What a stub does when a behaviour is selected."""

    RETURNS = "returns"
    RAISES = "raises"
    CALLS_ARG = "calls_arg"
    CALLS_FAKE = "calls_fake"
    CALL_THROUGH = "call_through"
    RETURNS_ARG = "returns_arg"


@functools.cache
def _named_exception(name: str) -> type[Exception]:
    return type(name, (Exception,), {"__module__": __name__})


def _exception_from(exc: ExceptionLike) -> BaseException | type[BaseException]:
    """Normalise *exc* into something usable with ``raise``."""
    if exc is None:
        return Exception
    if isinstance(exc, BaseException):
        return exc
    if inspect.isclass(exc) and issubclass(exc, BaseException):
        return exc
    if isinstance(exc, str):
        builtin = getattr(builtins, exc, None)
        if inspect.isclass(builtin) and issubclass(builtin, BaseException):
            return builtin
        return _named_exception(exc)
    msg = f"cannot raise {exc!r}"
    raise InvalidArgumentError(msg)


@dc.dataclass(frozen=True, slots=True)
class Behavior:
    """A single configured stub response."""

    kind: BehaviorKind
    value: t.Any = None
    args: tuple[t.Any, ...] = ()
    kwargs: dict[str, t.Any] = dc.field(default_factory=dict)

    def run(
        self,
        stub: Stub,
        receiver: object,
        args: tuple[t.Any, ...],
        kwargs: dict[str, t.Any],
        *,
        bound: bool = False,
    ) -> t.Any:  # noqa: ANN401
        """Execute the behaviour for one invocation of *stub*."""
        if self.kind is BehaviorKind.RETURNS:
            return self.value
        if self.kind is BehaviorKind.RAISES:
            raise self.value
        if self.kind is BehaviorKind.RETURNS_ARG:
            return _argument_at(args, self.value)
        if self.kind is BehaviorKind.CALLS_ARG:
            callback = _argument_at(args, self.value)
            if not callable(callback):
                msg = f"argument at index {self.value} is not callable: {callback!r}"
                raise InvalidArgumentError(msg)
            callback(*self.args, **self.kwargs)
            return None
        if self.kind is BehaviorKind.CALLS_FAKE:
            return stub._forward(  # noqa: SLF001
                self.value, receiver, args, kwargs, bound=bound
            )
        if stub.func is None:
            msg = f"{stub.name} has no original callable to call through to"
            raise InvalidArgumentError(msg)
        return stub._forward(  # noqa: SLF001
            stub.func, receiver, args, kwargs, bound=bound
        )


def _argument_at(args: tuple[t.Any, ...], index: int) -> t.Any:  # noqa: ANN401
    try:
        return args[index]
    except IndexError:
        msg = f"expected an argument at index {index} but got {len(args)} argument(s)"
        raise InvalidArgumentError(msg) from None


class _Configurable(abc.ABC):
    """Behaviour configuration methods shared by stubs and builders."""

    @abc.abstractmethod
    def _set_behavior(self, behavior: Behavior) -> None:
        """Store *behavior* for the calls this object configures."""

    def returns(self, value: object) -> t.Self:
        """Return *value*."""
        self._set_behavior(Behavior(BehaviorKind.RETURNS, value))
        return self

    def raises(self, exc: ExceptionLike = None) -> t.Self:
        """Raise *exc*.

        *exc* may be an exception instance, an exception class, the name of a
        builtin exception, any other name (a new ``Exception`` subclass with
        that name is raised) or ``None`` for a bare ``Exception``.
        """
        self._set_behavior(Behavior(BehaviorKind.RAISES, _exception_from(exc)))
        return self

    def calls_arg(self, index: int, /, *args: object, **kwargs: object) -> t.Self:
        """Call the argument at *index* with *args* and *kwargs*."""
        self._set_behavior(Behavior(BehaviorKind.CALLS_ARG, index, args, kwargs))
        return self

    def calls_fake(self, func: t.Callable[..., t.Any]) -> t.Self:
        """Delegate to *func* and return its result."""
        if not callable(func):
            msg = f"calls_fake() requires a callable, got {func!r}"
            raise InvalidArgumentError(msg)
        self._set_behavior(Behavior(BehaviorKind.CALLS_FAKE, func))
        return self

    def call_through(self) -> t.Self:
        """Forward to the wrapped callable."""
        self._set_behavior(Behavior(BehaviorKind.CALL_THROUGH))
        return self

    def returns_arg(self, index: int) -> t.Self:
        """Return the argument at *index*."""
        self._set_behavior(Behavior(BehaviorKind.RETURNS_ARG, index))
        return self


def _same_values(left: t.Iterable[object], right: t.Iterable[object]) -> bool:
    left, right = list(left), list(right)
    return len(left) == len(right) and all(
        type(a) is type(b) and (a is b or a == b)
        for a, b in zip(left, right, strict=True)
    )


@dc.dataclass(slots=True)
class ArgsCondition:
    """A ``with_args`` entry in a stub's behaviour table."""

    args: tuple[object, ...]
    kwargs: dict[str, object]
    behavior: Behavior | None = None

    def same_key(self, args: tuple[object, ...], kwargs: dict[str, object]) -> bool:
        """Return ``True`` if this entry was registered for *args*/*kwargs*."""
        return (
            _same_values(self.args, args)
            and self.kwargs.keys() == kwargs.keys()
            and _same_values(self.kwargs.values(), (kwargs[k] for k in self.kwargs))
        )

    def matches(self, args: tuple[object, ...], kwargs: dict[str, object]) -> bool:
        """Return ``True`` if an invocation with *args*/*kwargs* selects this."""
        return arguments_match(self.args, self.kwargs, args, kwargs)


class BehaviorBuilder(_Configurable, Recordable):
    """Configure one condition of a :class:`Stub`.

    Builders returned by :meth:`Stub.with_args` also expose the calls that
    matched their arguments, so they can be passed to assertions.
    """

    def __init__(
        self,
        stub: Stub,
        *,
        condition: ArgsCondition | None = None,
        call_index: int | None = None,
    ) -> None:
        self._stub = stub
        self._condition = condition
        self._call_index = call_index

    def _set_behavior(self, behavior: Behavior) -> None:
        if self._condition is not None:
            self._condition.behavior = behavior
        else:
            self._stub._on_call[t.cast("int", self._call_index)] = behavior  # noqa: SLF001

    @property
    def stub(self) -> Stub:
        """Return the stub this builder configures."""
        return self._stub

    @property
    def calls(self) -> tuple[CallRecord, ...]:
        """Return the stub calls this condition applies to."""
        calls = self._stub.calls
        if self._condition is not None:
            cond = self._condition
            return tuple(c for c in calls if call_matches(c, cond.args, cond.kwargs))
        index = t.cast("int", self._call_index)
        return calls[index : index + 1]

    @property
    def display_name(self) -> str:
        """Return the owning stub's name."""
        return self._stub.display_name

    def __repr__(self) -> str:
        """Return a debug representation."""
        if self._condition is not None:
            return f"<BehaviorBuilder {self._stub.name!r} args={self._condition.args!r}>"
        return f"<BehaviorBuilder {self._stub.name!r} call={self._call_index}>"


class Stub(_Configurable, Spy):
    """A spy whose responses are configured per call or per arguments.

    Resolution order for each invocation: behaviour registered with
    :meth:`on_call` for that call index, then the first :meth:`with_args`
    condition (in registration order) matching the arguments, then the default
    behaviour set on the stub itself. With no behaviour the stub returns
    ``None``; attached stubs never reach the original unless
    :meth:`call_through` is configured.
    """

    default_name: t.ClassVar[str] = "stub"

    def __init__(
        self, func: t.Callable[..., t.Any] | None = None, *, name: str | None = None
    ) -> None:
        super().__init__(func, name=name)
        self._default: Behavior | None = None
        self._conditions: list[ArgsCondition] = []
        self._on_call: dict[int, Behavior] = {}

    def _set_behavior(self, behavior: Behavior) -> None:
        self._default = behavior

    def with_args(self, /, *args: object, **kwargs: object) -> BehaviorBuilder:
        """Return the builder for calls starting with *args* and having *kwargs*.

        Registering the same arguments twice returns a builder for the same
        entry, so the most recent configuration wins.
        """
        for condition in self._conditions:
            if condition.same_key(args, kwargs):
                return BehaviorBuilder(self, condition=condition)
        condition = ArgsCondition(args, dict(kwargs))
        self._conditions.append(condition)
        return BehaviorBuilder(self, condition=condition)

    def on_call(self, index: int) -> BehaviorBuilder:
        """Return the builder for the call at zero-based *index*."""
        if index < 0:
            msg = f"call index must be non-negative, got {index}"
            raise InvalidArgumentError(msg)
        return BehaviorBuilder(self, call_index=index)

    def on_first_call(self) -> BehaviorBuilder:
        """Return the builder for the first call."""
        return self.on_call(0)

    def on_second_call(self) -> BehaviorBuilder:
        """Return the builder for the second call."""
        return self.on_call(1)

    def on_third_call(self) -> BehaviorBuilder:
        """Return the builder for the third call."""
        return self.on_call(2)

    def resolve_behavior(
        self, args: tuple[object, ...], kwargs: dict[str, object], index: int
    ) -> Behavior | None:
        """Return the behaviour selected for an invocation, if any."""
        behavior = self._on_call.get(index)
        if behavior is not None:
            return behavior
        for condition in self._conditions:
            if condition.behavior is not None and condition.matches(args, kwargs):
                return condition.behavior
        return self._default

    def _call_target(
        self,
        receiver: object,
        args: tuple[t.Any, ...],
        kwargs: dict[str, t.Any],
        index: int,
        *,
        bound: bool = False,
    ) -> t.Any:  # noqa: ANN401
        behavior = self.resolve_behavior(args, kwargs, index)
        if behavior is None:
            return None
        return behavior.run(self, receiver, args, kwargs, bound=bound)

    def reset_behaviors(self) -> None:
        """Drop every configured behaviour."""
        self._default = None
        self._conditions.clear()
        self._on_call.clear()

    def reset(self) -> None:
        """Drop configured behaviours and recorded calls."""
        self.reset_behaviors()
        self.reset_history()


def stub(
    target: object = None, attribute: str | None = None, *, name: str | None = None
) -> Stub:
    """Create a stub.

    ``stub()`` is anonymous; ``stub(func)`` keeps *func* for
    :meth:`Stub.call_through`; ``stub(obj, "method")`` replaces ``obj.method``
    until :meth:`Stub.restore`.
    """
    if attribute is not None:
        return Stub.attach(target, attribute, name=name)
    return Stub(t.cast("t.Callable[..., t.Any] | None", target), name=name)


__all__ = [
    "ArgsCondition",
    "Behavior",
    "BehaviorBuilder",
    "BehaviorKind",
    "ExceptionLike",
    "Stub",
    "stub",
]
