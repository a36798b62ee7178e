"""Unit tests for :mod:`call_mox.spies`."""

from __future__ import annotations

import inspect

import pytest

from call_mox import ANY, InstanceOf, InvalidArgumentError, Spy, spy


def add(a: int, b: int = 0) -> int:
    """Return the sum of two numbers."""
    return a + b


class Greeter:
    """Small class whose methods get wrapped in the tests."""

    prefix = "hello"

    def __init__(self, name: str = "world") -> None:
        self.name = name

    def greet(self, punctuation: str = "!") -> str:
        return f"{self.prefix} {self.name}{punctuation}"

    @staticmethod
    def shout(text: str) -> str:
        return text.upper()

    @classmethod
    def create(cls, name: str) -> Greeter:
        return cls(name)


class TestCreation:
    """The three ways of creating a spy."""

    def test_anonymous_spy_returns_none(self) -> None:
        """An anonymous spy records calls and returns ``None``."""
        fake = spy()
        assert fake(1, 2) is None
        assert fake.name == "spy"
        assert fake.call_count == 1
        assert fake.args == [(1, 2)]

    def test_wrapping_function_forwards_calls(self) -> None:
        """A spy around a function forwards arguments and results."""
        fake = spy(add)
        assert fake(2, b=3) == 5
        assert fake.name == "add"
        assert fake.return_values == [5]
        assert fake.kwargs_list == [{"b": 3}]

    def test_wrapping_preserves_metadata(self) -> None:
        """Name, docstring and signature survive wrapping."""
        fake = spy(add)
        assert fake.__name__ == "add"
        assert fake.__doc__ == add.__doc__
        assert inspect.signature(fake) == inspect.signature(add)

    def test_name_override(self) -> None:
        """An explicit name wins over the wrapped function's name."""
        assert spy(add, name="adder").name == "adder"

    def test_non_callable_is_rejected(self) -> None:
        """Wrapping a non-callable raises ``InvalidArgumentError``."""
        with pytest.raises(InvalidArgumentError):
            spy(42)

    def test_spy_ids_increase(self) -> None:
        """Each spy gets a new creation ordinal."""
        first, second = spy(), spy()
        assert second.id > first.id


class TestRecording:
    """What a single invocation records."""

    def test_exceptions_are_recorded_and_reraised(self) -> None:
        """Errors from the wrapped callable propagate unchanged."""
        error = ValueError("boom")

        def explode() -> None:
            raise error

        fake = spy(explode)
        with pytest.raises(ValueError, match="boom") as caught:
            fake()
        assert caught.value is error
        assert fake.exceptions == [error]
        assert fake.threw()
        assert fake.threw(ValueError)
        assert fake.threw("ValueError")
        assert fake.threw(error)
        assert not fake.threw(TypeError)
        assert fake.return_values == [None]

    def test_arguments_are_captured_by_reference(self) -> None:
        """Mutable arguments are not copied."""
        payload: list[int] = []
        fake = spy()
        fake(payload)
        payload.append(1)
        assert fake.first_call is not None
        assert fake.first_call.args[0] is payload
        assert fake.called_with([1])

    def test_call_accessors_are_stable(self) -> None:
        """Reading the same call twice yields the same record."""
        fake = spy()
        fake("a")
        fake("b")
        assert fake.last_call is fake.last_call
        assert fake.get_call(1) is fake.last_call
        assert fake.get_call(-2) is fake.first_call
        assert fake.get_call(5) is None
        assert fake.third_call is None

    def test_nested_calls_keep_temporal_order(self) -> None:
        """A recursive call is recorded after its caller's ordinal."""
        calls: list[int] = []

        def countdown(n: int) -> int:
            calls.append(n)
            return n if n == 0 else fake(n - 1)

        fake = spy(countdown)
        fake(2)
        assert [call.args for call in fake.calls] == [(2,), (1,), (0,)]
        ids = [call.call_id for call in fake.calls]
        assert ids == sorted(ids)

    def test_reset_history_clears_calls(self) -> None:
        """``reset_history`` forgets every call."""
        fake = spy()
        fake()
        fake.reset_history()
        assert fake.not_called
        assert fake.last_call is None

    def test_class_target_constructs_instances(self) -> None:
        """Spying on a class records construction and the new instance."""
        fake = spy(Greeter)
        instance = fake("ada")
        assert isinstance(instance, Greeter)
        assert fake.called_with_new()
        assert fake.always_called_with_new()
        assert fake.called_on(instance)


class TestCountQueries:
    """Count properties."""

    def test_counts(self) -> None:
        """Count properties follow the number of calls."""
        fake = spy()
        assert fake.not_called
        assert not fake.called
        fake()
        assert fake.called_once
        fake()
        assert fake.called_twice
        fake()
        assert fake.called_thrice
        assert not fake.called_once
        assert fake.call_count == 3


class TestArgumentQueries:
    """Argument matching on spies."""

    def test_called_with_is_a_prefix_match(self) -> None:
        """Extra trailing arguments are ignored by ``called_with``."""
        fake = spy()
        fake(1, 2, 3)
        assert fake.called_with(1, 2)
        assert fake.called_with(1, ANY, 3)
        assert not fake.called_with(1, 2, 3, 4)
        assert not fake.called_with_exactly(1, 2)
        assert fake.called_with_exactly(1, 2, 3)

    def test_keyword_arguments(self) -> None:
        """Expected keyword arguments must be present and equal."""
        fake = spy()
        fake(1, mode="r", extra=True)
        assert fake.called_with(1, mode="r")
        assert not fake.called_with(1, mode="w")
        assert not fake.called_with_exactly(1, mode="r")
        assert fake.called_with_exactly(1, mode="r", extra=True)

    def test_always_and_never(self) -> None:
        """``always`` needs every call; ``never`` needs none."""
        fake = spy()
        fake(1, "a")
        fake(1, "b")
        assert fake.always_called_with(1)
        assert not fake.always_called_with(1, "a")
        assert fake.never_called_with(2)
        assert not fake.never_called_with(1, "b")

    def test_always_is_false_without_calls(self) -> None:
        """``always`` queries require at least one call."""
        fake = spy()
        assert not fake.always_called_with()
        assert not fake.always_called_on(None)
        assert not fake.always_threw()
        assert not fake.always_returned(None)
        assert fake.never_called_with(1)

    def test_match_variants_coerce_expectations(self) -> None:
        """``*_match`` queries treat strings as substrings and dicts as subsets."""
        fake = spy()
        fake("hello world", {"id": 1, "name": "x"})
        assert fake.called_with_match("world", {"id": 1})
        assert not fake.called_with("world")
        assert fake.always_called_with_match(InstanceOf(str))
        assert fake.never_called_with_match("planet")

    def test_returned(self) -> None:
        """``returned`` compares return values deeply."""
        fake = spy(lambda value: [value])
        fake(1)
        fake(2)
        assert fake.returned([1])
        assert not fake.always_returned([1])
        assert not fake.returned((1,))


class TestOrdering:
    """Cross-spy ordering queries."""

    def test_called_before_and_after(self) -> None:
        """Ordering uses the global call ordinal."""
        first, second = spy(), spy()
        first()
        second()
        assert first.called_before(second)
        assert second.called_after(first)
        assert not second.called_before(first)
        assert first.called_immediately_before(second)
        assert second.called_immediately_after(first)

    def test_ordering_requires_calls(self) -> None:
        """Uncalled spies are neither before nor after anything."""
        first, second = spy(), spy()
        first()
        assert not first.called_before(second)
        assert not second.called_after(first)

    def test_immediate_ordering_detects_gaps(self) -> None:
        """A call in between breaks immediacy."""
        first, middle, last = spy(), spy(), spy()
        first()
        middle()
        last()
        assert first.called_before(last)
        assert not first.called_immediately_before(last)


class TestAttach:
    """Replacing attributes on objects and classes."""

    def test_method_on_class_records_instance_receiver(self) -> None:
        """Calls through an instance record that instance as receiver."""
        fake = Spy.attach(Greeter, "greet")
        try:
            greeter = Greeter("ada")
            assert greeter.greet("?") == "hello ada?"
            assert fake.called_on(greeter)
            assert fake.called_with("?")
            assert fake.receivers == [greeter]
        finally:
            fake.restore()
        assert not isinstance(Greeter.__dict__["greet"], Spy)

    def test_method_on_instance_records_instance_receiver(self) -> None:
        """Attaching to an instance shadows the class attribute until restore."""
        greeter = Greeter("bob")
        fake = spy(greeter, "greet")
        assert greeter.greet() == "hello bob!"
        assert fake.always_called_on(greeter)
        fake.restore()
        assert "greet" not in vars(greeter)
        assert greeter.greet() == "hello bob!"

    def test_static_and_class_methods(self) -> None:
        """Static and class methods record the owner as receiver."""
        shout = spy(Greeter, "shout")
        create = spy(Greeter, "create")
        try:
            assert Greeter.shout("hi") == "HI"
            assert Greeter("x").shout("yo") == "YO"
            assert Greeter.create("eve").name == "eve"
            assert shout.always_called_on(Greeter)
            assert create.called_with("eve")
        finally:
            shout.restore()
            create.restore()
        assert isinstance(Greeter.__dict__["shout"], staticmethod)
        assert isinstance(Greeter.__dict__["create"], classmethod)

    def test_init_counts_as_construction(self) -> None:
        """Spying on ``__init__`` detects construction."""
        fake = spy(Greeter, "__init__")
        try:
            greeter = Greeter("kim")
            assert greeter.name == "kim"
            assert fake.called_with_new()
            assert fake.called_on(greeter)
        finally:
            fake.restore()

    def test_restore_is_idempotent(self) -> None:
        """Restoring twice is harmless."""
        fake = spy(Greeter, "greet")
        fake.restore()
        fake.restore()
        assert not fake.attached

    def test_missing_attribute_is_rejected(self) -> None:
        """Attaching to a missing attribute fails."""
        with pytest.raises(InvalidArgumentError, match="missing attribute"):
            spy(Greeter, "missing")

    def test_non_callable_attribute_is_rejected(self) -> None:
        """Attaching to data attributes fails."""
        with pytest.raises(InvalidArgumentError, match="non-callable"):
            spy(Greeter, "prefix")

    def test_double_wrapping_is_rejected(self) -> None:
        """An attribute that is already a spy cannot be wrapped again."""
        fake = spy(Greeter, "greet")
        try:
            with pytest.raises(InvalidArgumentError, match="already wrapped"):
                spy(Greeter, "greet")
        finally:
            fake.restore()

    def test_none_owner_is_rejected(self) -> None:
        """Attaching to ``None`` fails."""
        with pytest.raises(InvalidArgumentError):
            spy(None, "anything")

    def test_invoke_on_sets_receiver(self) -> None:
        """``invoke_on`` supplies an explicit receiver."""
        fake = spy()
        marker = object()
        fake.invoke_on(marker, 1)
        assert fake.called_on(marker)
        assert fake.called_with(1)


class TestKeywordNames:
    """Keyword arguments that share a name with the spy's own parameters."""

    def test_self_and_receiver_keywords_are_recorded(self) -> None:
        """``self=`` and ``receiver=`` are ordinary call arguments."""
        fake = spy(name="save")
        fake(self=1)
        fake.invoke_on("owner", receiver=2)
        assert fake.kwargs_list == [{"self": 1}, {"receiver": 2}]
        assert fake.called_with(self=1)
        assert fake.called_with_exactly(receiver=2)
        assert fake.never_called_with(self=2)
        assert fake.called_with_match(self=1)
        assert fake.called_on("owner")

    def test_wrapped_function_receives_self_keyword(self) -> None:
        """The keyword is forwarded unchanged."""
        fake = spy(lambda **kwargs: kwargs)
        assert fake(self="me") == {"self": "me"}
        assert fake.returned({"self": "me"})


class TestClassBody:
    """Spies assigned as class attributes behave like methods."""

    def test_function_spy_binds_the_instance(self) -> None:
        """Calls through an instance pass and record the instance."""

        class Labelled:
            name = "ada"
            method = spy(lambda self, suffix: f"{self.name}{suffix}")

        fake = Labelled.method
        labelled = Labelled()
        assert labelled.method("!") == "ada!"
        assert fake.called_on(labelled)
        assert fake.called_with_exactly("!")

    def test_access_through_the_class_is_unbound(self) -> None:
        """Calling through the class passes the instance explicitly."""

        class Labelled:
            name = "bob"
            method = spy(lambda self, suffix: f"{self.name}{suffix}")

        labelled = Labelled()
        assert Labelled.method(labelled, "?") == "bob?"
        call = Labelled.method.last_call
        assert call is not None
        assert call.receiver is None
        assert call.args == (labelled, "?")

    def test_anonymous_spy_records_the_instance(self) -> None:
        """Spies without a wrapped function still see the receiver."""

        class Holder:
            callback = spy()

        holder = Holder()
        assert holder.callback(1) is None
        assert Holder.callback.called_on(holder)
        assert Holder.callback.called_with_exactly(1)

    def test_class_wrapping_spy_does_not_bind(self) -> None:
        """A spy over a class stays a plain attribute."""

        class Factory:
            make = spy(Greeter)

        built = Factory().make("zoe")
        assert isinstance(built, Greeter)
        assert Factory.make.called_with_exactly("zoe")
        assert Factory.make.called_with_new()
