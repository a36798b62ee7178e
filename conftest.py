"""Global test configuration and shared fixtures."""

from __future__ import annotations

import typing as t

import pytest

from call_mox.assertions import reset_handlers, use_handlers


@pytest.fixture(autouse=True)
def reset_assertion_handlers() -> t.Generator[None, None, None]:
    """Ensure every test starts and ends with the default assertion handlers."""
    reset_handlers()
    yield
    reset_handlers()


@pytest.fixture
def recorded_failures() -> t.Generator[list[str], None, None]:
    """Collect assertion failure messages instead of raising them."""
    messages: list[str] = []
    with use_handlers(fail=messages.append):
        yield messages
