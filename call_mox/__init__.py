"""Spies, stubs, matchers and assertions for Python test suites.

Create doubles with :func:`spy` and :func:`stub`, check them with the
functions in :mod:`call_mox.assertions`, and let :class:`CallMox` (or the
``call_mox`` pytest fixture) restore anything that was attached to a real
object.
"""

from __future__ import annotations

from . import assertions
from .call_record import CallRecord
from .controller import CallMox
from .errors import (
    AssertError,
    CallMoxError,
    InvalidArgumentError,
    assert_error_type,
)
from .matchers import (
    ANY,
    DEFINED,
    FALSY,
    TRUTHY,
    AllOf,
    Any,
    AnyOf,
    Contains,
    Defined,
    Equals,
    Falsy,
    HasAttrs,
    InstanceOf,
    Matcher,
    Not,
    Predicate,
    Regex,
    Same,
    StartsWith,
    Truthy,
    TypeOf,
    deep_equal,
    match,
)
from .pytest_plugin import call_mox as call_mox_fixture
from .recordable import Recordable
from .spies import Spy, spy
from .stubs import BehaviorBuilder, Stub, stub

__all__ = [
    "ANY",
    "DEFINED",
    "FALSY",
    "TRUTHY",
    "AllOf",
    "Any",
    "AnyOf",
    "AssertError",
    "BehaviorBuilder",
    "CallMox",
    "CallMoxError",
    "CallRecord",
    "Contains",
    "Defined",
    "Equals",
    "Falsy",
    "HasAttrs",
    "InstanceOf",
    "InvalidArgumentError",
    "Matcher",
    "Not",
    "Predicate",
    "Recordable",
    "Regex",
    "Same",
    "StartsWith",
    "Spy",
    "Stub",
    "Truthy",
    "TypeOf",
    "assert_error_type",
    "assertions",
    "call_mox_fixture",
    "deep_equal",
    "match",
    "spy",
    "stub",
]
