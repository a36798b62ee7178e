"""Example tests demonstrating spies."""

from __future__ import annotations

import typing as t

from call_mox import ANY, assertions

if t.TYPE_CHECKING:  # pragma: no cover - typing only
    from call_mox.controller import CallMox


class Inventory:
    """Tiny collaborator used by the examples."""

    def __init__(self) -> None:
        self.items: dict[str, int] = {}

    def add(self, name: str, count: int = 1) -> int:
        self.items[name] = self.items.get(name, 0) + count
        return self.items[name]


def restock(inventory: Inventory, names: list[str]) -> None:
    """Code under test: add one of each named item."""
    for name in names:
        inventory.add(name)


def test_spy_records_invocations_for_assertions(call_mox: CallMox) -> None:
    """Spies keep the real behaviour and record every call."""
    add = call_mox.spy(Inventory, "add")
    inventory = Inventory()

    restock(inventory, ["apple", "pear", "apple"])

    assert inventory.items == {"apple": 2, "pear": 1}
    assertions.called_thrice(add)
    assertions.always_called_on(add, inventory)
    assertions.called_with(add, "pear")
    assert add.first_call is not None
    assert add.first_call.return_value == 1
    assert add.returned(2)


def test_spy_wraps_plain_callables(call_mox: CallMox) -> None:
    """Anonymous spies make convenient callbacks."""
    callback = call_mox.spy()

    for value in (1, 2):
        callback(value, source="loop")

    assertions.called_twice(callback)
    assertions.always_called_with(callback, ANY, source="loop")
    assertions.called_with_exactly(callback, 2, source="loop")
    assert callback.args == [(1,), (2,)]
