"""Immutable records of individual invocations."""

from __future__ import annotations

import dataclasses as dc
import itertools
import time
import typing as t

from .formatting import format_call
from .recordable import Recordable

_call_ids = itertools.count(1)


def next_call_id() -> int:
    """Return the next global invocation ordinal.

    Ordinals are shared by every spy so calls on different spies can be
    ordered without relying on wall-clock time.
    """
    return next(_call_ids)


@dc.dataclass(frozen=True, slots=True, eq=False)
class CallRecord(Recordable):
    """One recorded invocation of a spy."""

    spy_name: str
    call_id: int
    args: tuple[object, ...]
    kwargs: dict[str, object] = dc.field(default_factory=dict)
    receiver: object = None
    return_value: object = None
    exception: BaseException | None = None
    constructed: bool = False
    timestamp: float = dc.field(default_factory=time.monotonic)

    @property
    def calls(self) -> tuple[CallRecord]:
        """Return a one-element history holding this record."""
        return (self,)

    @property
    def display_name(self) -> str:
        """Return the owning spy's name."""
        return self.spy_name

    def called_before(self, other: CallRecord) -> bool:
        """Return ``True`` if this call happened before *other*."""
        return self.call_id < other.call_id

    def called_after(self, other: CallRecord) -> bool:
        """Return ``True`` if this call happened after *other*."""
        return self.call_id > other.call_id

    def get_arg(self, index: int) -> object:
        """Return the positional argument at *index*."""
        return self.args[index]

    def __str__(self) -> str:
        """Render the call as ``name(arg1, arg2)``."""
        return format_call(self.spy_name, self.args, self.kwargs)

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"CallRecord(#{self.call_id} {self})"


__all__ = ["CallRecord", "next_call_id"]
