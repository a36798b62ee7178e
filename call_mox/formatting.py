"""Rendering helpers shared by diagnostics."""

from __future__ import annotations

import typing as t

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .call_record import CallRecord

CALL_INDENT: t.Final[str] = "\n    "

_COUNT_WORDS: t.Final[dict[int, str]] = {1: "once", 2: "twice", 3: "thrice"}


def count_word(count: int) -> str:
    """Return *count* as ``once``, ``twice``, ``thrice`` or ``<n> times``."""
    return _COUNT_WORDS.get(count, f"{count} times")


def format_value(value: object) -> str:
    """Render *value* for a diagnostic message.

    Everything goes through ``str()``: strings appear without quotes and
    matchers appear as their label.
    """
    return str(value)


def format_args(
    args: t.Sequence[object], kwargs: t.Mapping[str, object] | None = None
) -> str:
    """Join positional and keyword arguments with ``", "``."""
    parts = [format_value(arg) for arg in args]
    if kwargs:
        parts.extend(f"{key}={format_value(value)}" for key, value in kwargs.items())
    return ", ".join(parts)


def format_call(
    name: str,
    args: t.Sequence[object],
    kwargs: t.Mapping[str, object] | None = None,
) -> str:
    """Render a single call as ``name(arg1, arg2, key=value)``."""
    return f"{name}({format_args(args, kwargs)})"


def format_calls(calls: t.Iterable[CallRecord]) -> str:
    """Render *calls* one per line, each preceded by a newline and indent."""
    return "".join(f"{CALL_INDENT}{call}" for call in calls)


__all__ = [
    "CALL_INDENT",
    "count_word",
    "format_args",
    "format_call",
    "format_calls",
    "format_value",
]
