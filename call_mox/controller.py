"""CallMox controller: owns the doubles created during a test."""

from __future__ import annotations

import logging
import types  # noqa: TC003
import typing as t

from .spies import Spy, spy
from .stubs import Stub, stub

logger = logging.getLogger(__name__)

_DoubleT = t.TypeVar("_DoubleT", bound=Spy)


class CallMox:
    """Create spies and stubs and undo every attachment on exit.

    Doubles are kept in creation order. Attached doubles (``spy(obj, "name")``)
    are restored in reverse order by :meth:`restore`, which is also called when
    leaving a ``with`` block.
    """

    def __init__(self) -> None:
        self._doubles: list[Spy] = []

    # ------------------------------------------------------------------
    # Double creation
    # ------------------------------------------------------------------
    def spy(
        self,
        target: object = None,
        attribute: str | None = None,
        *,
        name: str | None = None,
    ) -> Spy:
        """Create a spy owned by this controller; see :func:`call_mox.spy`."""
        return self._track(spy(target, attribute, name=name))

    def stub(
        self,
        target: object = None,
        attribute: str | None = None,
        *,
        name: str | None = None,
    ) -> Stub:
        """Create a stub owned by this controller; see :func:`call_mox.stub`."""
        return self._track(stub(target, attribute, name=name))

    def _track(self, double: _DoubleT) -> _DoubleT:
        self._doubles.append(double)
        return double

    # ------------------------------------------------------------------
    # Double accessors
    # ------------------------------------------------------------------
    @property
    def doubles(self) -> tuple[Spy, ...]:
        """Return every double in creation order."""
        return tuple(self._doubles)

    @property
    def spies(self) -> dict[str, Spy]:
        """Return spies that are not stubs, keyed by display name."""
        return {
            dbl.name: dbl for dbl in self._doubles if not isinstance(dbl, Stub)
        }

    @property
    def stubs(self) -> dict[str, Stub]:
        """Return all stubs, keyed by display name."""
        return {dbl.name: dbl for dbl in self._doubles if isinstance(dbl, Stub)}

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------
    def reset_history(self) -> None:
        """Forget the calls recorded by every double."""
        for dbl in self._doubles:
            dbl.reset_history()

    def reset(self) -> None:
        """Forget recorded calls and drop stub behaviours."""
        for dbl in self._doubles:
            if isinstance(dbl, Stub):
                dbl.reset()
            else:
                dbl.reset_history()

    def restore(self) -> None:
        """Restore every attached double, most recent first.

        Safe to call repeatedly; doubles already restored are skipped.
        """
        attached = [dbl for dbl in reversed(self._doubles) if dbl.attached]
        for dbl in attached:
            dbl.restore()
        if attached:
            logger.debug("Restored %d attached double(s)", len(attached))

    # ------------------------------------------------------------------
    # Context manager protocol
    # ------------------------------------------------------------------
    def __enter__(self) -> CallMox:
        """Return the controller."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        """Restore attached doubles."""
        self.restore()


__all__ = ["CallMox"]
