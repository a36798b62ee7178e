"""Pytest plugin providing the ``call_mox`` fixture."""

from __future__ import annotations

import logging
import typing as t

import pytest

from .assertions import install_handlers, restore_handlers
from .controller import CallMox
from .errors import DEFAULT_FAIL_EXCEPTION

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .assertions import AssertionConfig

logger = logging.getLogger(__name__)


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line and ini options for the plugin."""
    group = parser.getgroup("call_mox")
    group.addoption(
        "--call-mox-fail-exception",
        action="store",
        dest="call_mox_fail_exception",
        default=None,
        metavar="NAME",
        help=(
            "Name of the AssertError subclass raised by failing call_mox "
            "assertions. Overrides the pytest.ini setting."
        ),
    )
    parser.addini(
        "call_mox_fail_exception",
        "Name of the exception raised by failing call_mox assertions.",
        default=DEFAULT_FAIL_EXCEPTION,
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register plugin-specific markers."""
    config.addinivalue_line(
        "markers",
        (
            "call_mox(fail_exception: str = 'AssertError'): override the "
            "exception raised by failing assertions for a single test."
        ),
    )


def _fail_exception_name(request: pytest.FixtureRequest) -> str:
    """Return the exception name the fixture should install."""
    # Priority order: marker > fixture param > CLI option > INI setting

    marker_value = _get_marker_fail_exception(request)
    if marker_value is not None:
        return marker_value

    param_value = _get_param_fail_exception(request)
    if param_value is not None:
        return param_value

    config = request.config
    cli_value = config.getoption("call_mox_fail_exception")
    if cli_value is not None:
        return str(cli_value)

    return str(config.getini("call_mox_fail_exception") or DEFAULT_FAIL_EXCEPTION)


def _get_marker_fail_exception(request: pytest.FixtureRequest) -> str | None:
    """Return marker override for the exception name if present."""
    marker = request.node.get_closest_marker("call_mox")
    if marker is None or "fail_exception" not in marker.kwargs:
        return None
    return str(marker.kwargs["fail_exception"])


def _get_param_fail_exception(request: pytest.FixtureRequest) -> str | None:
    """Return fixture parameter override for the exception name if present."""
    param = getattr(request, "param", None)
    if param is None:
        return None
    if isinstance(param, dict):
        if "fail_exception" in param:
            return str(param["fail_exception"])
        keys = list(param.keys())
        msg = (
            "call_mox fixture param dict must contain 'fail_exception' key, "
            f"got keys: {keys}"
        )
        raise TypeError(msg)
    if isinstance(param, str):
        return param
    msg = (
        "call_mox fixture param must be a str or dict with 'fail_exception' key, "
        f"got {type(param).__name__}"
    )
    raise TypeError(msg)


@pytest.fixture
def call_mox(request: pytest.FixtureRequest) -> t.Generator[CallMox, None, None]:
    """Provide a :class:`CallMox` controller for the test.

    The configured exception name is installed for the duration of the test.
    Attached doubles and the previous assertion handlers are restored during
    teardown.
    """
    previous = install_handlers(fail_exception=_fail_exception_name(request))
    mox = CallMox()
    try:
        yield mox
    except Exception:
        logger.exception("Error during call_mox fixture setup or test execution")
        raise
    finally:
        _teardown_call_mox(mox, previous)


def _teardown_call_mox(mox: CallMox, previous: AssertionConfig) -> None:
    """Restore attached doubles and the assertion handlers."""
    try:
        mox.restore()
    except Exception:
        logger.exception("Error during call_mox fixture cleanup")
        pytest.fail("call_mox fixture cleanup failed")
    finally:
        restore_handlers(previous)
