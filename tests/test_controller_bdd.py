"""Behavioural tests for the CallMox controller using pytest-bdd."""

from __future__ import annotations

from pathlib import Path

from pytest_bdd import scenario

from tests.steps import *  # noqa: F403

FEATURES_DIR = Path(__file__).resolve().parent.parent / "features"


@scenario(
    str(FEATURES_DIR / "controller.feature"),
    "Closing the controller restores patched methods",
)
def test_controller_restores_patches() -> None:
    """Leaving the controller puts original methods back."""


@scenario(
    str(FEATURES_DIR / "controller.feature"),
    "Resetting history keeps the doubles",
)
def test_controller_reset_history() -> None:
    """History can be cleared without losing the doubles."""
