"""Tests for the prior/new status transition policy."""

from __future__ import annotations

import pytest

from config.constants import CheckStatus, TransitionType
from monitoring.transitions import resolve_transition


UP, DOWN = CheckStatus.UP, CheckStatus.DOWN


@pytest.mark.parametrize(
    "prior, new, expected",
    [
        (UP, DOWN, TransitionType.DOWN),
        (DOWN, UP, TransitionType.RECOVERY),
        (DOWN, DOWN, None),
        (UP, UP, None),
        (None, DOWN, None),
        (None, UP, None),
    ],
)
def test_transition_table(prior, new, expected) -> None:
    assert resolve_transition(prior, new) is expected


def test_accepts_stored_strings() -> None:
    assert resolve_transition("up", "down") is TransitionType.DOWN
    assert resolve_transition("down", "up") is TransitionType.RECOVERY
