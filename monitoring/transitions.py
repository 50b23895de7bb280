"""
Transition policy: which notification, if any, follows a check.

    prior    new     action
    -----    ----    --------------------
    up       down    down notification
    down     up      recovery notification
    down     down    none (already alerted)
    up       up      none
    unknown  down    none (first observation)
    unknown  up      none
"""

from typing import Optional

from config.constants import CheckStatus, TransitionType


def resolve_transition(
    prior: Optional[CheckStatus],
    new: CheckStatus,
) -> Optional[TransitionType]:
    """Return the notification owed for ``prior -> new``, or None."""
    prior = CheckStatus.parse(prior)
    new = CheckStatus.parse(new)

    if prior == CheckStatus.UP and new == CheckStatus.DOWN:
        return TransitionType.DOWN
    if prior == CheckStatus.DOWN and new == CheckStatus.UP:
        return TransitionType.RECOVERY
    return None
