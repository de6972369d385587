"""
phases.py - Epoch Gate

Maps a point in time to the active phase of the launchpad schedule and
rejects operations invoked outside their window.

Windows are half-open [start, end). With the config invariants
staking_end <= sale_start and sale_end <= vesting_start the phases form a
total order; the BETWEEN_* and AFTER_* phases may be empty.
"""

from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Iterable

from .config import LaunchpadConfig
from .core import PhaseError


class Phase(Enum):
    """Active phase of the launchpad schedule, in chronological order."""
    BEFORE_STAKING = "before_staking"
    STAKING = "staking"
    BETWEEN_STAKING_AND_SALE = "between_staking_and_sale"
    SALE = "sale"
    AFTER_SALE_PRE_VESTING = "after_sale_pre_vesting"
    VESTING = "vesting"

    @property
    def ordinal(self) -> int:
        return _ORDER.index(self)


_ORDER = list(Phase)

# Phase groups used by the operations.
STAKING_ONLY = frozenset({Phase.STAKING})
SALE_ONLY = frozenset({Phase.SALE})
AFTER_STAKING = frozenset(p for p in Phase if p.ordinal >= Phase.BETWEEN_STAKING_AND_SALE.ordinal)
AFTER_SALE = frozenset(p for p in Phase if p.ordinal >= Phase.AFTER_SALE_PRE_VESTING.ordinal)
ANY_PHASE = frozenset(Phase)


def current_phase(config: LaunchpadConfig, now: datetime) -> Phase:
    """
    Return the phase active at ``now``.

    Example:
        # staking (t+60, t+120), sale (t+180, t+240), vesting from t+300
        current_phase(config, t + timedelta(seconds=150))
        # Phase.BETWEEN_STAKING_AND_SALE
    """
    if now < config.staking_start:
        return Phase.BEFORE_STAKING
    if now < config.staking_end:
        return Phase.STAKING
    if now < config.sale_start:
        return Phase.BETWEEN_STAKING_AND_SALE
    if now < config.sale_end:
        return Phase.SALE
    if now < config.vesting_start:
        return Phase.AFTER_SALE_PRE_VESTING
    return Phase.VESTING


def describe_phases(phases: Iterable[Phase]) -> str:
    """Human-readable name for a group of phases, used in PhaseError messages."""
    phases = frozenset(phases)
    if phases == STAKING_ONLY:
        return "the staking window"
    if phases == SALE_ONLY:
        return "the sale window"
    if phases == AFTER_STAKING:
        return "staking to have ended"
    if phases == AFTER_SALE:
        return "the sale to have ended"
    return " or ".join(p.value for p in sorted(phases, key=lambda p: p.ordinal))


def require_phase(
    config: LaunchpadConfig,
    now: datetime,
    operation: str,
    allowed: Iterable[Phase],
) -> Phase:
    """
    Check that ``operation`` may run at ``now``.

    Returns:
        The active phase.

    Raises:
        PhaseError: If the active phase is not in ``allowed``.
    """
    allowed = frozenset(allowed)
    phase = current_phase(config, now)
    if phase not in allowed:
        raise PhaseError(operation, describe_phases(allowed), phase)
    return phase
