"""
tiers.py - Purchase Allocation Tiers

Resolves a participant's locked staking volume to the maximum cumulative
sale-asset amount they may buy.

    staking_tiers     = [1000, 5000]
    sale_ratio_tiers  = [1000, 1200, 1300]

    locked <  1000         -> no tier, cap 0
    1000 <= locked < 5000  -> tier 0, cap = locked * 1000
    5000 <= locked         -> tier 1, cap = locked * 1200

Multipliers beyond len(staking_tiers) are accepted by the config but are
never selected.
"""

from __future__ import annotations
from bisect import bisect_right
from decimal import Decimal
from typing import Optional

from .config import LaunchpadConfig
from .core import Position, ZERO, checked_mul


def resolve_tier(config: LaunchpadConfig, locked_volume: Decimal) -> Optional[int]:
    """
    Return the greatest index i with staking_tiers[i] <= locked_volume.

    Returns None when locked_volume is below the first threshold (or the
    table is empty).
    """
    idx = bisect_right(config.staking_tiers, locked_volume)
    if idx == 0:
        return None
    return idx - 1


def multiplier_for(config: LaunchpadConfig, locked_volume: Decimal) -> Decimal:
    """Purchase-cap multiplier for a locked volume (zero when no tier applies)."""
    tier = resolve_tier(config, locked_volume)
    if tier is None:
        return ZERO
    return config.sale_ratio_tiers[tier]


def max_purchase(config: LaunchpadConfig, position: Optional[Position]) -> Decimal:
    """
    Maximum cumulative sale-asset amount the position may ever purchase.

    Pure and side-effect free. Depends only on locked_volume, which is
    frozen once the stake is withdrawn, so the result is the same before
    and after unstaking.
    """
    if position is None:
        return ZERO
    multiplier = multiplier_for(config, position.locked_volume)
    if multiplier == 0:
        return ZERO
    return checked_mul(position.locked_volume, multiplier)


def remaining_allocation(config: LaunchpadConfig, position: Optional[Position]) -> Decimal:
    """Cap minus what the position has already bought (never negative)."""
    if position is None:
        return ZERO
    return max(ZERO, max_purchase(config, position) - position.purchased_amount)
