"""
vesting.py - Cliff + Linear Vesting

This module provides the vesting computation and release:
1. releasable_now() - Cumulative sale asset unlocked for a position at a time
2. compute_release() - Pay out what has unlocked but not yet been released
3. vested_fraction_curve() - Vectorised projection of the unlock curve

Schedule (r = vesting_initial_ratio, T = vesting_period):

    now <  vesting_start           : 0
    now >= vesting_start + T       : purchased
    otherwise                      : purchased * (r + (1 - r) * elapsed / T)

Accounting amounts are exact Decimals rounded down to AMOUNT_DECIMALS;
the numpy curve is float and meant for reporting only.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

import numpy as np

from .config import LaunchpadConfig
from .core import (
    LaunchpadView, Position, PositionChange, AssetTransfer, PendingOperation,
    TransferKind, NoPosition, ZERO,
    build_operation, empty_operation, checked_add, quantize_amount,
)
from .phases import ANY_PHASE, require_phase

_MICROSECOND = timedelta(microseconds=1)


def vested_fraction(config: LaunchpadConfig, now: datetime) -> Decimal:
    """
    Fraction of a purchase unlocked at ``now``, as an exact Decimal in [0, 1].

    Elapsed time is measured in whole microseconds so the fraction is exact.
    """
    if now < config.vesting_start:
        return ZERO
    if now >= config.vesting_end:
        return Decimal("1")
    elapsed = Decimal((now - config.vesting_start) // _MICROSECOND)
    period = Decimal(config.vesting_period // _MICROSECOND)
    ratio = config.vesting_initial_ratio
    return ratio + (1 - ratio) * elapsed / period


def releasable_now(config: LaunchpadConfig, position: Optional[Position], now: datetime) -> Decimal:
    """
    Cumulative sale asset unlocked for ``position`` at ``now``.

    This is the total vested so far, not the amount still due; subtract
    released_amount for the payout.

    Example:
        # purchased 2000, ratio 0.1, period 60s
        releasable_now(config, position, config.vesting_start)        # 200
        releasable_now(config, position, config.vesting_end)          # 2000
    """
    if position is None or position.purchased_amount == 0:
        return ZERO
    if now >= config.vesting_end:
        return position.purchased_amount
    fraction = vested_fraction(config, now)
    if fraction == 0:
        return ZERO
    return min(position.purchased_amount, quantize_amount(position.purchased_amount * fraction))


def amount_due(config: LaunchpadConfig, position: Optional[Position], now: datetime) -> Decimal:
    """Unlocked but not yet released (never negative)."""
    if position is None:
        return ZERO
    return max(ZERO, releasable_now(config, position, now) - position.released_amount)


def compute_release(view: LaunchpadView, beneficiary: str, caller: str = None) -> PendingOperation:
    """
    Release vested sale asset to ``beneficiary``.

    Any caller may relay this on behalf of a beneficiary; the payout always
    goes to the beneficiary. When nothing is due the result is an empty
    operation (not an error).

    Args:
        view: Read-only launchpad access
        beneficiary: Position owner who receives the sale asset
        caller: Identity relaying the call (defaults to the beneficiary)

    Returns:
        PendingOperation advancing released_amount with a PUSH of the sale
        asset, or an empty PendingOperation.

    Raises:
        NoPosition: If the beneficiary has no position.
    """
    config = view.config
    caller = caller or beneficiary
    require_phase(config, view.current_time, "release_vested_tokens", ANY_PHASE)

    old = view.get_position(beneficiary)
    if old is None:
        raise NoPosition(f"{beneficiary} has no position")

    due = amount_due(config, old, view.current_time)
    if due <= 0:
        return empty_operation(view, "release_vested_tokens", caller)

    new = Position(
        locked_volume=old.locked_volume,
        purchased_amount=old.purchased_amount,
        released_amount=checked_add(old.released_amount, due),
        unlocked=old.unlocked,
    )
    return build_operation(
        view, "release_vested_tokens", caller,
        position_changes=[PositionChange(beneficiary, old, new)],
        transfers=[AssetTransfer(TransferKind.PUSH, config.sale_asset, beneficiary, due)],
    )


def vested_fraction_curve(config: LaunchpadConfig, timestamps: Iterable[datetime]) -> np.ndarray:
    """
    Vested fraction at each timestamp, as a float array.

    Useful for charting a release schedule or simulating many positions at
    once (multiply by purchased amounts). Not used for accounting.

    Example:
        times = [config.vesting_start + timedelta(seconds=s) for s in range(0, 61, 15)]
        vested_fraction_curve(config, times)
        # array([0.1  , 0.325, 0.55 , 0.775, 1.   ])
    """
    offsets = np.array(
        [(ts - config.vesting_start) / timedelta(seconds=1) for ts in timestamps],
        dtype=float,
    )
    period = config.vesting_period / timedelta(seconds=1)
    ratio = float(config.vesting_initial_ratio)
    fraction = ratio + (1.0 - ratio) * np.clip(offsets / period, 0.0, 1.0)
    return np.where(offsets < 0, 0.0, fraction)
