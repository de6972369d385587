"""
staking.py - Staking Ledger

This module provides the staking operations as pure functions:
1. compute_stake() - Lock staking asset during the staking window
2. compute_unstake() - Return the full locked volume once staking has ended

Pattern:
    Staking window:
        - Participant approves the launchpad account for the staking asset
        - stake(amount): locked_volume += amount
        AssetTransfer(PULL, staking_asset, participant, amount)

    After staking ends:
        - unstake(participant): unlocked = True
        AssetTransfer(PUSH, staking_asset, participant, locked_volume)

All functions take LaunchpadView (read-only) and return immutable results.
"""

from __future__ import annotations
from decimal import Decimal

from .core import (
    LaunchpadView, Position, PositionChange, AssetTransfer, PendingOperation,
    TransferKind, InvalidAmount, VolumeOutOfRange, AlreadyUnstaked, NoPosition,
    build_operation, checked_add, to_amount,
)
from .phases import STAKING_ONLY, AFTER_STAKING, require_phase


def compute_stake(view: LaunchpadView, participant: str, amount) -> PendingOperation:
    """
    Lock ``amount`` of the staking asset for ``participant``.

    The position is created on the first stake. The cumulative locked volume
    after this stake must lie inside the configured staking volume range
    (inclusive); otherwise nothing is pulled.

    Args:
        view: Read-only launchpad access
        participant: Staker (also the payer of the staking asset)
        amount: Positive staking-asset amount

    Returns:
        PendingOperation with the position change and a PULL of the staking asset.

    Raises:
        PhaseError: Outside the staking window.
        InvalidAmount: If amount is not positive.
        AlreadyUnstaked: If the participant already withdrew the stake.
        VolumeOutOfRange: If the cumulative volume leaves the configured range.

    Example:
        pending = compute_stake(launchpad, "alice", Decimal("1000"))
        launchpad.execute(pending)
    """
    config = view.config
    require_phase(config, view.current_time, "stake", STAKING_ONLY)

    amount = to_amount(amount)
    if amount <= 0:
        raise InvalidAmount(f"stake amount must be positive, got {amount}")

    old = view.get_position(participant)
    current = old or Position()
    if current.unlocked:
        raise AlreadyUnstaked(f"{participant} has already unstaked")

    locked = checked_add(current.locked_volume, amount)
    if not config.staking_min <= locked <= config.staking_max:
        raise VolumeOutOfRange(
            f"{participant} locked volume {locked} outside "
            f"[{config.staking_min}, {config.staking_max}]"
        )

    new = Position(
        locked_volume=locked,
        purchased_amount=current.purchased_amount,
        released_amount=current.released_amount,
        unlocked=False,
    )
    return build_operation(
        view, "stake", participant,
        position_changes=[PositionChange(participant, old, new)],
        transfers=[AssetTransfer(TransferKind.PULL, config.staking_asset, participant, amount)],
    )


def compute_unstake(view: LaunchpadView, participant: str, caller: str = None) -> PendingOperation:
    """
    Return the full locked volume to ``participant`` and mark the stake unlocked.

    Anyone may call this on behalf of a participant; the staking asset
    always goes back to the participant. A second call always fails, so the
    stake can never be paid out twice.

    Raises:
        PhaseError: Before the staking window has ended.
        NoPosition: If the participant never staked.
        AlreadyUnstaked: If the stake was already withdrawn.
    """
    config = view.config
    require_phase(config, view.current_time, "unstake", AFTER_STAKING)

    old = view.get_position(participant)
    if old is None:
        raise NoPosition(f"{participant} has no staking position")
    if old.unlocked:
        raise AlreadyUnstaked(f"{participant} has already unstaked")

    new = Position(
        locked_volume=old.locked_volume,
        purchased_amount=old.purchased_amount,
        released_amount=old.released_amount,
        unlocked=True,
    )
    transfers = []
    if old.locked_volume > 0:
        transfers.append(
            AssetTransfer(TransferKind.PUSH, config.staking_asset, participant, old.locked_volume)
        )
    return build_operation(
        view, "unstake", caller or participant,
        position_changes=[PositionChange(participant, old, new)],
        transfers=transfers,
    )


def locked_total(view: LaunchpadView) -> Decimal:
    """Staking asset still held in custody (sum of locked volume not yet unstaked)."""
    total = Decimal("0")
    for participant in sorted(view.list_participants()):
        position = view.get_position(participant)
        if position is not None and not position.unlocked:
            total += position.locked_volume
    return total
