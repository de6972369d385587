"""
sale.py - Sale Ledger

This module provides the sale operations as pure functions:
1. compute_deposit_inventory() - Owner funds the sale-asset inventory
2. compute_participation() - Buyer spends purchase asset at the fixed price
3. compute_proceeds_withdrawal() - Owner collects raised purchase asset after the sale
4. compute_unsold_withdrawal() - Owner reclaims inventory that was never sold
5. sale_amount_for() - Purchase-asset -> sale-asset conversion

Admission control for a purchase, in order:
    1. sale window open
    2. stake already withdrawn (unlocked)
    3. purchased + amount <= max_purchase(position)     else AllocationExceeded
    4. sold + amount <= deposited                       else SoldOut

Check 4 bounds total sales by the deposited inventory even when a buyer's
personal allocation would allow more.

All functions take LaunchpadView (read-only) and return immutable results.
"""

from __future__ import annotations
from decimal import Decimal

from .core import (
    LaunchpadView, Position, PositionChange, SaleInventory, InventoryChange,
    AssetTransfer, PendingOperation, TransferKind,
    InvalidAmount, StakeStillLocked, NoPosition, AllocationExceeded, SoldOut,
    NotOwner, AlreadyWithdrawn,
    build_operation, empty_operation, checked_add, checked_sub, quantize_amount, to_amount,
)
from .phases import ANY_PHASE, SALE_ONLY, AFTER_SALE, require_phase
from .tiers import max_purchase


def _require_owner(view: LaunchpadView, caller: str, operation: str) -> None:
    if caller != view.owner:
        raise NotOwner(f"{operation} is restricted to the owner, called by {caller}")


def sale_amount_for(view: LaunchpadView, purchase_amount: Decimal) -> Decimal:
    """
    Convert a purchase-asset amount to sale-asset units at the fixed price.

    Rounds down to AMOUNT_DECIMALS places, so the buyer never receives more
    than they paid for.

    Example:
        # sale_price = 10 purchase units per sale unit
        sale_amount_for(view, Decimal("20000"))  # Decimal("2000")
    """
    return quantize_amount(purchase_amount / view.config.sale_price)


def compute_deposit_inventory(view: LaunchpadView, caller: str, amount) -> PendingOperation:
    """
    Pull ``amount`` of the sale asset from the owner into inventory.

    Raises:
        NotOwner: If caller is not the owner.
        InvalidAmount: If amount is not positive.
        AlreadyWithdrawn: If unsold inventory was already withdrawn; later
            deposits could neither be sold nor reclaimed.
    """
    require_phase(view.config, view.current_time, "deposit_inventory", ANY_PHASE)
    _require_owner(view, caller, "deposit_inventory")

    amount = to_amount(amount)
    if amount <= 0:
        raise InvalidAmount(f"deposit amount must be positive, got {amount}")

    old = view.get_inventory()
    if old.unsold_withdrawn:
        raise AlreadyWithdrawn("unsold inventory already withdrawn, deposits are closed")
    new = SaleInventory(
        deposited=checked_add(old.deposited, amount),
        sold=old.sold,
        raised=old.raised,
        proceeds_withdrawn=old.proceeds_withdrawn,
        unsold_withdrawn=old.unsold_withdrawn,
    )
    return build_operation(
        view, "deposit_inventory", caller,
        inventory_change=InventoryChange(old, new),
        transfers=[AssetTransfer(TransferKind.PULL, view.config.sale_asset, caller, amount)],
    )


def compute_participation(view: LaunchpadView, participant: str, purchase_amount) -> PendingOperation:
    """
    Buy sale asset with ``purchase_amount`` of the purchase asset.

    The purchased sale asset is not delivered here; it becomes releasable
    under the vesting schedule.

    Args:
        view: Read-only launchpad access
        participant: Buyer (must have staked and then unstaked)
        purchase_amount: Positive purchase-asset amount to spend

    Returns:
        PendingOperation updating the position and inventory, with a PULL of
        the purchase asset.

    Raises:
        PhaseError: Outside the sale window.
        NoPosition: If the participant never staked.
        StakeStillLocked: If the stake has not been withdrawn yet.
        InvalidAmount: If the amount is not positive or buys less than one quantum.
        AllocationExceeded: If the purchase exceeds the tier-derived cap.
        SoldOut: If the purchase exceeds deposited-but-unsold inventory.

    Example:
        # alice staked 1000 (tier 0), unstaked, sale_price = 10
        pending = compute_participation(launchpad, "alice", Decimal("20000"))
        launchpad.execute(pending)
        # alice.purchased_amount == 2000
    """
    config = view.config
    require_phase(config, view.current_time, "participate", SALE_ONLY)

    old = view.get_position(participant)
    if old is None:
        raise NoPosition(f"{participant} has no staking position")
    if not old.unlocked:
        raise StakeStillLocked(f"{participant} must unstake before participating in the sale")

    purchase_amount = to_amount(purchase_amount)
    if purchase_amount <= 0:
        raise InvalidAmount(f"purchase amount must be positive, got {purchase_amount}")
    sale_amount = sale_amount_for(view, purchase_amount)
    if sale_amount <= 0:
        raise InvalidAmount(f"purchase amount {purchase_amount} buys nothing at price {config.sale_price}")

    purchased = checked_add(old.purchased_amount, sale_amount)
    cap = max_purchase(config, old)
    if purchased > cap:
        raise AllocationExceeded(
            f"{participant} would hold {purchased}, allocation is {cap}"
        )

    inventory = view.get_inventory()
    sold = checked_add(inventory.sold, sale_amount)
    if sold > inventory.deposited:
        raise SoldOut(
            f"Sold out: {sale_amount} requested, {inventory.available} available"
        )

    new_position = Position(
        locked_volume=old.locked_volume,
        purchased_amount=purchased,
        released_amount=old.released_amount,
        unlocked=old.unlocked,
    )
    new_inventory = SaleInventory(
        deposited=inventory.deposited,
        sold=sold,
        raised=checked_add(inventory.raised, purchase_amount),
        proceeds_withdrawn=inventory.proceeds_withdrawn,
        unsold_withdrawn=inventory.unsold_withdrawn,
    )
    return build_operation(
        view, "participate", participant,
        position_changes=[PositionChange(participant, old, new_position)],
        inventory_change=InventoryChange(inventory, new_inventory),
        transfers=[AssetTransfer(TransferKind.PULL, config.purchase_asset, participant, purchase_amount)],
    )


def compute_proceeds_withdrawal(view: LaunchpadView, caller: str) -> PendingOperation:
    """
    Pay the raised purchase asset not yet withdrawn to the owner.

    Returns an empty operation when nothing is due.

    Raises:
        NotOwner: If caller is not the owner.
        PhaseError: Before the sale window has ended.
    """
    require_phase(view.config, view.current_time, "withdraw_proceeds", AFTER_SALE)
    _require_owner(view, caller, "withdraw_proceeds")

    old = view.get_inventory()
    due = checked_sub(old.raised, old.proceeds_withdrawn)
    if due <= 0:
        return empty_operation(view, "withdraw_proceeds", caller)

    new = SaleInventory(
        deposited=old.deposited,
        sold=old.sold,
        raised=old.raised,
        proceeds_withdrawn=old.raised,
        unsold_withdrawn=old.unsold_withdrawn,
    )
    return build_operation(
        view, "withdraw_proceeds", caller,
        inventory_change=InventoryChange(old, new),
        transfers=[AssetTransfer(TransferKind.PUSH, view.config.purchase_asset, caller, due)],
    )


def compute_unsold_withdrawal(view: LaunchpadView, caller: str) -> PendingOperation:
    """
    Return deposited-but-unsold sale asset to the owner, once.

    Lowers ``deposited`` to ``sold`` so that sold <= deposited keeps holding
    and the sold amount stays backed for vesting releases.

    Raises:
        NotOwner: If caller is not the owner.
        PhaseError: Before the sale window has ended.
        AlreadyWithdrawn: If unsold inventory was already reclaimed.
    """
    require_phase(view.config, view.current_time, "withdraw_unsold_inventory", AFTER_SALE)
    _require_owner(view, caller, "withdraw_unsold_inventory")

    old = view.get_inventory()
    if old.unsold_withdrawn:
        raise AlreadyWithdrawn("unsold inventory has already been withdrawn")

    unsold = old.available
    new = SaleInventory(
        deposited=old.sold,
        sold=old.sold,
        raised=old.raised,
        proceeds_withdrawn=old.proceeds_withdrawn,
        unsold_withdrawn=True,
    )
    transfers = []
    if unsold > 0:
        transfers.append(AssetTransfer(TransferKind.PUSH, view.config.sale_asset, caller, unsold))
    return build_operation(
        view, "withdraw_unsold_inventory", caller,
        inventory_change=InventoryChange(old, new),
        transfers=transfers,
    )
