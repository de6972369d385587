"""
test_operations.py - Unit tests for the pure compute functions

The compute_* functions are exercised against FakeView; nothing is executed.

Tests:
- compute_stake / compute_unstake
- compute_deposit_inventory / compute_participation
- compute_proceeds_withdrawal / compute_unsold_withdrawal
"""

import pytest
from decimal import Decimal

from launchpad import (
    Position, SaleInventory, TransferKind,
    compute_stake, compute_unstake, locked_total,
    compute_deposit_inventory, compute_participation, sale_amount_for,
    compute_proceeds_withdrawal, compute_unsold_withdrawal,
    PhaseError, InvalidAmount, VolumeOutOfRange, AlreadyUnstaked, NoPosition,
    StakeStillLocked, AllocationExceeded, SoldOut, NotOwner, AlreadyWithdrawn,
)

from tests.conftest import at, make_config
from tests.fake_view import FakeView


def _unlocked(locked="1000", purchased="0"):
    return Position(locked_volume=Decimal(locked), purchased_amount=Decimal(purchased), unlocked=True)


class TestComputeStake:

    def test_first_stake_creates_position(self, config):
        view = FakeView(config, time=at(60))
        pending = compute_stake(view, "alice", Decimal("1000"))

        assert pending.operation == "stake"
        assert pending.timestamp == at(60)
        change, = pending.position_changes
        assert change.old is None
        assert change.new.locked_volume == Decimal("1000")
        transfer, = pending.transfers
        assert transfer.kind is TransferKind.PULL
        assert transfer.asset == config.staking_asset
        assert transfer.account == "alice"
        assert transfer.amount == Decimal("1000")

    def test_stake_accumulates(self, config):
        view = FakeView(config, positions={"alice": Position(locked_volume=Decimal("1000"))}, time=at(60))
        pending = compute_stake(view, "alice", Decimal("500"))
        assert pending.position_changes[0].new.locked_volume == Decimal("1500")

    @pytest.mark.parametrize("seconds", [59, 120, 200])
    def test_outside_window(self, config, seconds):
        with pytest.raises(PhaseError):
            compute_stake(FakeView(config, time=at(seconds)), "alice", Decimal("1000"))

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    def test_non_positive(self, config, amount):
        with pytest.raises(InvalidAmount):
            compute_stake(FakeView(config, time=at(60)), "alice", amount)

    def test_below_min(self, config):
        with pytest.raises(VolumeOutOfRange):
            compute_stake(FakeView(config, time=at(60)), "alice", Decimal("99"))

    def test_cumulative_above_max(self, config):
        view = FakeView(config, positions={"alice": Position(locked_volume=Decimal("99999"))}, time=at(60))
        with pytest.raises(VolumeOutOfRange):
            compute_stake(view, "alice", Decimal("2"))

    def test_range_inclusive(self, config):
        view = FakeView(config, time=at(60))
        assert compute_stake(view, "alice", Decimal("100")).transfers[0].amount == Decimal("100")
        assert compute_stake(view, "alice", Decimal("100000")).transfers[0].amount == Decimal("100000")

    def test_after_unstake(self):
        config = make_config()
        view = FakeView(config, positions={"alice": _unlocked()}, time=at(60))
        with pytest.raises(AlreadyUnstaked):
            compute_stake(view, "alice", Decimal("100"))


class TestComputeUnstake:

    def test_returns_locked_volume(self, config):
        view = FakeView(config, positions={"alice": Position(locked_volume=Decimal("1000"))}, time=at(150))
        pending = compute_unstake(view, "alice")
        change, = pending.position_changes
        assert change.new.unlocked is True
        assert change.new.locked_volume == Decimal("1000")
        transfer, = pending.transfers
        assert transfer.kind is TransferKind.PUSH
        assert transfer.account == "alice"
        assert transfer.amount == Decimal("1000")

    def test_relayed_payout_goes_to_participant(self, config):
        view = FakeView(config, positions={"alice": Position(locked_volume=Decimal("1000"))}, time=at(150))
        pending = compute_unstake(view, "alice", caller="bob")
        assert pending.actor == "bob"
        assert pending.transfers[0].account == "alice"

    def test_during_staking(self, config):
        view = FakeView(config, positions={"alice": Position(locked_volume=Decimal("1000"))}, time=at(100))
        with pytest.raises(PhaseError):
            compute_unstake(view, "alice")

    def test_allowed_in_every_later_phase(self, config):
        for seconds in (120, 200, 250, 10_000):
            view = FakeView(config, positions={"alice": Position(locked_volume=Decimal("1000"))}, time=at(seconds))
            assert compute_unstake(view, "alice").transfers

    def test_unknown_participant(self, config):
        with pytest.raises(NoPosition):
            compute_unstake(FakeView(config, time=at(150)), "alice")

    def test_twice(self, config):
        view = FakeView(config, positions={"alice": _unlocked()}, time=at(150))
        with pytest.raises(AlreadyUnstaked):
            compute_unstake(view, "alice")

    def test_locked_total(self, config):
        view = FakeView(config, positions={
            "alice": Position(locked_volume=Decimal("1000")),
            "bob": _unlocked("5000"),
        })
        assert locked_total(view) == Decimal("1000")


class TestComputeDepositInventory:

    def test_owner_deposits(self, config):
        pending = compute_deposit_inventory(FakeView(config, time=at(0)), "deployer", Decimal("100000"))
        assert pending.inventory_change.new.deposited == Decimal("100000")
        transfer, = pending.transfers
        assert transfer.kind is TransferKind.PULL
        assert transfer.asset == config.sale_asset
        assert transfer.account == "deployer"

    def test_any_phase(self, config):
        for seconds in (0, 60, 200, 10_000):
            assert compute_deposit_inventory(FakeView(config, time=at(seconds)), "deployer", Decimal("1"))

    def test_not_owner(self, config):
        with pytest.raises(NotOwner):
            compute_deposit_inventory(FakeView(config), "alice", Decimal("1"))

    def test_zero(self, config):
        with pytest.raises(InvalidAmount):
            compute_deposit_inventory(FakeView(config), "deployer", Decimal("0"))

    def test_closed_after_unsold_withdrawal(self, config):
        inventory = SaleInventory(deposited=Decimal("2000"), sold=Decimal("2000"), unsold_withdrawn=True)
        view = FakeView(config, inventory=inventory, time=at(250))
        with pytest.raises(AlreadyWithdrawn):
            compute_deposit_inventory(view, "deployer", Decimal("500"))


class TestComputeParticipation:

    def _view(self, config, position=None, deposited="100000", sold="0"):
        return FakeView(
            config,
            positions={"alice": position or _unlocked()},
            inventory=SaleInventory(deposited=Decimal(deposited), sold=Decimal(sold)),
            time=at(200),
        )

    def test_buys_at_price(self, config):
        pending = compute_participation(self._view(config), "alice", Decimal("20000"))
        change, = pending.position_changes
        assert change.new.purchased_amount == Decimal("2000")
        inv = pending.inventory_change.new
        assert inv.sold == Decimal("2000")
        assert inv.raised == Decimal("20000")
        transfer, = pending.transfers
        assert transfer.kind is TransferKind.PULL
        assert transfer.asset == config.purchase_asset
        assert transfer.amount == Decimal("20000")

    def test_sale_amount_rounds_down(self, config):
        view = self._view(config)
        assert sale_amount_for(view, Decimal("1")) == Decimal("0.1")
        assert sale_amount_for(make_view_with_price(Decimal("3")), Decimal("1")) == Decimal("0.333333333333333333")

    def test_outside_sale(self, config):
        view = FakeView(config, positions={"alice": _unlocked()}, time=at(150))
        with pytest.raises(PhaseError):
            compute_participation(view, "alice", Decimal("10"))

    def test_never_staked(self, config):
        view = FakeView(config, time=at(200))
        with pytest.raises(NoPosition):
            compute_participation(view, "alice", Decimal("10"))

    def test_still_locked(self, config):
        view = self._view(config, position=Position(locked_volume=Decimal("1000")))
        with pytest.raises(StakeStillLocked):
            compute_participation(view, "alice", Decimal("10"))

    def test_zero_amount(self, config):
        with pytest.raises(InvalidAmount):
            compute_participation(self._view(config), "alice", Decimal("0"))

    def test_dust_buys_nothing(self, config):
        with pytest.raises(InvalidAmount):
            compute_participation(self._view(config), "alice", Decimal("0.000000000000000001"))

    def test_no_tier(self, config):
        view = self._view(config, position=_unlocked("500"))
        with pytest.raises(AllocationExceeded):
            compute_participation(view, "alice", Decimal("10"))

    def test_allocation_exceeded(self, config):
        # cap for 1000 locked is 1,000,000 sale units
        view = self._view(config, position=_unlocked("1000", purchased="999999"), deposited="10000000")
        with pytest.raises(AllocationExceeded):
            compute_participation(view, "alice", Decimal("20"))

    def test_cap_reached_exactly(self, config):
        view = self._view(config, position=_unlocked("1000", purchased="999999"), deposited="10000000")
        pending = compute_participation(view, "alice", Decimal("10"))
        assert pending.position_changes[0].new.purchased_amount == Decimal("1000000")

    def test_sold_out_with_nothing_deposited(self, config):
        with pytest.raises(SoldOut, match="Sold out"):
            compute_participation(self._view(config, deposited="0"), "alice", Decimal("20000"))

    def test_sold_out_partial(self, config):
        with pytest.raises(SoldOut):
            compute_participation(self._view(config, deposited="2000", sold="1000"), "alice", Decimal("10010"))

    def test_exactly_sells_out(self, config):
        pending = compute_participation(self._view(config, deposited="2000", sold="1000"), "alice", Decimal("10000"))
        inv = pending.inventory_change.new
        assert inv.sold == inv.deposited


def make_view_with_price(price):
    return FakeView(make_config(sale_price=price), time=at(200))


class TestOwnerWithdrawals:

    def _after_sale(self, config, **inventory):
        values = {k: Decimal(v) if not isinstance(v, bool) else v for k, v in inventory.items()}
        return FakeView(config, inventory=SaleInventory(**values), time=at(250))

    def test_proceeds(self, config):
        view = self._after_sale(config, deposited="100000", sold="2000", raised="20000")
        pending = compute_proceeds_withdrawal(view, "deployer")
        assert pending.inventory_change.new.proceeds_withdrawn == Decimal("20000")
        transfer, = pending.transfers
        assert transfer.kind is TransferKind.PUSH
        assert transfer.asset == config.purchase_asset
        assert transfer.account == "deployer"
        assert transfer.amount == Decimal("20000")

    def test_proceeds_nothing_due(self, config):
        view = self._after_sale(config, raised="20000", proceeds_withdrawn="20000")
        assert compute_proceeds_withdrawal(view, "deployer").is_empty()

    def test_proceeds_before_sale_end(self, config):
        with pytest.raises(PhaseError):
            compute_proceeds_withdrawal(FakeView(config, time=at(200)), "deployer")

    def test_proceeds_not_owner(self, config):
        with pytest.raises(NotOwner):
            compute_proceeds_withdrawal(self._after_sale(config), "alice")

    def test_unsold(self, config):
        view = self._after_sale(config, deposited="100000", sold="2000")
        pending = compute_unsold_withdrawal(view, "deployer")
        inv = pending.inventory_change.new
        assert inv.deposited == Decimal("2000")
        assert inv.sold == Decimal("2000")
        assert inv.unsold_withdrawn is True
        assert pending.transfers[0].amount == Decimal("98000")
        assert pending.transfers[0].asset == config.sale_asset

    def test_unsold_nothing_left_still_marks(self, config):
        view = self._after_sale(config, deposited="2000", sold="2000")
        pending = compute_unsold_withdrawal(view, "deployer")
        assert pending.transfers == ()
        assert pending.inventory_change.new.unsold_withdrawn is True

    def test_unsold_only_once(self, config):
        view = self._after_sale(config, deposited="2000", sold="2000", unsold_withdrawn=True)
        with pytest.raises(AlreadyWithdrawn):
            compute_unsold_withdrawal(view, "deployer")

    def test_unsold_not_owner(self, config):
        with pytest.raises(NotOwner):
            compute_unsold_withdrawal(self._after_sale(config), "alice")
