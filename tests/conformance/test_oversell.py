"""
Oversell Conformance Tests

INVARIANT: Sales are bounded by inventory and by each buyer's allocation.

    at all times:
        inventory.sold <= inventory.deposited
        ∀ participant p: purchased(p) <= max_purchase(p)
        inventory.sold = Σ_p purchased(p)

A purchase that would break either bound is rejected as a whole.
"""

import pytest
from hypothesis import given, settings, HealthCheck
from hypothesis import strategies as st
from decimal import Decimal

from launchpad import SoldOut, AllocationExceeded

from tests.conftest import OWNER, at, make_launchpad, make_config
from tests.conformance.strategies import apply_action, scripts


def assert_sale_bounds(lp):
    inventory = lp.inventory()
    assert inventory.sold <= inventory.deposited
    total = Decimal("0")
    for participant in lp.list_participants():
        position = lp.position(participant)
        assert position.purchased_amount <= lp.max_purchase(participant)
        total += position.purchased_amount
    assert total == inventory.sold


class TestOversellProperties:

    @given(scripts(max_size=30))
    @settings(max_examples=80, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_bounds_hold_after_every_action(self, script):
        lp = make_launchpad()
        for action in script:
            apply_action(lp, action)
            assert_sale_bounds(lp)

    @given(
        st.decimals(min_value=Decimal("1"), max_value=Decimal("5000"), places=0),
        st.lists(st.decimals(min_value=Decimal("10"), max_value=Decimal("30000"), places=1),
                 min_size=1, max_size=15),
    )
    @settings(max_examples=60, deadline=None)
    def test_competing_buyers_never_oversell(self, deposit, purchases):
        """
        PROPERTY: however purchases interleave, the total sold never
        exceeds a small deposited inventory.
        """
        lp = make_launchpad()
        lp.advance_time(at(60))
        for p in ("alice", "bob", "carol"):
            lp.stake(p, Decimal("1000"))
        lp.deposit_inventory(OWNER, deposit)
        lp.advance_time(at(150))
        for p in ("alice", "bob", "carol"):
            lp.unstake(p)
        lp.advance_time(at(200))

        buyers = ("alice", "bob", "carol")
        for i, amount in enumerate(purchases):
            try:
                lp.participate(buyers[i % 3], amount)
            except SoldOut:
                pass
            assert_sale_bounds(lp)


class TestOversellExamples:

    def test_last_unit_sold_then_sold_out(self, staked_launchpad):
        lp = staked_launchpad
        lp.deposit_inventory(OWNER, Decimal("3000"))
        lp.advance_time(at(150))
        lp.unstake("alice")
        lp.unstake("bob")
        lp.advance_time(at(200))

        lp.participate("alice", Decimal("20000"))
        lp.participate("bob", Decimal("10000"))
        assert lp.inventory_sold() == lp.inventory_deposited()
        with pytest.raises(SoldOut):
            lp.participate("bob", Decimal("10"))

    def test_allocation_checked_before_inventory(self):
        config = make_config(sale_ratio_tiers=(Decimal("1"), Decimal("1"), Decimal("1")))
        lp = make_launchpad(config)
        lp.advance_time(at(60))
        lp.stake("alice", Decimal("1000"))
        lp.advance_time(at(150))
        lp.unstake("alice")
        lp.advance_time(at(200))
        # cap is 1000, nothing deposited
        with pytest.raises(AllocationExceeded):
            lp.participate("alice", Decimal("10010"))
        with pytest.raises(SoldOut):
            lp.participate("alice", Decimal("10000"))
