"""
Release Bounds Conformance Tests

INVARIANT: Vesting never pays out more than has vested.

    ∀ participant p, at all times t:
        released(p) <= releasable_now(p, t) <= purchased(p)
        released(p) is non-decreasing in t

After vesting ends, repeated releases pay out exactly purchased(p) in total.
"""

from hypothesis import given, settings, HealthCheck
from hypothesis import strategies as st
from decimal import Decimal

from tests.conftest import OWNER, PARTICIPANTS, at, make_launchpad
from tests.conformance.strategies import apply_action, scripts


class TestReleaseBoundProperties:

    @given(scripts(max_size=30))
    @settings(max_examples=80, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_released_within_vested(self, script):
        lp = make_launchpad()
        last_released = {}
        for action in script:
            apply_action(lp, action)
            for participant in lp.list_participants():
                position = lp.position(participant)
                assert position.released_amount <= lp.releasable_now(participant)
                assert lp.releasable_now(participant) <= position.purchased_amount
                assert position.released_amount >= last_released.get(participant, Decimal("0"))
                last_released[participant] = position.released_amount

    @given(st.lists(st.integers(min_value=300, max_value=400), min_size=1, max_size=12))
    @settings(max_examples=60, deadline=None)
    def test_release_sequence_sums_to_purchase(self, release_times):
        """
        PROPERTY: releases at arbitrary times followed by one after the end
        pay out exactly the purchased amount.
        """
        lp = make_launchpad()
        lp.advance_time(at(60))
        lp.stake("alice", Decimal("1000"))
        lp.deposit_inventory(OWNER, Decimal("100000"))
        lp.advance_time(at(150))
        lp.unstake("alice")
        lp.advance_time(at(200))
        lp.participate("alice", Decimal("20000"))

        paid = Decimal("0")
        for seconds in sorted(release_times):
            lp.advance_time(at(seconds))
            paid += lp.release_vested_tokens("alice")
        lp.advance_time(at(400))
        paid += lp.release_vested_tokens("alice")

        assert paid == Decimal("2000")
        assert lp.position("alice").released_amount == Decimal("2000")
        assert lp.assets.balance_of("SAL", "alice") == Decimal("100000") + Decimal("2000")
        for other in PARTICIPANTS[1:]:
            assert lp.position(other).released_amount == 0
