"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the launchpad.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. atomicity.py - Failed operations leave no observable effect
2. oversell.py - sold <= deposited, purchases bounded by the tier cap
3. release_bounds.py - released <= purchased, payouts bounded by the schedule
4. idempotency.py - A stake is returned exactly once
5. temporal.py - Phase gating and clock monotonicity
6. conservation.py - Assets are only moved, never created or destroyed

These tests use hypothesis for property-based testing.
"""
