"""
conftest.py - Shared pytest fixtures for launchpad tests

Provides common fixtures used across unit, conformance and functional tests:
- The standard schedule (stake t+60..t+120, sale t+180..t+240, vest from t+300)
- A funded asset ledger with unlimited approvals for the launchpad account
- A launchpad owned by "deployer"
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from launchpad import (
    AssetLedger, Launchpad, LaunchpadConfig, Position, SaleInventory,
    UNLIMITED_ALLOWANCE, custody_account,
)

from tests.fake_view import FakeView


T0 = datetime(2025, 1, 1)

STAKING_ASSET = "STK"
SALE_ASSET = "SAL"
PURCHASE_ASSET = "PUR"
OWNER = "deployer"
PARTICIPANTS = ("alice", "bob", "carol")
FUNDING = Decimal("100000")
OWNER_SALE_FUNDING = Decimal("1000000")


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def at(seconds: int) -> datetime:
    """Timestamp ``seconds`` after the anchor T0."""
    return T0 + timedelta(seconds=seconds)


def make_config(**overrides) -> LaunchpadConfig:
    """
    Build the standard configuration with keyword overrides.

    Overrides use the LaunchpadConfig.from_offsets parameter names.
    """
    params = dict(
        name="standard",
        staking_asset=STAKING_ASSET,
        sale_asset=SALE_ASSET,
        purchase_asset=PURCHASE_ASSET,
        staking_offsets=(60, 120),
        staking_volume_range=(Decimal("100"), Decimal("100000")),
        staking_tiers=(Decimal("1000"), Decimal("5000")),
        sale_offsets=(180, 240),
        sale_price=Decimal("10"),
        sale_ratio_tiers=(Decimal("1000"), Decimal("1200"), Decimal("1300")),
        vesting_offset=300,
        vesting_period=timedelta(seconds=60),
        vesting_initial_ratio=Decimal("0.1"),
    )
    params.update(overrides)
    return LaunchpadConfig.from_offsets(T0, **params)


def make_assets(config: LaunchpadConfig, participants=PARTICIPANTS) -> AssetLedger:
    """Asset ledger with funded participants and unlimited approvals for the launchpad."""
    assets = AssetLedger("chain", verbose=False, test_mode=True)
    for asset in (config.staking_asset, config.sale_asset, config.purchase_asset):
        assets.register_asset(asset)
    spender = custody_account(config)
    assets.register_account(spender)
    assets.register_account(OWNER)
    assets.register_account("keeper")

    for participant in participants:
        assets.register_account(participant)
        for asset in (config.staking_asset, config.sale_asset, config.purchase_asset):
            assets.mint(asset, participant, FUNDING)
            assets.approve(asset, participant, spender, UNLIMITED_ALLOWANCE)

    assets.mint(config.sale_asset, OWNER, OWNER_SALE_FUNDING)
    assets.approve(config.sale_asset, OWNER, spender, UNLIMITED_ALLOWANCE)
    return assets


def make_launchpad(config: LaunchpadConfig = None, assets: AssetLedger = None) -> Launchpad:
    config = config or make_config()
    assets = assets or make_assets(config)
    return Launchpad(config, assets, owner=OWNER, initial_time=T0, verbose=False)


def snapshot(launchpad: Launchpad):
    """Everything an operation could change, for before/after comparison."""
    assets = launchpad.assets
    accounts = sorted(assets.list_accounts())
    return (
        {p: launchpad.position(p) for p in sorted(launchpad.list_participants())},
        launchpad.inventory(),
        len(launchpad.operation_log),
        {(a, x): assets.balance_of(x, a) for a in accounts for x in sorted(assets.assets)},
        len(assets.transfer_log),
    )


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def assets(config):
    return make_assets(config)


@pytest.fixture
def launchpad(config, assets):
    return Launchpad(config, assets, owner=OWNER, initial_time=T0, verbose=False)


@pytest.fixture
def staked_launchpad(launchpad):
    """alice staked 1000 (tier 0), bob staked 5000 (tier 1); time is inside staking."""
    launchpad.advance_time(at(60))
    launchpad.stake("alice", Decimal("1000"))
    launchpad.stake("bob", Decimal("5000"))
    return launchpad


@pytest.fixture
def sale_launchpad(staked_launchpad):
    """Inventory of 100000 deposited, alice and bob unstaked, time at sale start."""
    lp = staked_launchpad
    lp.deposit_inventory(OWNER, Decimal("100000"))
    lp.advance_time(at(150))
    lp.unstake("alice")
    lp.unstake("bob")
    lp.advance_time(at(200))
    return lp


@pytest.fixture
def fake_view(config):
    return FakeView(config)
