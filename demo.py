#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: A Launchpad From Staking to Vesting

Walks one token sale through its whole schedule. Each step builds on the
previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Setup        - Configuration, the asset ledger, the launchpad
  4-5:  Staking      - Locking stake, tiers, getting the stake back
  6-7:  Sale         - Buying at a fixed price, rejections that change nothing
  8-9:  Vesting      - Cliff + linear release, the keeper relaying releases
  10:   Settlement   - Owner withdrawals and the conservation proof

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Tuple
import sys

from launchpad import (
    AssetLedger, Launchpad, LaunchpadConfig, ReleaseKeeper,
    LaunchpadError, UNLIMITED_ALLOWANCE,
    custody_account, vested_fraction_curve,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)
    participants: Tuple[str, ...] = ("alice", "bob", "carol")
    owner: str = "deployer"
    funding: Decimal = Decimal("100000")
    inventory: Decimal = Decimal("100000")
    stakes: dict = field(default_factory=lambda: {
        "alice": Decimal("1000"), "bob": Decimal("5000"), "carol": Decimal("500"),
    })
    purchases: dict = field(default_factory=lambda: {
        "alice": Decimal("20000"), "bob": Decimal("35000"),
    })


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def at(seconds: int) -> datetime:
    return CONFIG.start_time + timedelta(seconds=seconds)


# ============================================================================
# SETUP (Steps 1-3)
# ============================================================================

def step_01_configuration() -> LaunchpadConfig:
    step_header(1, "CONFIGURATION", "Fix the schedule, tiers and price once, up front.")
    config = LaunchpadConfig.from_offsets(
        CONFIG.start_time,
        name="demo",
        staking_asset="STK", sale_asset="SAL", purchase_asset="PUR",
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
    print(f"  staking : {config.staking_start} .. {config.staking_end}")
    print(f"  sale    : {config.sale_start} .. {config.sale_end} at {config.sale_price} PUR/SAL")
    print(f"  vesting : {config.vesting_start} .. {config.vesting_end}, "
          f"{config.vesting_initial_ratio:%} at the cliff")

    print("\n  An inverted window is rejected at construction:")
    try:
        LaunchpadConfig.from_offsets(
            CONFIG.start_time, name="bad",
            staking_asset="STK", sale_asset="SAL", purchase_asset="PUR",
            staking_offsets=(120, 60), staking_volume_range=(100, 100000),
            staking_tiers=(1000,), sale_offsets=(180, 240), sale_price=10,
            sale_ratio_tiers=(1000,), vesting_offset=300,
            vesting_period=timedelta(seconds=60), vesting_initial_ratio=Decimal("0.1"),
        )
    except LaunchpadError as e:
        print(f"  ✗ {e}")
    return config


def step_02_assets(config: LaunchpadConfig) -> AssetLedger:
    step_header(2, "ASSET LEDGER", "Fund participants and approve the launchpad's custody account.")
    assets = AssetLedger("chain", verbose=True)
    for asset in (config.staking_asset, config.sale_asset, config.purchase_asset):
        assets.register_asset(asset)
    custody = assets.register_account(custody_account(config))
    assets.register_account(CONFIG.owner)
    assets.register_account("keeper")
    for p in CONFIG.participants:
        assets.register_account(p)
        for asset in (config.staking_asset, config.purchase_asset):
            assets.mint(asset, p, CONFIG.funding)
            assets.approve(asset, p, custody, UNLIMITED_ALLOWANCE)
    assets.mint(config.sale_asset, CONFIG.owner, CONFIG.inventory)
    assets.approve(config.sale_asset, CONFIG.owner, custody, UNLIMITED_ALLOWANCE)
    print(f"\n  {assets}")
    return assets


def step_03_launchpad(config: LaunchpadConfig, assets: AssetLedger) -> Launchpad:
    step_header(3, "LAUNCHPAD", "The owner deposits the sale inventory.")
    lp = Launchpad(config, assets, owner=CONFIG.owner, initial_time=CONFIG.start_time)
    lp.deposit_inventory(CONFIG.owner, CONFIG.inventory)
    print(f"\n  phase: {lp.current_phase().value}")
    print(f"  {lp}")
    return lp


# ============================================================================
# STAKING (Steps 4-5)
# ============================================================================

def step_04_stake(lp: Launchpad):
    step_header(4, "STAKING", "Lock stake during the window; the locked volume picks the tier.")
    lp.advance_time(at(60))
    for p, amount in CONFIG.stakes.items():
        lp.stake(p, amount)
    for p in CONFIG.stakes:
        print(f"  {p:6s} locked {lp.position(p).locked_volume:>8} -> may buy up to {lp.max_purchase(p)} SAL")


def step_05_unstake(lp: Launchpad):
    step_header(5, "UNSTAKE", "After staking ends every stake comes back in full, exactly once.")
    lp.advance_time(at(150))
    for p in CONFIG.stakes:
        returned = lp.unstake(p)
        print(f"  {p:6s} got back {returned} STK")
    try:
        lp.unstake("alice")
    except LaunchpadError as e:
        print(f"  second unstake: {type(e).__name__}")


# ============================================================================
# SALE (Steps 6-7)
# ============================================================================

def step_06_participate(lp: Launchpad):
    step_header(6, "SALE", "Spend the purchase asset at the fixed price.")
    lp.advance_time(at(200))
    for p, amount in CONFIG.purchases.items():
        bought = lp.participate(p, amount)
        print(f"  {p:6s} paid {amount} PUR for {bought} SAL")
    print(f"\n  sold {lp.inventory_sold()} of {lp.inventory_deposited()}")


def step_07_rejections(lp: Launchpad):
    step_header(7, "REJECTIONS", "A rejected purchase leaves every balance and position as it was.")
    before = lp.assets.balance_of("PUR", "carol")
    try:
        lp.participate("carol", Decimal("10"))
    except LaunchpadError as e:
        print(f"  carol (below the first tier): {type(e).__name__}")
    assert lp.assets.balance_of("PUR", "carol") == before


# ============================================================================
# VESTING (Steps 8-9)
# ============================================================================

def step_08_vesting_curve(lp: Launchpad):
    step_header(8, "VESTING CURVE", "10% at the cliff, the rest linearly over the period.")
    config = lp.config
    times = [config.vesting_start + timedelta(seconds=s) for s in range(-15, 76, 15)]
    for t, fraction in zip(times, vested_fraction_curve(config, times)):
        print(f"  {t.time()}  {fraction:6.1%}")


def step_09_keeper(lp: Launchpad):
    step_header(9, "KEEPER", "Anyone may relay releases; payouts always go to the buyer.")
    keeper = ReleaseKeeper(lp)
    keeper.run([at(300), at(330), at(360)])
    for p, amount in sorted(keeper.released.items()):
        print(f"  {p:6s} received {amount} SAL")


# ============================================================================
# SETTLEMENT (Step 10)
# ============================================================================

def step_10_settlement(lp: Launchpad):
    step_header(10, "SETTLEMENT", "The owner collects proceeds and unsold inventory; nothing leaks.")
    proceeds = lp.withdraw_proceeds(CONFIG.owner)
    unsold = lp.withdraw_unsold_inventory(CONFIG.owner)
    print(f"  proceeds {proceeds} PUR, unsold {unsold} SAL")
    for asset in ("STK", "SAL", "PUR"):
        print(f"  custody {asset}: {lp.assets.balance_of(asset, lp.account)}")
    result = lp.assets.verify_conservation()
    print(f"\n  conservation valid: {result['valid']}")
    print(f"  operations logged: {len(lp.operation_log)}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       LAUNCHPAD - INTERACTIVE TUTORIAL")
    print("=" * 70)

    config = step_01_configuration()
    wait_for_enter()
    assets = step_02_assets(config)
    wait_for_enter()
    lp = step_03_launchpad(config, assets)
    wait_for_enter()

    step_04_stake(lp)
    wait_for_enter()
    step_05_unstake(lp)
    wait_for_enter()

    step_06_participate(lp)
    wait_for_enter()
    step_07_rejections(lp)
    wait_for_enter()

    step_08_vesting_curve(lp)
    wait_for_enter()
    step_09_keeper(lp)
    wait_for_enter()

    step_10_settlement(lp)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See launchpad/*.py for the operations
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
