"""
launchpad - Staged Token Sale and Vesting Ledger

Participants lock a staking asset, earn a purchase allocation tier from the
locked volume, buy a sale asset at a fixed price during the sale window and
withdraw the purchase under a cliff + linear vesting schedule.

Usage:
    from datetime import datetime, timedelta
    from decimal import Decimal
    from launchpad import (
        AssetLedger, Launchpad, LaunchpadConfig, UNLIMITED_ALLOWANCE, custody_account,
    )

    t = datetime(2025, 1, 1)
    config = LaunchpadConfig.from_offsets(
        t, name="main",
        staking_asset="STK", sale_asset="SALE", purchase_asset="USD",
        staking_offsets=(60, 120), staking_volume_range=(100, 100000),
        staking_tiers=[1000, 5000],
        sale_offsets=(180, 240), sale_price=10, sale_ratio_tiers=[1000, 1200, 1300],
        vesting_offset=300, vesting_period=timedelta(seconds=60), vesting_initial_ratio=Decimal("0.1"),
    )

    assets = AssetLedger("chain")
    for asset in ("STK", "SALE", "USD"):
        assets.register_asset(asset)
    assets.register_account(custody_account(config))
    assets.register_account("alice")
    assets.mint("STK", "alice", 100000)
    assets.approve("STK", "alice", custody_account(config), UNLIMITED_ALLOWANCE)

    launchpad = Launchpad(config, assets, owner="deployer", initial_time=t)
    launchpad.advance_time(config.staking_start)
    launchpad.stake("alice", Decimal("1000"))
"""

# Core types
from .core import (
    LaunchpadView,
    AssetPort,
    Position,
    SaleInventory,
    PositionChange,
    InventoryChange,
    AssetTransfer,
    TransferKind,
    PendingOperation,
    OperationRecord,
    build_operation,
    empty_operation,
    to_amount,
    quantize_amount,
    checked_add,
    checked_sub,
    checked_mul,
    LaunchpadError,
    ConfigurationError,
    PhaseError,
    InvalidAmount,
    VolumeOutOfRange,
    AlreadyUnstaked,
    StakeStillLocked,
    NoPosition,
    AllocationExceeded,
    SoldOut,
    NotOwner,
    AlreadyWithdrawn,
    StaleState,
    ReentrancyError,
    ArithmeticOverflow,
    AssetTransferFailure,
    InsufficientBalance,
    InsufficientAllowance,
    AssetNotRegistered,
    AccountNotRegistered,
    SYSTEM_ACCOUNT,
    AMOUNT_DECIMALS,
    AMOUNT_QUANTUM,
    MAX_AMOUNT,
    UNLIMITED_ALLOWANCE,
)

# Configuration and schedule
from .config import LaunchpadConfig
from .phases import (
    Phase,
    current_phase,
    require_phase,
    STAKING_ONLY,
    SALE_ONLY,
    AFTER_STAKING,
    AFTER_SALE,
    ANY_PHASE,
)

# Pure operations
from .tiers import resolve_tier, multiplier_for, max_purchase, remaining_allocation
from .staking import compute_stake, compute_unstake, locked_total
from .sale import (
    sale_amount_for,
    compute_deposit_inventory,
    compute_participation,
    compute_proceeds_withdrawal,
    compute_unsold_withdrawal,
)
from .vesting import (
    vested_fraction,
    releasable_now,
    amount_due,
    compute_release,
    vested_fraction_curve,
)

# State and engines
from .store import PositionStore
from .assets import AssetLedger, TransferRecord
from .launchpad import Launchpad, custody_account
from .keeper import ReleaseKeeper


__all__ = [
    # Core
    'LaunchpadView', 'AssetPort',
    'Position', 'SaleInventory', 'PositionChange', 'InventoryChange',
    'AssetTransfer', 'TransferKind', 'PendingOperation', 'OperationRecord',
    'build_operation', 'empty_operation',
    'to_amount', 'quantize_amount', 'checked_add', 'checked_sub', 'checked_mul',
    'SYSTEM_ACCOUNT', 'AMOUNT_DECIMALS', 'AMOUNT_QUANTUM', 'MAX_AMOUNT', 'UNLIMITED_ALLOWANCE',
    # Errors
    'LaunchpadError', 'ConfigurationError', 'PhaseError', 'InvalidAmount',
    'VolumeOutOfRange', 'AlreadyUnstaked', 'StakeStillLocked', 'NoPosition',
    'AllocationExceeded', 'SoldOut', 'NotOwner', 'AlreadyWithdrawn',
    'StaleState', 'ReentrancyError', 'ArithmeticOverflow',
    'AssetTransferFailure', 'InsufficientBalance', 'InsufficientAllowance',
    'AssetNotRegistered', 'AccountNotRegistered',
    # Configuration and schedule
    'LaunchpadConfig',
    'Phase', 'current_phase', 'require_phase',
    'STAKING_ONLY', 'SALE_ONLY', 'AFTER_STAKING', 'AFTER_SALE', 'ANY_PHASE',
    # Operations
    'resolve_tier', 'multiplier_for', 'max_purchase', 'remaining_allocation',
    'compute_stake', 'compute_unstake', 'locked_total',
    'sale_amount_for', 'compute_deposit_inventory', 'compute_participation',
    'compute_proceeds_withdrawal', 'compute_unsold_withdrawal',
    'vested_fraction', 'releasable_now', 'amount_due', 'compute_release',
    'vested_fraction_curve',
    # State and engines
    'PositionStore', 'AssetLedger', 'TransferRecord',
    'Launchpad', 'custody_account', 'ReleaseKeeper',
]
