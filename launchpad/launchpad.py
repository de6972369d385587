"""
launchpad.py - Launchpad Engine

The Launchpad is the only mutating component. Entry points compute a
PendingOperation from the committed state with the pure compute_*
functions and hand it to execute(), which applies it atomically.

Execution order inside execute():
    1. validate (reentrancy, timestamp, stale snapshots)
    2. install the staged PositionStore as the working store
    3. perform the single asset transfer
    4. commit: publish the store and append an OperationRecord

If step 3 raises, the working store is restored and the error propagates;
no position, inventory or log entry changes.
"""

from __future__ import annotations
import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, List, Optional, Set

from .config import LaunchpadConfig
from .core import (
    LaunchpadError, StaleState, ReentrancyError,
    Position, SaleInventory, PendingOperation, OperationRecord, AssetTransfer,
    AssetPort, TransferKind, ZERO,
)
from .phases import Phase, current_phase
from .sale import (
    compute_deposit_inventory, compute_participation,
    compute_proceeds_withdrawal, compute_unsold_withdrawal,
)
from .staking import compute_stake, compute_unstake
from .store import PositionStore
from .tiers import max_purchase
from . import vesting

_EPOCH = datetime(1970, 1, 1)


def custody_account(config: LaunchpadConfig) -> str:
    """Account that holds the launchpad's assets on the asset ledger."""
    return f"launchpad:{config.name}"


class Launchpad:
    """
    Staged token sale with staking, fixed-price sale and vesting.

    Implements LaunchpadView. All entry points are serialised by one
    re-entrant lock; queries read the last committed snapshot.

    Example:
        launchpad = Launchpad(config, assets, owner="deployer",
                              initial_time=config.staking_start)
        launchpad.stake("alice", Decimal("1000"))
        launchpad.advance_time(config.sale_start)
        launchpad.unstake("alice")
        launchpad.participate("alice", Decimal("20000"))
    """

    def __init__(
        self,
        config: LaunchpadConfig,
        assets: AssetPort,
        owner: str,
        initial_time: Optional[datetime] = None,
        verbose: bool = True,
    ):
        """
        Create a launchpad.

        Args:
            config: Validated configuration
            assets: Asset ledger the launchpad pulls from and pays out of
            owner: Identity allowed to deposit inventory and withdraw
            initial_time: Starting logical time (default: 1970-01-01)
            verbose: Print applied and rejected operations (default: True)
        """
        if not isinstance(config, LaunchpadConfig):
            raise TypeError(f"config must be a LaunchpadConfig, got {type(config).__name__}")
        if not isinstance(assets, AssetPort):
            raise TypeError(f"assets must implement AssetPort, got {type(assets).__name__}")
        if not owner:
            raise ValueError("owner cannot be empty")

        self._config = config
        self.assets = assets
        self._owner = owner
        self._account = custody_account(config)
        self._current_time: datetime = initial_time or _EPOCH
        self.verbose = verbose

        self._lock = threading.RLock()
        self._executing = False
        # Working store (effects land here first) and the last committed one.
        self._store = PositionStore()
        self._committed = self._store
        self.operation_log: List[OperationRecord] = []
        self._next_sequence: int = 0

    # ========================================================================
    # LaunchpadView PROTOCOL
    # ========================================================================

    @property
    def config(self) -> LaunchpadConfig:
        return self._config

    @property
    def current_time(self) -> datetime:
        return self._current_time

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def account(self) -> str:
        return self._account

    def get_position(self, participant: str) -> Optional[Position]:
        return self._committed.get(participant)

    def get_inventory(self) -> SaleInventory:
        return self._committed.inventory

    def list_participants(self) -> Set[str]:
        return self._committed.participants()

    # ========================================================================
    # TIME
    # ========================================================================

    def advance_time(self, new_time: datetime) -> None:
        """
        Advance the logical clock. Ties are allowed; moving backwards is not.

        Raises:
            ValueError: If new_time is before the current time
        """
        with self._lock:
            if new_time < self._current_time:
                raise ValueError(
                    f"Cannot move time backwards: {new_time} < {self._current_time}"
                )
            self._current_time = new_time

    # ========================================================================
    # QUERIES
    # ========================================================================

    def position(self, participant: str) -> Position:
        """Position of ``participant`` (all zero when it has never staked)."""
        return self._committed.get_or_empty(participant)

    def inventory(self) -> SaleInventory:
        return self._committed.inventory

    def inventory_deposited(self) -> Decimal:
        return self._committed.inventory.deposited

    def inventory_sold(self) -> Decimal:
        return self._committed.inventory.sold

    def max_purchase(self, participant: str) -> Decimal:
        return max_purchase(self._config, self._committed.get(participant))

    def releasable_now(self, participant: str) -> Decimal:
        """Cumulative sale asset vested for ``participant`` at the current time."""
        return vesting.releasable_now(self._config, self._committed.get(participant), self._current_time)

    def current_phase(self) -> Phase:
        return current_phase(self._config, self._current_time)

    # ========================================================================
    # EXECUTION (Mutating)
    # ========================================================================

    def _generate_exec_id(self, sequence: int) -> str:
        """Format: exec:{launchpad_name}:{sequence:012d}:{timestamp_micros}"""
        epoch = _EPOCH if self._current_time.tzinfo is None else _EPOCH.replace(tzinfo=timezone.utc)
        micros = (self._current_time - epoch) // timedelta(microseconds=1)
        return f"exec:{self._config.name}:{sequence:012d}:{micros}"

    def _validate_pending(self, pending: PendingOperation) -> None:
        if pending.timestamp > self._current_time:
            raise StaleState(
                f"{pending.operation} built at {pending.timestamp}, "
                f"after current time {self._current_time}"
            )
        if current_phase(self._config, pending.timestamp) != current_phase(self._config, self._current_time):
            raise StaleState(
                f"{pending.operation} built in a different phase than the current one"
            )

    def _perform(self, transfer: AssetTransfer) -> None:
        if transfer.kind is TransferKind.PULL:
            self.assets.transfer_from(transfer.asset, transfer.account, self._account, transfer.amount)
        else:
            self.assets.transfer(transfer.asset, self._account, transfer.account, transfer.amount)

    def execute(self, pending: PendingOperation) -> Optional[OperationRecord]:
        """
        Apply a PendingOperation atomically.

        State changes and the asset transfer succeed together or not at all.

        Args:
            pending: PendingOperation built against the current committed state

        Returns:
            The OperationRecord appended to operation_log, or None for an
            empty operation.

        Raises:
            ReentrancyError: If called while another operation is in flight
            StaleState: If the operation was built against a different state
                        or time than the current one
            AssetTransferFailure: If the asset ledger rejects the transfer
        """
        with self._lock:
            if self._executing:
                raise ReentrancyError(
                    f"{pending.operation} re-entered while an operation is executing"
                )
            if pending.is_empty():
                return None

            self._validate_pending(pending)
            previous = self._store
            staged = previous.apply(pending.position_changes, pending.inventory_change)

            self._executing = True
            self._store = staged
            try:
                for transfer in pending.transfers:
                    self._perform(transfer)
            except BaseException:
                self._store = previous
                raise
            finally:
                self._executing = False

            sequence = self._next_sequence
            self._next_sequence += 1
            record = OperationRecord(
                exec_id=self._generate_exec_id(sequence),
                sequence_number=sequence,
                execution_time=self._current_time,
                operation=pending.operation,
                actor=pending.actor,
                position_changes=pending.position_changes,
                inventory_change=pending.inventory_change,
                transfers=pending.transfers,
            )
            self._committed = staged
            self.operation_log.append(record)
            if self.verbose:
                print(f"✓ APPLIED: {pending.operation} by {pending.actor} (#{sequence})")
            return record

    def _run(self, operation: str, compute: Callable[..., PendingOperation], *args) -> Optional[OperationRecord]:
        """Compute and execute under the lock, reporting rejections when verbose."""
        with self._lock:
            if self._executing:
                raise ReentrancyError(f"{operation} re-entered while an operation is executing")
            try:
                return self.execute(compute(self, *args))
            except LaunchpadError as e:
                if self.verbose:
                    print(f"✗ REJECTED: {operation}: {e}")
                raise

    # ========================================================================
    # ENTRY POINTS (Mutating)
    # ========================================================================

    def stake(self, participant: str, amount) -> Position:
        """Lock staking asset for ``participant``. Returns the new position."""
        self._run("stake", compute_stake, participant, amount)
        return self.position(participant)

    def unstake(self, participant: str, caller: Optional[str] = None) -> Decimal:
        """
        Return the locked staking asset to ``participant``.

        Returns:
            The amount returned.
        """
        record = self._run("unstake", compute_unstake, participant, caller)
        return _transferred(record)

    def deposit_inventory(self, caller: str, amount) -> SaleInventory:
        """Owner deposits sale asset for the sale. Returns the new inventory."""
        self._run("deposit_inventory", compute_deposit_inventory, caller, amount)
        return self.inventory()

    def participate(self, participant: str, purchase_amount) -> Decimal:
        """
        Spend ``purchase_amount`` of the purchase asset on the sale.

        Returns:
            The sale-asset amount bought.
        """
        record = self._run("participate", compute_participation, participant, purchase_amount)
        change = record.position_changes[0]
        return change.new.purchased_amount - change.old.purchased_amount

    def release_vested_tokens(self, beneficiary: str, caller: Optional[str] = None) -> Decimal:
        """
        Pay ``beneficiary`` whatever has vested but not been released.

        Returns:
            The amount paid out (zero when nothing is due).
        """
        record = self._run("release_vested_tokens", vesting.compute_release, beneficiary, caller)
        return _transferred(record)

    def withdraw_proceeds(self, caller: str) -> Decimal:
        """Owner collects the raised purchase asset. Returns the amount paid."""
        record = self._run("withdraw_proceeds", compute_proceeds_withdrawal, caller)
        return _transferred(record)

    def withdraw_unsold_inventory(self, caller: str) -> Decimal:
        """Owner reclaims the sale asset that was never sold. Returns the amount paid."""
        record = self._run("withdraw_unsold_inventory", compute_unsold_withdrawal, caller)
        return _transferred(record)

    def __repr__(self) -> str:
        inv = self._committed.inventory
        return (
            f"Launchpad({self._config.name} @ {self._current_time.isoformat()}: "
            f"{len(self._committed)} positions, deposited={inv.deposited}, sold={inv.sold})"
        )


def _transferred(record: Optional[OperationRecord]) -> Decimal:
    if record is None or not record.transfers:
        return ZERO
    return record.transfers[0].amount
