"""
Core types and pure functions for the launchpad ledger.

This module provides the foundational data structures and protocols:
1. Protocols: LaunchpadView for read-only engine access, AssetPort for the
   external fungible-asset ledger
2. Immutable data structures: Position, SaleInventory, PositionChange,
   InventoryChange, AssetTransfer, PendingOperation, OperationRecord
3. Exceptions: LaunchpadError and domain-specific error types
4. Fixed-point helpers: to_amount, quantize_amount, checked arithmetic

All functions in this module are pure and operate on read-only views.
No function can mutate engine state directly.
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from datetime import datetime
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_EVEN, getcontext
from enum import Enum
from typing import Dict, List, Optional, Protocol, Set, Tuple, runtime_checkable


# ============================================================================
# DECIMAL CONTEXT CONFIGURATION
# ============================================================================
#
# Amounts are 18-decimal fixed-point values bounded by an unsigned 256-bit
# integer, i.e. up to 78 integer digits plus 18 fractional digits.
# The global context must carry enough precision to hold any such value
# exactly, and to form the exact product of two of them before rounding.
#
# PRECONDITION: No other code should modify the global Decimal context.
#
_LAUNCHPAD_DECIMAL_CONTEXT = getcontext()
_LAUNCHPAD_DECIMAL_CONTEXT.prec = 200
_LAUNCHPAD_DECIMAL_CONTEXT.rounding = ROUND_HALF_EVEN


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved account for issuance on the asset ledger.
# The system account is exempt from balance validation.
SYSTEM_ACCOUNT = "system"

# Number of fractional digits carried by every amount.
AMOUNT_DECIMALS = 18

AMOUNT_QUANTUM = Decimal(10) ** -AMOUNT_DECIMALS

ZERO = Decimal("0")

# Largest amount representable as a uint256 with 18 decimals.
MAX_AMOUNT = Decimal(2 ** 256 - 1).scaleb(-AMOUNT_DECIMALS)

# Allowance value that is never consumed by transfer_from.
UNLIMITED_ALLOWANCE = Decimal("Infinity")


# ============================================================================
# ENUMS
# ============================================================================

class TransferKind(Enum):
    """
    Direction of an asset transfer relative to the launchpad account.

    PULL: transfer_from(owner=account, spender=launchpad) - asset enters custody.
    PUSH: transfer(sender=launchpad, to=account) - asset leaves custody.
    """
    PULL = "pull"
    PUSH = "push"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LaunchpadError(Exception):
    """Base exception for all launchpad errors."""
    pass


class ConfigurationError(LaunchpadError, ValueError):
    """
    Raised once, at construction, when the configuration violates an ordering
    or range invariant.

    The ``variant`` attribute names the violated rule, e.g. "staking-window-order".
    """

    def __init__(self, variant: str, message: str):
        super().__init__(f"[{variant}] {message}")
        self.variant = variant


class PhaseError(LaunchpadError):
    """Raised when an operation is invoked outside its required time window."""

    def __init__(self, operation: str, required: str, actual: 'Phase'):
        super().__init__(
            f"{operation} requires {required}, current phase is {actual.value}"
        )
        self.operation = operation
        self.required = required
        self.actual = actual


class InvalidAmount(LaunchpadError, ValueError):
    """Raised when an amount argument is zero, negative or not representable."""
    pass


class VolumeOutOfRange(LaunchpadError):
    """Raised when a stake would push cumulative locked volume outside the configured range."""
    pass


class AlreadyUnstaked(LaunchpadError):
    """Raised when a participant's stake has already been withdrawn."""
    pass


class StakeStillLocked(LaunchpadError):
    """Raised when a participant tries to buy before withdrawing the stake."""
    pass


class NoPosition(LaunchpadError, KeyError):
    """Raised when an operation targets a participant that never staked."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class AllocationExceeded(LaunchpadError):
    """Raised when a purchase would exceed the participant's tier-derived cap."""
    pass


class SoldOut(LaunchpadError):
    """Raised when a purchase would exceed the deposited-but-unsold inventory."""
    pass


class NotOwner(LaunchpadError, PermissionError):
    """Raised when a privileged operation is invoked by someone other than the owner."""
    pass


class AlreadyWithdrawn(LaunchpadError):
    """Raised when a one-shot owner withdrawal is attempted twice."""
    pass


class StaleState(LaunchpadError):
    """Raised when a pending operation was built against state that has since changed."""
    pass


class ReentrancyError(LaunchpadError):
    """Raised when execute() is re-entered while an operation is in flight."""
    pass


class ArithmeticOverflow(LaunchpadError, ArithmeticError):
    """Raised when fixed-point arithmetic leaves the range [0, MAX_AMOUNT]."""
    pass


class AssetTransferFailure(LaunchpadError):
    """Raised when the external asset ledger rejects a pull or push."""
    pass


class InsufficientBalance(AssetTransferFailure):
    """Raised when the paying account does not hold enough of the asset."""
    pass


class InsufficientAllowance(AssetTransferFailure):
    """Raised when transfer_from exceeds the owner's approval for the spender."""
    pass


class AssetNotRegistered(AssetTransferFailure):
    """Raised when operating on an asset the ledger does not know."""
    pass


class AccountNotRegistered(AssetTransferFailure):
    """Raised when operating on an account the ledger does not know."""
    pass


# ============================================================================
# FIXED-POINT HELPERS
# ============================================================================

def quantize_amount(value: Decimal) -> Decimal:
    """Round a value down to AMOUNT_DECIMALS places (integer-division semantics)."""
    return value.quantize(AMOUNT_QUANTUM, rounding=ROUND_DOWN)


def to_amount(value, name: str = "amount") -> Decimal:
    """
    Convert an int, str or Decimal to a validated fixed-point amount.

    Floats are converted through their string form, as elsewhere in the ledger.

    Raises:
        InvalidAmount: If the value is not finite, negative, above MAX_AMOUNT,
                       or carries more than AMOUNT_DECIMALS fractional digits.
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"{name} must be numeric, got {value!r}")
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except ArithmeticError:
            raise InvalidAmount(f"{name} must be numeric, got {value!r}") from None
    if not value.is_finite():
        raise InvalidAmount(f"{name} must be finite, got {value}")
    if value < 0:
        raise InvalidAmount(f"{name} must be non-negative, got {value}")
    if value > MAX_AMOUNT:
        raise InvalidAmount(f"{name} exceeds maximum representable amount")
    if quantize_amount(value) != value:
        raise InvalidAmount(f"{name} has more than {AMOUNT_DECIMALS} decimal places: {value}")
    return value


def checked_add(a: Decimal, b: Decimal) -> Decimal:
    result = a + b
    if result > MAX_AMOUNT or result < 0:
        raise ArithmeticOverflow(f"{a} + {b} overflows")
    return result


def checked_sub(a: Decimal, b: Decimal) -> Decimal:
    result = a - b
    if result < 0:
        raise ArithmeticOverflow(f"{a} - {b} underflows")
    return result


def checked_mul(a: Decimal, b: Decimal) -> Decimal:
    """Multiply two fixed-point values, rounding the product down to AMOUNT_DECIMALS."""
    result = quantize_amount(a * b)
    if result > MAX_AMOUNT or result < 0:
        raise ArithmeticOverflow(f"{a} * {b} overflows")
    return result


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Position:
    """
    Per-participant record.

    Attributes:
        locked_volume: Cumulative staking-asset amount locked.
        purchased_amount: Sale-asset units bought.
        released_amount: Sale-asset units already paid out under vesting.
        unlocked: True once the stake has been withdrawn (never reverts).
    """
    locked_volume: Decimal = ZERO
    purchased_amount: Decimal = ZERO
    released_amount: Decimal = ZERO
    unlocked: bool = False

    def __post_init__(self):
        for name in ("locked_volume", "purchased_amount", "released_amount"):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                raise ValueError(f"Position {name} must be Decimal, got {type(value)}")
            if value < 0:
                raise ValueError(f"Position {name} cannot be negative, got {value}")
        if self.released_amount > self.purchased_amount:
            raise ValueError(
                f"released_amount {self.released_amount} exceeds "
                f"purchased_amount {self.purchased_amount}"
            )


@dataclass(frozen=True, slots=True)
class SaleInventory:
    """
    Process-wide sale-asset inventory.

    Attributes:
        deposited: Sale asset deposited by the owner as backing inventory.
        sold: Sale asset allocated to buyers.
        raised: Purchase asset collected from buyers.
        proceeds_withdrawn: Purchase asset already paid out to the owner.
        unsold_withdrawn: True once the owner reclaimed unsold inventory.
    """
    deposited: Decimal = ZERO
    sold: Decimal = ZERO
    raised: Decimal = ZERO
    proceeds_withdrawn: Decimal = ZERO
    unsold_withdrawn: bool = False

    def __post_init__(self):
        if self.sold > self.deposited:
            raise ValueError(f"sold {self.sold} exceeds deposited {self.deposited}")
        if self.proceeds_withdrawn > self.raised:
            raise ValueError(
                f"proceeds_withdrawn {self.proceeds_withdrawn} exceeds raised {self.raised}"
            )

    @property
    def available(self) -> Decimal:
        """Deposited-but-unsold inventory."""
        return self.deposited - self.sold


@dataclass(frozen=True, slots=True)
class PositionChange:
    """
    Before/after snapshot of a single participant's position.

    ``old`` is None when the position is created by this change.
    """
    participant: str
    old: Optional[Position]
    new: Position

    def changed_fields(self) -> Dict[str, Tuple[object, object]]:
        old = self.old or Position()
        changes = {}
        for name in (f.name for f in fields(Position)):
            before, after = getattr(old, name), getattr(self.new, name)
            if before != after:
                changes[name] = (before, after)
        return changes


@dataclass(frozen=True, slots=True)
class InventoryChange:
    """Before/after snapshot of the sale inventory."""
    old: SaleInventory
    new: SaleInventory


@dataclass(frozen=True, slots=True)
class AssetTransfer:
    """
    A single value movement through the AssetPort.

    Attributes:
        kind: PULL into launchpad custody, or PUSH out of it.
        asset: Asset identifier on the external ledger.
        account: Counterparty account (payer for PULL, payee for PUSH).
        amount: Positive fixed-point amount.
    """
    kind: TransferKind
    asset: str
    account: str
    amount: Decimal

    def __post_init__(self):
        if not self.asset or not self.asset.strip():
            raise ValueError("AssetTransfer asset cannot be empty")
        if not self.account or not self.account.strip():
            raise ValueError("AssetTransfer account cannot be empty")
        if not isinstance(self.amount, Decimal):
            raise ValueError(f"AssetTransfer amount must be Decimal, got {type(self.amount)}")
        if not self.amount.is_finite() or self.amount <= 0:
            raise ValueError(f"AssetTransfer amount must be positive, got {self.amount}")

    def __repr__(self) -> str:
        arrow = "→ launchpad" if self.kind is TransferKind.PULL else "launchpad →"
        if self.kind is TransferKind.PULL:
            return f"AssetTransfer({self.amount} {self.asset}: {self.account} {arrow})"
        return f"AssetTransfer({self.amount} {self.asset}: {arrow} {self.account})"


@dataclass(frozen=True, slots=True)
class PendingOperation:
    """
    An operation description before execution - represents INTENT.

    Created by the pure compute_* functions and submitted to
    Launchpad.execute(). Holds every state change the operation makes and
    the single asset transfer that must succeed for it to commit.

    Attributes:
        operation: Entry-point name (e.g. "stake", "participate").
        actor: Identity that initiated the call.
        timestamp: Logical time the operation was built at.
        position_changes: Per-participant before/after snapshots.
        inventory_change: Sale inventory before/after, if touched.
        transfers: At most one AssetTransfer.
    """
    operation: str
    actor: str
    timestamp: datetime
    position_changes: Tuple[PositionChange, ...] = ()
    inventory_change: Optional[InventoryChange] = None
    transfers: Tuple[AssetTransfer, ...] = ()

    def __post_init__(self):
        if not self.operation:
            raise ValueError("PendingOperation operation cannot be empty")
        if len(self.transfers) > 1:
            raise ValueError("PendingOperation carries at most one asset transfer")
        participants = [pc.participant for pc in self.position_changes]
        if len(participants) != len(set(participants)):
            raise ValueError("PendingOperation has duplicate participant changes")

    def is_empty(self) -> bool:
        """Return True if this operation changes nothing and moves nothing."""
        return not self.position_changes and self.inventory_change is None and not self.transfers

    def __repr__(self) -> str:
        return (
            f"PendingOperation({self.operation} by {self.actor}, "
            f"{len(self.position_changes)} position changes, "
            f"{len(self.transfers)} transfers)"
        )


def build_operation(
    view: 'LaunchpadView',
    operation: str,
    actor: str,
    position_changes: Optional[List[PositionChange]] = None,
    inventory_change: Optional[InventoryChange] = None,
    transfers: Optional[List[AssetTransfer]] = None,
) -> PendingOperation:
    """
    Build a PendingOperation stamped with the view's current time.

    This is the standard way for compute_* functions to return their result.
    """
    return PendingOperation(
        operation=operation,
        actor=actor,
        timestamp=view.current_time,
        position_changes=tuple(position_changes or ()),
        inventory_change=inventory_change,
        transfers=tuple(transfers or ()),
    )


def empty_operation(view: 'LaunchpadView', operation: str, actor: str) -> PendingOperation:
    """Create a PendingOperation that does nothing (e.g. nothing vested yet)."""
    return PendingOperation(operation=operation, actor=actor, timestamp=view.current_time)


@dataclass(frozen=True, slots=True)
class OperationRecord:
    """
    An executed, immutable record of an applied operation - represents FACT.

    Attributes:
        exec_id: Unique execution identifier (launchpad + sequence + time)
        sequence_number: Monotonic sequence within the launchpad
        execution_time: Logical time the operation committed at
        operation: Entry-point name
        actor: Identity that initiated the call
        position_changes / inventory_change / transfers: as in PendingOperation
    """
    exec_id: str
    sequence_number: int
    execution_time: datetime
    operation: str
    actor: str
    position_changes: Tuple[PositionChange, ...]
    inventory_change: Optional[InventoryChange]
    transfers: Tuple[AssetTransfer, ...]

    def __repr__(self) -> str:
        lines = [f"OperationRecord {self.exec_id}: {self.operation} by {self.actor}"]
        for pc in self.position_changes:
            for name, (before, after) in pc.changed_fields().items():
                lines.append(f"   [{pc.participant}] {name}: {before!r} → {after!r}")
        if self.inventory_change is not None:
            old, new = self.inventory_change.old, self.inventory_change.new
            for name in (f.name for f in fields(SaleInventory)):
                if getattr(old, name) != getattr(new, name):
                    lines.append(
                        f"   [inventory] {name}: {getattr(old, name)!r} → {getattr(new, name)!r}"
                    )
        for t in self.transfers:
            lines.append(f"   {t!r}")
        return "\n".join(lines)


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class AssetPort(Protocol):
    """
    Interface to an external fungible-asset ledger.

    Standard token semantics: insufficient balance or allowance makes a
    transfer fail with an AssetTransferFailure and no side effects.
    """

    def approve(self, asset: str, owner: str, spender: str, amount: Decimal) -> None:
        """Set the amount ``spender`` may pull from ``owner``."""
        ...

    def allowance(self, asset: str, owner: str, spender: str) -> Decimal:
        """Return the remaining approval of ``owner`` for ``spender``."""
        ...

    def transfer_from(self, asset: str, owner: str, spender: str, amount: Decimal) -> None:
        """Move ``amount`` from ``owner`` to ``spender``, consuming the approval."""
        ...

    def transfer(self, asset: str, sender: str, to: str, amount: Decimal) -> None:
        """Move ``amount`` from ``sender`` to ``to``."""
        ...

    def balance_of(self, asset: str, account: str) -> Decimal:
        """Return the balance of ``account``."""
        ...


@runtime_checkable
class LaunchpadView(Protocol):
    """
    Read-only interface to launchpad state.

    The compute_* functions accept a LaunchpadView to declare their read-only
    intent. The Launchpad class implements this protocol; for testing,
    FakeView provides a standalone implementation.
    """

    @property
    def config(self) -> 'LaunchpadConfig':
        """Return the immutable configuration."""
        ...

    @property
    def current_time(self) -> datetime:
        """Return the current logical time."""
        ...

    @property
    def owner(self) -> str:
        """Return the identity allowed to run privileged operations."""
        ...

    @property
    def account(self) -> str:
        """Return the launchpad's own account on the asset ledger."""
        ...

    def get_position(self, participant: str) -> Optional[Position]:
        """Return the participant's position, or None if they never staked."""
        ...

    def get_inventory(self) -> SaleInventory:
        """Return the current sale inventory."""
        ...

    def list_participants(self) -> Set[str]:
        """Return every participant that holds a position."""
        ...
