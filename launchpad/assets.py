"""
assets.py - In-Memory Fungible Asset Ledger

AssetLedger is a reference implementation of the AssetPort protocol: a
multi-asset token ledger with balances, approvals and an append-only
transfer log. The launchpad treats it as an external collaborator; any
object implementing AssetPort can take its place.

Key responsibilities:
    - Register assets and accounts
    - Issue supply from the SYSTEM_ACCOUNT (mint)
    - Approve / transfer_from / transfer with standard token semantics:
      insufficient balance or allowance fails with no side effects
    - Record every applied transfer for audit and conservation checks
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .core import (
    SYSTEM_ACCOUNT, UNLIMITED_ALLOWANCE, ZERO,
    LaunchpadError, InvalidAmount, InsufficientBalance, InsufficientAllowance,
    AssetNotRegistered, AccountNotRegistered,
    to_amount,
)


@dataclass(frozen=True, slots=True)
class TransferRecord:
    """
    An applied asset movement.

    Attributes:
        sequence_number: Monotonic sequence within the asset ledger
        asset: Asset identifier
        source: Debited account
        dest: Credited account
        amount: Positive amount moved
        spender: Account that consumed an approval (transfer_from only)
    """
    sequence_number: int
    asset: str
    source: str
    dest: str
    amount: Decimal
    spender: Optional[str] = None

    def __repr__(self) -> str:
        via = f" via {self.spender}" if self.spender else ""
        return f"TransferRecord(#{self.sequence_number} {self.amount} {self.asset}: {self.source}→{self.dest}{via})"


# Called after every applied transfer with the record. Models token
# callbacks on the receiving side; an exception reverts the transfer.
TransferHook = Callable[['AssetLedger', TransferRecord], None]


class AssetLedger:
    """
    Multi-asset fungible token ledger implementing AssetPort.

    Thread Safety:
        Not thread-safe on its own. The Launchpad serialises every call it
        makes; callers sharing an AssetLedger across threads must do the same.

    Example:
        assets = AssetLedger("chain")
        assets.register_asset("STK")
        assets.register_account("alice")
        assets.mint("STK", "alice", Decimal("100000"))
        assets.approve("STK", "alice", "launchpad:main", UNLIMITED_ALLOWANCE)
    """

    def __init__(self, name: str, verbose: bool = True, test_mode: bool = False):
        """
        Create an asset ledger.

        Args:
            name: Ledger identifier
            verbose: Print registrations and rejected transfers (default: True)
            test_mode: Allow set_balance() calls (default: False)
        """
        self.name = name
        self.verbose = verbose
        self._test_mode = test_mode
        self.assets: Set[str] = set()
        self.registered_accounts: Set[str] = {SYSTEM_ACCOUNT}
        self.balances: Dict[str, Dict[str, Decimal]] = {
            SYSTEM_ACCOUNT: defaultdict(lambda: ZERO)
        }
        # (asset, owner, spender) -> remaining approval
        self.allowances: Dict[Tuple[str, str, str], Decimal] = {}
        self.transfer_log: List[TransferRecord] = []
        self._next_sequence: int = 0
        self._hooks: List[TransferHook] = []

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_asset(self, asset: str) -> str:
        """
        Register a new asset.

        Raises:
            ValueError: If the asset is already registered or the id is empty
        """
        if not asset or not asset.strip():
            raise ValueError("asset cannot be empty")
        if asset in self.assets:
            raise ValueError(f"Asset {asset} already registered")
        self.assets.add(asset)
        if self.verbose:
            print(f"📝 Registered asset: {asset}")
        return asset

    def register_account(self, account: str) -> str:
        """
        Register a new account.

        Raises:
            ValueError: If the account is already registered or the id is empty
        """
        if not account or not account.strip():
            raise ValueError("account cannot be empty")
        if account in self.registered_accounts:
            raise ValueError(f"Account {account} already registered")
        self.registered_accounts.add(account)
        self.balances[account] = defaultdict(lambda: ZERO)
        return account

    def ensure_account(self, account: str) -> str:
        """Register ``account`` unless it already exists."""
        if account not in self.registered_accounts:
            self.register_account(account)
        return account

    def add_hook(self, hook: TransferHook) -> None:
        """Call ``hook`` after every applied transfer."""
        self._hooks.append(hook)

    # ========================================================================
    # QUERIES
    # ========================================================================

    def _check_asset(self, asset: str) -> None:
        if asset not in self.assets:
            raise AssetNotRegistered(f"Asset {asset} not registered")

    def _check_account(self, account: str) -> None:
        if account not in self.registered_accounts:
            raise AccountNotRegistered(f"Account {account} not registered")

    def balance_of(self, asset: str, account: str) -> Decimal:
        """
        Return the balance of ``account``.

        Raises:
            AssetNotRegistered / AccountNotRegistered
        """
        self._check_asset(asset)
        self._check_account(account)
        return self.balances[account].get(asset, ZERO)

    def allowance(self, asset: str, owner: str, spender: str) -> Decimal:
        self._check_asset(asset)
        return self.allowances.get((asset, owner, spender), ZERO)

    def total_supply(self, asset: str) -> Decimal:
        """
        Total amount of ``asset`` held by non-system accounts.

        Accounts are sorted before summation to ensure deterministic
        accumulation order.
        """
        self._check_asset(asset)
        return sum(
            (self.balances[a].get(asset, ZERO) for a in sorted(self.registered_accounts) if a != SYSTEM_ACCOUNT),
            ZERO,
        )

    def verify_conservation(self) -> Dict[str, Any]:
        """
        Verify that every asset's balances net to zero including the system account.

        Issuance debits SYSTEM_ACCOUNT, so for each asset the sum over all
        accounts (system included) must be exactly zero.

        Returns:
            Dict with 'valid' (bool), 'supplies' (asset -> circulating supply)
            and 'discrepancies' (list of asset/net pairs).
        """
        supplies = {}
        discrepancies = []
        for asset in sorted(self.assets):
            net = sum(
                (self.balances[a].get(asset, ZERO) for a in sorted(self.registered_accounts)),
                ZERO,
            )
            supplies[asset] = self.total_supply(asset)
            if net != 0:
                discrepancies.append({'asset': asset, 'net': net})
        return {
            'valid': not discrepancies,
            'supplies': supplies,
            'discrepancies': discrepancies,
        }

    def list_accounts(self) -> Set[str]:
        return self.registered_accounts.copy()

    # ========================================================================
    # TRANSFERS (Mutating)
    # ========================================================================

    def _validated_amount(self, amount) -> Decimal:
        amount = to_amount(amount)
        if amount <= 0:
            raise InvalidAmount(f"transfer amount must be positive, got {amount}")
        return amount

    def _move(self, asset: str, source: str, dest: str, amount: Decimal, spender: Optional[str]) -> TransferRecord:
        """Apply a validated movement and log it. The only place balances change."""
        if source != SYSTEM_ACCOUNT:
            available = self.balances[source].get(asset, ZERO)
            if available < amount:
                if self.verbose:
                    print(f"✗ REJECTED: {source} {asset}: {available} < {amount}")
                raise InsufficientBalance(
                    f"{source} holds {available} {asset}, needs {amount}"
                )
        self.balances[source][asset] = self.balances[source][asset] - amount
        self.balances[dest][asset] = self.balances[dest][asset] + amount
        record = TransferRecord(self._next_sequence, asset, source, dest, amount, spender)
        self._next_sequence += 1
        self.transfer_log.append(record)
        try:
            for hook in self._hooks:
                hook(self, record)
        except BaseException:
            # A failing hook reverts this transfer only. Transfers the hook
            # made itself stay applied and logged; sequence numbers are not reused.
            self.transfer_log.remove(record)
            self.balances[dest][asset] = self.balances[dest][asset] - amount
            self.balances[source][asset] = self.balances[source][asset] + amount
            raise
        return record

    def approve(self, asset: str, owner: str, spender: str, amount) -> None:
        """
        Set the approval of ``owner`` for ``spender``.

        UNLIMITED_ALLOWANCE (Decimal("Infinity")) is never consumed.
        """
        self._check_asset(asset)
        self._check_account(owner)
        if amount != UNLIMITED_ALLOWANCE:
            amount = to_amount(amount)
        self.allowances[(asset, owner, spender)] = amount

    def transfer(self, asset: str, sender: str, to: str, amount) -> None:
        """
        Move ``amount`` from ``sender`` to ``to``.

        Raises:
            AssetNotRegistered, AccountNotRegistered, InsufficientBalance
        """
        self._check_asset(asset)
        self._check_account(sender)
        self._check_account(to)
        amount = self._validated_amount(amount)
        if sender == to:
            raise ValueError("sender and recipient must be different")
        self._move(asset, sender, to, amount, None)

    def transfer_from(self, asset: str, owner: str, spender: str, amount) -> None:
        """
        Move ``amount`` from ``owner`` to ``spender`` under a prior approval.

        Both checks (allowance, balance) pass before anything changes.

        Raises:
            AssetNotRegistered, AccountNotRegistered, InsufficientAllowance,
            InsufficientBalance
        """
        self._check_asset(asset)
        self._check_account(owner)
        self._check_account(spender)
        amount = self._validated_amount(amount)
        if owner == spender:
            raise ValueError("owner and spender must be different")

        approved = self.allowances.get((asset, owner, spender), ZERO)
        if approved < amount:
            if self.verbose:
                print(f"✗ REJECTED: {owner} approved {approved} {asset} for {spender}, needs {amount}")
            raise InsufficientAllowance(
                f"{owner} approved {approved} {asset} for {spender}, needs {amount}"
            )
        # Balance is checked inside _move before any mutation, and the
        # allowance is only consumed once the move has succeeded.
        self._move(asset, owner, spender, amount, spender)
        if approved != UNLIMITED_ALLOWANCE:
            self.allowances[(asset, owner, spender)] = approved - amount

    def mint(self, asset: str, to: str, amount) -> None:
        """Issue new supply of ``asset`` to ``to`` from the system account."""
        self._check_asset(asset)
        self._check_account(to)
        self._move(asset, SYSTEM_ACCOUNT, to, self._validated_amount(amount), None)

    def set_balance(self, account: str, asset: str, amount) -> None:
        """
        Set an account's balance directly.

        WARNING: This bypasses conservation and is only available in test
        mode. Use mint() and transfer() otherwise.

        Raises:
            LaunchpadError: If called when test_mode is False
        """
        if not self._test_mode:
            raise LaunchpadError(
                "set_balance() is disabled in production mode. "
                "Use mint() and transfer() to modify balances. "
                "Set test_mode=True when creating AssetLedger for testing."
            )
        self._check_asset(asset)
        self._check_account(account)
        self.balances[account][asset] = to_amount(amount)

    # ========================================================================
    # CLONING
    # ========================================================================

    def clone(self) -> AssetLedger:
        """
        Create an independent copy of this ledger.

        Hooks are not copied.
        """
        cloned = AssetLedger.__new__(AssetLedger)
        cloned.name = self.name
        cloned.verbose = self.verbose
        cloned._test_mode = self._test_mode
        cloned.assets = set(self.assets)
        cloned.registered_accounts = self.registered_accounts.copy()
        cloned.balances = {
            account: defaultdict(lambda: ZERO, bals)
            for account, bals in self.balances.items()
        }
        cloned.allowances = dict(self.allowances)
        cloned.transfer_log = list(self.transfer_log)
        cloned._next_sequence = self._next_sequence
        cloned._hooks = []
        return cloned

    def __repr__(self) -> str:
        return (
            f"AssetLedger({self.name}: {len(self.assets)} assets, "
            f"{len(self.registered_accounts)} accounts, {len(self.transfer_log)} transfers)"
        )
