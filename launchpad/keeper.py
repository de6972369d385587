"""
keeper.py - Release Keeper

A permissionless relayer that walks the logical clock forward and releases
vested sale asset for every participant with something due.

Execution order each step():
1. Advance launchpad time
2. For each participant (sorted), release whatever has vested

Payouts always go to the beneficiary; the keeper only pays for the call.
The operation log is the audit trail.
"""

from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List

from .core import OperationRecord, ZERO
from .launchpad import Launchpad
from .vesting import amount_due


class ReleaseKeeper:
    """
    Drives release_vested_tokens for all participants over time.

    Example:
        keeper = ReleaseKeeper(launchpad)
        keeper.run([config.vesting_start, config.vesting_end])
        keeper.total_released()
    """

    def __init__(self, launchpad: Launchpad, identity: str = "keeper"):
        self.launchpad = launchpad
        self.identity = identity
        self.verbose = launchpad.verbose
        self.released: Dict[str, Decimal] = {}

    def step(self, timestamp: datetime) -> List[OperationRecord]:
        """
        Advance time and release for every participant with something due.

        Returns:
            Operation records of the releases applied in this step.
        """
        launchpad = self.launchpad
        launchpad.advance_time(timestamp)
        executed: List[OperationRecord] = []

        for participant in sorted(launchpad.list_participants()):
            position = launchpad.get_position(participant)
            if amount_due(launchpad.config, position, timestamp) <= 0:
                continue
            paid = launchpad.release_vested_tokens(participant, caller=self.identity)
            if paid > 0:
                self.released[participant] = self.released.get(participant, ZERO) + paid
                executed.append(launchpad.operation_log[-1])

        if self.verbose and executed:
            print(f"[KEEPER] {timestamp.isoformat()}: {len(executed)} releases")
        return executed

    def run(self, timestamps: Iterable[datetime]) -> List[OperationRecord]:
        """Call step() for each timestamp in order."""
        executed: List[OperationRecord] = []
        for timestamp in timestamps:
            executed.extend(self.step(timestamp))
        return executed

    def total_released(self) -> Decimal:
        return sum(self.released.values(), ZERO)
