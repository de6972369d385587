"""
store.py - Position Store

Immutable snapshot of every participant's Position together with the
SaleInventory. The Launchpad holds exactly one committed store; an
operation stages a new store with apply() and the engine swaps the
reference on commit, so readers always see a whole snapshot.
"""

from __future__ import annotations
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Set

from .core import (
    Position, SaleInventory, PositionChange, InventoryChange,
    StaleState,
)


class PositionStore:
    """
    Copy-on-write store of positions and the sale inventory.

    Instances are never mutated after construction; apply() returns a new
    store. Lookups of unknown participants return None (get) or an empty
    Position (get_or_empty).
    """

    __slots__ = ("_positions", "_inventory")

    def __init__(
        self,
        positions: Optional[Mapping[str, Position]] = None,
        inventory: Optional[SaleInventory] = None,
    ):
        self._positions: Mapping[str, Position] = MappingProxyType(dict(positions or {}))
        self._inventory: SaleInventory = inventory or SaleInventory()

    @property
    def inventory(self) -> SaleInventory:
        return self._inventory

    @property
    def positions(self) -> Mapping[str, Position]:
        """Read-only mapping of participant -> Position."""
        return self._positions

    def get(self, participant: str) -> Optional[Position]:
        return self._positions.get(participant)

    def get_or_empty(self, participant: str) -> Position:
        return self._positions.get(participant) or Position()

    def participants(self) -> Set[str]:
        return set(self._positions)

    def __contains__(self, participant: str) -> bool:
        return participant in self._positions

    def __len__(self) -> int:
        return len(self._positions)

    def apply(
        self,
        changes: Iterable[PositionChange] = (),
        inventory_change: Optional[InventoryChange] = None,
    ) -> PositionStore:
        """
        Return a new store with the changes applied.

        Every change must have been built against this store: its ``old``
        snapshot has to equal the stored value (None for a new participant).

        Raises:
            StaleState: If any old snapshot does not match.
        """
        positions: Dict[str, Position] = dict(self._positions)
        for change in changes:
            current = positions.get(change.participant)
            if current != change.old:
                raise StaleState(
                    f"position of {change.participant} changed: "
                    f"expected {change.old!r}, found {current!r}"
                )
            positions[change.participant] = change.new

        inventory = self._inventory
        if inventory_change is not None:
            if inventory_change.old != inventory:
                raise StaleState(
                    f"inventory changed: expected {inventory_change.old!r}, found {inventory!r}"
                )
            inventory = inventory_change.new

        return PositionStore(positions, inventory)

    def __repr__(self) -> str:
        return (
            f"PositionStore({len(self._positions)} positions, "
            f"deposited={self._inventory.deposited}, sold={self._inventory.sold})"
        )
