"""
config.py - Immutable Launchpad Configuration

LaunchpadConfig is set once at construction and never changes afterwards.
Every ordering and range invariant is checked in __post_init__; a violation
raises ConfigurationError naming the rule, and no object is produced.

Schedule (half-open windows):

    staking_window.start < staking_window.end
        <= sale_window.start < sale_window.end
        <= vesting_start

Example:
    t = datetime(2025, 1, 1)
    config = LaunchpadConfig.from_offsets(
        t,
        name="Standard Launchpad",
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
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Tuple

from .core import ConfigurationError, InvalidAmount, to_amount


Window = Tuple[datetime, datetime]
VolumeRange = Tuple[Decimal, Decimal]


def _as_decimal(value, name: str) -> Decimal:
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except ArithmeticError:
            raise ConfigurationError("invalid-amount", f"{name} must be numeric, got {value!r}") from None
    if not value.is_finite():
        raise ConfigurationError("invalid-amount", f"{name} must be finite, got {value}")
    return value


def _check_amount(value: Decimal, name: str) -> None:
    try:
        to_amount(value, name)
    except InvalidAmount as e:
        raise ConfigurationError("invalid-amount", str(e)) from None


@dataclass(frozen=True, slots=True)
class LaunchpadConfig:
    """
    Configuration for a single launchpad instance.

    Attributes:
        name: Launchpad identifier (also names its custody account).
        staking_asset: Asset locked during the staking window.
        sale_asset: Asset sold and later vested.
        purchase_asset: Asset paid by buyers.
        staking_window: (start, end) of the staking epoch.
        staking_volume_range: Inclusive (min, max) cumulative stake per participant.
        staking_tiers: Ascending locked-volume thresholds.
        sale_window: (start, end) of the sale epoch.
        sale_price: Purchase-asset units per sale-asset unit.
        sale_ratio_tiers: Purchase-cap multipliers, index-aligned with staking_tiers.
        vesting_start: Time the cliff becomes releasable.
        vesting_period: Duration of the linear unlock after the cliff.
        vesting_initial_ratio: Fraction released at vesting_start, in [0, 1].
    """
    name: str
    staking_asset: str
    sale_asset: str
    purchase_asset: str
    staking_window: Window
    staking_volume_range: VolumeRange
    staking_tiers: Tuple[Decimal, ...]
    sale_window: Window
    sale_price: Decimal
    sale_ratio_tiers: Tuple[Decimal, ...]
    vesting_start: datetime
    vesting_period: timedelta
    vesting_initial_ratio: Decimal

    def __post_init__(self):
        # Normalise numeric inputs so callers may pass ints or strings.
        object.__setattr__(self, 'staking_window', tuple(self.staking_window))
        object.__setattr__(self, 'sale_window', tuple(self.sale_window))
        object.__setattr__(self, 'staking_volume_range', tuple(
            _as_decimal(v, "staking_volume_range") for v in self.staking_volume_range
        ))
        object.__setattr__(self, 'staking_tiers', tuple(
            _as_decimal(v, "staking_tiers") for v in self.staking_tiers
        ))
        object.__setattr__(self, 'sale_ratio_tiers', tuple(
            _as_decimal(v, "sale_ratio_tiers") for v in self.sale_ratio_tiers
        ))
        object.__setattr__(self, 'sale_price', _as_decimal(self.sale_price, "sale_price"))
        object.__setattr__(
            self, 'vesting_initial_ratio',
            _as_decimal(self.vesting_initial_ratio, "vesting_initial_ratio"),
        )

        if len(self.staking_window) != 2 or len(self.sale_window) != 2:
            raise ConfigurationError("window-shape", "windows must be (start, end) pairs")
        if len(self.staking_volume_range) != 2:
            raise ConfigurationError("volume-shape", "staking_volume_range must be (min, max)")

        staking_start, staking_end = self.staking_window
        sale_start, sale_end = self.sale_window
        volume_min, volume_max = self.staking_volume_range

        if not staking_start < staking_end:
            raise ConfigurationError(
                "staking-window-order",
                "Staking start time must be earlier than end time",
            )
        if not sale_start < sale_end:
            raise ConfigurationError(
                "sale-window-order",
                "Sale start time must be earlier than end time",
            )
        if not staking_end <= sale_start:
            raise ConfigurationError(
                "staking-before-sale",
                "Staking end time must be earlier than sale start time",
            )
        if not sale_end <= self.vesting_start:
            raise ConfigurationError(
                "sale-before-vesting",
                "Vesting start time must be later than sale end time",
            )
        if not volume_min < volume_max:
            raise ConfigurationError(
                "staking-volume-order",
                "Staking volume max must be greater than min",
            )
        if not self.sale_price > 0:
            raise ConfigurationError(
                "non-positive-price",
                "Sale price must be greater than zero",
            )

        # Tier tables
        if any(b <= a for a, b in zip(self.staking_tiers, self.staking_tiers[1:])):
            raise ConfigurationError("tier-table", "staking_tiers must be strictly ascending")
        if any(r < 0 for r in self.sale_ratio_tiers):
            raise ConfigurationError("tier-table", "sale_ratio_tiers must be non-negative")
        if any(b < a for a, b in zip(self.sale_ratio_tiers, self.sale_ratio_tiers[1:])):
            raise ConfigurationError("tier-table", "sale_ratio_tiers must be non-decreasing")
        if len(self.sale_ratio_tiers) < len(self.staking_tiers):
            raise ConfigurationError(
                "tier-table",
                f"sale_ratio_tiers has {len(self.sale_ratio_tiers)} entries, "
                f"need at least {len(self.staking_tiers)}",
            )

        if self.vesting_period <= timedelta(0):
            raise ConfigurationError("vesting-terms", "vesting_period must be positive")
        if not 0 <= self.vesting_initial_ratio <= 1:
            raise ConfigurationError("vesting-terms", "vesting_initial_ratio must be within [0, 1]")

        for label in ("staking_asset", "sale_asset", "purchase_asset"):
            value = getattr(self, label)
            if not value or not value.strip():
                raise ConfigurationError("asset-identifiers", f"{label} cannot be empty")

        for value in self.staking_volume_range:
            _check_amount(value, "staking_volume_range")
        for value in self.staking_tiers:
            _check_amount(value, "staking_tiers")
        for value in self.sale_ratio_tiers:
            _check_amount(value, "sale_ratio_tiers")
        _check_amount(self.sale_price, "sale_price")
        _check_amount(self.vesting_initial_ratio, "vesting_initial_ratio")

    # ------------------------------------------------------------------------

    @property
    def staking_start(self) -> datetime:
        return self.staking_window[0]

    @property
    def staking_end(self) -> datetime:
        return self.staking_window[1]

    @property
    def sale_start(self) -> datetime:
        return self.sale_window[0]

    @property
    def sale_end(self) -> datetime:
        return self.sale_window[1]

    @property
    def vesting_end(self) -> datetime:
        return self.vesting_start + self.vesting_period

    @property
    def staking_min(self) -> Decimal:
        return self.staking_volume_range[0]

    @property
    def staking_max(self) -> Decimal:
        return self.staking_volume_range[1]

    @classmethod
    def from_offsets(
        cls,
        anchor: datetime,
        *,
        name: str,
        staking_asset: str,
        sale_asset: str,
        purchase_asset: str,
        staking_offsets: Tuple[int, int],
        staking_volume_range: VolumeRange,
        staking_tiers: Tuple[Decimal, ...],
        sale_offsets: Tuple[int, int],
        sale_price: Decimal,
        sale_ratio_tiers: Tuple[Decimal, ...],
        vesting_offset: int,
        vesting_period: timedelta,
        vesting_initial_ratio: Decimal,
    ) -> LaunchpadConfig:
        """
        Build a config whose windows are given as second offsets from ``anchor``.

        Mirrors how schedules are usually written: stake at t+60..t+120,
        sell at t+180..t+240, vest from t+300.
        """
        def at(seconds: int) -> datetime:
            return anchor + timedelta(seconds=seconds)

        return cls(
            name=name,
            staking_asset=staking_asset,
            sale_asset=sale_asset,
            purchase_asset=purchase_asset,
            staking_window=(at(staking_offsets[0]), at(staking_offsets[1])),
            staking_volume_range=staking_volume_range,
            staking_tiers=tuple(staking_tiers),
            sale_window=(at(sale_offsets[0]), at(sale_offsets[1])),
            sale_price=sale_price,
            sale_ratio_tiers=tuple(sale_ratio_tiers),
            vesting_start=at(vesting_offset),
            vesting_period=vesting_period,
            vesting_initial_ratio=vesting_initial_ratio,
        )
