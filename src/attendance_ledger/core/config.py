from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .constants import DEFAULT_HALF_DAY_WEIGHT, DEFAULT_PAID_LEAVES_PER_YEAR
from .enums import YearBoundaryPolicy
from .exceptions import ValidationError


@dataclass(frozen=True)
class LedgerConfig:
    """Leave settings handed to every ledger component at construction.

    ``location_leaves_per_year`` overrides ``paid_leaves_per_year`` for the
    listed locations.
    """

    paid_leaves_per_year: float = DEFAULT_PAID_LEAVES_PER_YEAR
    location_leaves_per_year: Mapping[int, float] = field(default_factory=dict)
    half_day_weight: float = DEFAULT_HALF_DAY_WEIGHT
    half_day_requires_balance: bool = False
    year_boundary_policy: YearBoundaryPolicy = YearBoundaryPolicy.RESET

    def __post_init__(self) -> None:
        if self.paid_leaves_per_year < 0:
            raise ValidationError("paid_leaves_per_year must not be negative")
        if not 0 <= self.half_day_weight <= 1:
            raise ValidationError("half_day_weight must be between 0 and 1")
        object.__setattr__(
            self,
            "location_leaves_per_year",
            MappingProxyType({int(k): float(v) for k, v in dict(self.location_leaves_per_year).items()}),
        )
        object.__setattr__(self, "year_boundary_policy", YearBoundaryPolicy(self.year_boundary_policy))

    def leave_allocation(self, location_id: Optional[int] = None) -> float:
        """Yearly leave days for a location, falling back to the global grant."""
        if location_id is not None and int(location_id) in self.location_leaves_per_year:
            return self.location_leaves_per_year[int(location_id)]
        return float(self.paid_leaves_per_year)

    def monthly_allocation(self, location_id: Optional[int] = None) -> float:
        return self.leave_allocation(location_id) / 12

    @property
    def carries_across_years(self) -> bool:
        return self.year_boundary_policy == YearBoundaryPolicy.CARRY

    @classmethod
    def from_settings(cls, settings: Any) -> "LedgerConfig":
        """Build from a settings module (see the root ``config`` package)."""
        return cls(
            paid_leaves_per_year=float(getattr(settings, "PAID_LEAVES_PER_YEAR", DEFAULT_PAID_LEAVES_PER_YEAR)),
            location_leaves_per_year=dict(getattr(settings, "LOCATION_LEAVES_PER_YEAR", {}) or {}),
            half_day_weight=float(getattr(settings, "HALF_DAY_WEIGHT", DEFAULT_HALF_DAY_WEIGHT)),
            half_day_requires_balance=bool(getattr(settings, "HALF_DAY_REQUIRES_BALANCE", False)),
            year_boundary_policy=YearBoundaryPolicy(getattr(settings, "YEAR_BOUNDARY_POLICY", "reset")),
        )
