"""
Data models for the pricing engine.

Uses frozen dataclasses so requests and results can be shared freely between
concurrent calculations.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..tariffs.configuration import (
    MAX_CREW_SIZE,
    MIN_CREW_SIZE,
    DayType,
    HandicapCategory,
    as_decimal,
)


@dataclass(frozen=True)
class TraceStep:
    """A single step in the pricing resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass(frozen=True)
class SiteAccess:
    """Access conditions at one end of the move (pickup or delivery)."""
    stairs_flights: int = 0
    elevator: bool = False
    long_carry_units: int = 0  # per 100 feet
    parking_units: int = 0
    difficult_location: bool = False

    def units_for(self, category: HandicapCategory) -> int:
        """How many units of a handicap category this site presents (0 = not applicable)."""
        if category is HandicapCategory.STAIRS:
            return self.stairs_flights
        if category is HandicapCategory.ELEVATOR:
            return 1 if self.elevator else 0
        if category is HandicapCategory.ACCESS:
            return self.long_carry_units
        if category is HandicapCategory.PARKING:
            return self.parking_units
        if category is HandicapCategory.LOCATION:
            return 1 if self.difficult_location else 0
        return 0

    def to_canonical(self) -> dict:
        return {
            "stairs_flights": self.stairs_flights,
            "elevator": self.elevator,
            "long_carry_units": self.long_carry_units,
            "parking_units": self.parking_units,
            "difficult_location": self.difficult_location,
        }


@dataclass(frozen=True)
class EstimateRequest:
    """A pricing request describing one moving job."""
    move_date: date
    total_weight: Decimal
    total_volume: Decimal
    distance: Decimal
    crew_size: int
    estimated_hours: Decimal = Decimal("0")
    service_type: str = "Moving"
    opportunity_type: str = "Local"
    pickup: SiteAccess = field(default_factory=SiteAccess)
    delivery: SiteAccess = field(default_factory=SiteAccess)
    special_items: frozenset = frozenset()

    # Calendar facts are resolved by the caller (holiday calendar is external).
    is_holiday: bool = False
    is_weekend: Optional[bool] = None  # None = derive from move_date
    seasonal_period: str = "standard"  # "peak", "standard", "off_peak"

    def __post_init__(self):
        for name in ('total_weight', 'total_volume', 'distance', 'estimated_hours'):
            object.__setattr__(self, name, as_decimal(getattr(self, name)))
        object.__setattr__(self, 'crew_size', int(self.crew_size))
        if isinstance(self.move_date, datetime):
            object.__setattr__(self, 'move_date', self.move_date.date())
        # A bare string is one item, not a set of characters
        items = self.special_items
        if isinstance(items, str):
            items = (items,)
        object.__setattr__(self, 'special_items', frozenset(items))

    @property
    def weekend(self) -> bool:
        if self.is_weekend is not None:
            return self.is_weekend
        return self.move_date.weekday() >= 5

    @property
    def day_type(self) -> DayType:
        """Holiday wins over weekend for rate selection."""
        if self.is_holiday:
            return DayType.HOLIDAY
        if self.weekend:
            return DayType.WEEKEND
        return DayType.WEEKDAY

    def site(self, side: str) -> SiteAccess:
        return self.pickup if side == "pickup" else self.delivery

    def validate(self) -> list[str]:
        """Return a list of problems that make this request unpriceable."""
        errors = []
        if self.total_weight < 0:
            errors.append("Total weight cannot be negative")
        if self.total_volume < 0:
            errors.append("Total volume cannot be negative")
        if self.distance < 0:
            errors.append("Distance cannot be negative")
        if self.estimated_hours < 0:
            errors.append("Estimated hours cannot be negative")
        if not MIN_CREW_SIZE <= self.crew_size <= MAX_CREW_SIZE:
            errors.append(f"Crew size must be between {MIN_CREW_SIZE} and {MAX_CREW_SIZE}")
        for side in ("pickup", "delivery"):
            site = self.site(side)
            for name in ("stairs_flights", "long_carry_units", "parking_units"):
                if getattr(site, name) < 0:
                    errors.append(f"{side} {name.replace('_', ' ')} cannot be negative")
        return errors

    def to_canonical(self) -> dict:
        """Every request field, in a form the canonical encoder can serialize."""
        return {
            "move_date": self.move_date,
            "total_weight": self.total_weight,
            "total_volume": self.total_volume,
            "distance": self.distance,
            "crew_size": self.crew_size,
            "estimated_hours": self.estimated_hours,
            "service_type": self.service_type,
            "opportunity_type": self.opportunity_type,
            "pickup": self.pickup.to_canonical(),
            "delivery": self.delivery.to_canonical(),
            "special_items": self.special_items,
            "is_holiday": self.is_holiday,
            "is_weekend": self.weekend,
            "seasonal_period": self.seasonal_period,
        }


@dataclass(frozen=True)
class LineItem:
    """A named, signed contribution to the final price."""
    name: str
    amount: Decimal
    rule_id: str
    kind: str = "base"  # base, surcharge, handicap, adjustment
    detail: str = ""


@dataclass(frozen=True)
class AppliedRule:
    """Audit entry for one rule or charge and its isolated price impact."""
    rule_id: str
    rule_name: str
    price_impact: Decimal
    calculation_details: str = ""


@dataclass(frozen=True)
class EstimateResult:
    """Complete result of a pricing calculation."""
    final_price: Decimal
    breakdown: tuple[LineItem, ...]
    applied_rules: tuple[AppliedRule, ...]
    configuration_id: str
    configuration_version: str
    deterministic_hash: str
    generated_at: datetime
    pricing_method: str
    crew_size: int
    capacity_note: str = ""
    warnings: tuple[str, ...] = ()
    trace: tuple[TraceStep, ...] = ()

    def get_trace_text(self) -> str:
        """Get human-readable result trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"• {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"• {t.step}: {t.description}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Plain-JSON representation for callers that persist or transmit results."""
        return {
            "finalPrice": str(self.final_price),
            "breakdown": [
                {"name": item.name, "amount": str(item.amount), "kind": item.kind}
                for item in self.breakdown
            ],
            "appliedRules": [
                {
                    "ruleId": rule.rule_id,
                    "ruleName": rule.rule_name,
                    "priceImpact": str(rule.price_impact),
                    "calculationDetails": rule.calculation_details,
                }
                for rule in self.applied_rules
            ],
            "configurationId": self.configuration_id,
            "configurationVersion": self.configuration_version,
            "deterministicHash": self.deterministic_hash,
            "generatedAt": self.generated_at.isoformat(),
            "pricingMethod": self.pricing_method,
            "crewSize": self.crew_size,
            "capacityNote": self.capacity_note,
            "warnings": list(self.warnings),
        }
