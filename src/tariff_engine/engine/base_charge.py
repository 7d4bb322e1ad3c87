"""
Base Charge Calculator - raw charge for the selected pricing method.

Each branch produces exactly one named line item plus the rate values it
actually used; the latter feed the deterministic hash.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from ..errors import RateNotFoundError
from ..tariffs.configuration import (
    MethodType,
    PricingMethodRule,
    RateConfiguration,
    RateTier,
    find_tier,
)
from .models import EstimateRequest, LineItem

# Hours beyond this per crew-day are billed at the overtime multiplier.
OVERTIME_THRESHOLD_HOURS = Decimal("8")


@dataclass(frozen=True)
class BaseCharge:
    line_item: LineItem
    resolved_rates: dict
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def amount(self) -> Decimal:
        return self.line_item.amount


class BaseChargeCalculator:
    """Computes the base charge for hourly, tiered and flat-rate methods."""

    def compute_base(
        self,
        method: PricingMethodRule,
        configuration: RateConfiguration,
        crew_size: int,
        request: EstimateRequest,
    ) -> BaseCharge:
        if method.method_type is MethodType.HOURLY:
            return self._hourly(method, configuration, crew_size, request)
        if method.method_type is MethodType.DISTANCE_BASED:
            return self._tiered(
                method, configuration, configuration.distance_rates, request.distance,
                label="Distance charge", unit="miles", field_name="distance",
            )
        if method.method_type is MethodType.WEIGHT_BASED:
            return self._tiered(
                method, configuration, configuration.weight_rates, request.total_weight,
                label="Weight charge", unit="lbs", field_name="total_weight",
            )
        if method.method_type is MethodType.VOLUME_BASED:
            return self._tiered(
                method, configuration, configuration.volume_rates, request.total_volume,
                label="Volume charge", unit="cu ft", field_name="total_volume",
            )
        if method.method_type is MethodType.FLAT_RATE:
            return self._flat(method, configuration)
        raise RateNotFoundError(
            f"No base charge formula for method type '{method.method_type}'",
            configuration_version=configuration.version,
            field="method_type",
            value=method.method_type,
        )

    def _hourly(
        self,
        method: PricingMethodRule,
        configuration: RateConfiguration,
        crew_size: int,
        request: EstimateRequest,
    ) -> BaseCharge:
        entry = configuration.hourly_rate_for(crew_size)
        if entry is None:
            raise RateNotFoundError(
                f"No hourly rate configured for crew of {crew_size}",
                configuration_version=configuration.version,
                field="crew_size",
                value=crew_size,
            )

        day_type = request.day_type
        rate = entry.rate_for(day_type)
        minimum = configuration.minimum_hours.for_day(day_type)
        billable = max(request.estimated_hours, minimum)
        regular = min(billable, OVERTIME_THRESHOLD_HOURS)
        overtime = billable - regular
        amount = rate * regular + rate * entry.overtime_multiplier * overtime

        detail = f"{regular}h × ${rate}/h"
        if overtime > 0:
            detail += f" + {overtime}h overtime × ${rate}/h × {entry.overtime_multiplier}"
        if billable > request.estimated_hours:
            detail += f" ({day_type.value} minimum of {minimum}h applied)"

        warnings = []
        max_hours = configuration.auto_pricing.max_hours_per_job
        if max_hours is not None and billable > max_hours:
            warnings.append(f"Billable hours {billable} exceed the {max_hours}h maximum per job")

        return BaseCharge(
            line_item=LineItem(
                name=f"Hourly labor (crew of {crew_size})",
                amount=amount,
                rule_id=method.rule_id,
                kind="base",
                detail=detail,
            ),
            resolved_rates={
                "method": method.method_type.value,
                "crew_size": crew_size,
                "day_type": day_type.value,
                "hourly_rate": rate,
                "minimum_hours": minimum,
                "billable_hours": billable,
                "overtime_threshold_hours": OVERTIME_THRESHOLD_HOURS,
                "overtime_multiplier": entry.overtime_multiplier,
            },
            warnings=tuple(warnings),
        )

    def _tiered(
        self,
        method: PricingMethodRule,
        configuration: RateConfiguration,
        tiers: tuple[RateTier, ...],
        value: Decimal,
        label: str,
        unit: str,
        field_name: str,
    ) -> BaseCharge:
        tier: Optional[RateTier] = find_tier(tiers, value)
        if tier is None:
            raise RateNotFoundError(
                f"No {label.lower()} tier covers {value} {unit}",
                configuration_version=configuration.version,
                field=field_name,
                value=value,
            )

        amount = tier.charge_for(value)
        detail = f"{value} {unit} × ${tier.rate_per_unit}"
        if tier.minimum_charge is not None and amount == tier.minimum_charge:
            detail += f" (minimum charge ${tier.minimum_charge})"

        return BaseCharge(
            line_item=LineItem(
                name=f"{label} ({value} {unit})",
                amount=amount,
                rule_id=method.rule_id,
                kind="base",
                detail=detail,
            ),
            resolved_rates={
                "method": method.method_type.value,
                "tier_min": tier.min_value,
                "tier_max": tier.max_value,
                "rate_per_unit": tier.rate_per_unit,
                "minimum_charge": tier.minimum_charge,
            },
        )

    def _flat(self, method: PricingMethodRule, configuration: RateConfiguration) -> BaseCharge:
        if method.flat_amount is None:
            raise RateNotFoundError(
                f"Flat-rate method '{method.rule_id}' has no amount",
                configuration_version=configuration.version,
                field="flat_amount",
                value=method.rule_id,
            )
        return BaseCharge(
            line_item=LineItem(
                name=f"Flat rate ({method.display_name})",
                amount=method.flat_amount,
                rule_id=method.rule_id,
                kind="base",
                detail=f"${method.flat_amount} flat",
            ),
            resolved_rates={
                "method": method.method_type.value,
                "flat_amount": method.flat_amount,
            },
        )
