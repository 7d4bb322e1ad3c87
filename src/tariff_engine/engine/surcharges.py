"""
Surcharge Engine - applies calendar surcharges and handicaps in a fixed order.

Order:
1. Weekend surcharge, against the original base.
2. Holiday surcharge, against the original base (stacks additively).
3. Active handicaps in configuration order; for each one the qualifying
   sides are visited pickup first, then delivery. Percentage handicaps apply
   to the running subtotal (base + everything applied so far).

Seasonal handicaps are job-level rather than site-level and qualify once when
the request falls in the peak season.
"""
from decimal import Decimal

from ..tariffs.configuration import (
    ChargeType,
    Handicap,
    HandicapCategory,
    RateConfiguration,
)
from .models import EstimateRequest, LineItem

HUNDRED = Decimal("100")

CATEGORY_LABELS = {
    HandicapCategory.STAIRS: "Stairs",
    HandicapCategory.ELEVATOR: "Elevator",
    HandicapCategory.ACCESS: "Long carry",
    HandicapCategory.PARKING: "Parking",
    HandicapCategory.LOCATION: "Location",
    HandicapCategory.SEASONAL: "Seasonal",
}

PEAK_SEASON = "peak"


class SurchargeEngine:

    def apply_surcharges(
        self,
        base_amount: Decimal,
        configuration: RateConfiguration,
        request: EstimateRequest,
    ) -> list[LineItem]:
        items, _ = self.apply_with_rates(base_amount, configuration, request)
        return items

    def apply_with_rates(
        self,
        base_amount: Decimal,
        configuration: RateConfiguration,
        request: EstimateRequest,
    ) -> tuple[list[LineItem], list[dict]]:
        """
        Apply all surcharges.

        Returns (line_items, resolved_rates) where resolved_rates lists the
        configured values each line item was computed from.
        """
        items: list[LineItem] = []
        rates: list[dict] = []
        policy = configuration.auto_pricing

        if policy.apply_weekend_surcharge and request.weekend:
            percent = policy.weekend_surcharge_percent
            items.append(LineItem(
                name="Weekend surcharge",
                amount=base_amount * percent / HUNDRED,
                rule_id="weekend_surcharge",
                kind="surcharge",
                detail=f"{percent}% of base ${base_amount}",
            ))
            rates.append({"rule_id": "weekend_surcharge", "percent": percent})

        if policy.apply_holiday_surcharge and request.is_holiday:
            percent = policy.holiday_surcharge_percent
            items.append(LineItem(
                name="Holiday surcharge",
                amount=base_amount * percent / HUNDRED,
                rule_id="holiday_surcharge",
                kind="surcharge",
                detail=f"{percent}% of base ${base_amount}",
            ))
            rates.append({"rule_id": "holiday_surcharge", "percent": percent})

        running = base_amount + sum((item.amount for item in items), Decimal("0"))

        for handicap in configuration.handicaps:
            if not handicap.is_active:
                continue
            for scope, units in self._qualifying_scopes(handicap, request):
                amount, detail = self._handicap_amount(handicap, units, running)
                running += amount
                items.append(LineItem(
                    name=f"{CATEGORY_LABELS[handicap.category]} ({scope})",
                    amount=amount,
                    rule_id=handicap.id,
                    kind="handicap",
                    detail=detail,
                ))
                rates.append({
                    "rule_id": handicap.id,
                    "scope": scope,
                    "charge_type": handicap.charge_type.value,
                    "value": handicap.value,
                    "units": units,
                })

        return items, rates

    def _qualifying_scopes(self, handicap: Handicap, request: EstimateRequest) -> list[tuple[str, int]]:
        """(scope, unit_count) pairs for which this handicap applies."""
        if handicap.category is HandicapCategory.SEASONAL:
            return [("job", 1)] if request.seasonal_period == PEAK_SEASON else []

        scopes = []
        for side in handicap.applies_to.sides:
            units = request.site(side).units_for(handicap.category)
            if units > 0:
                scopes.append((side, units))
        return scopes

    def _handicap_amount(self, handicap: Handicap, units: int, running: Decimal) -> tuple[Decimal, str]:
        if handicap.charge_type is ChargeType.FIXED_FEE:
            return handicap.value, f"${handicap.value} fixed"
        if handicap.charge_type is ChargeType.PERCENTAGE:
            return running * handicap.value / HUNDRED, f"{handicap.value}% of running subtotal ${running}"
        unit = handicap.unit or "unit"
        return handicap.value * units, f"{units} {unit} × ${handicap.value}"
