"""
Adjustment Engine - tariff-defined price adjustments after handicaps.

Active rules whose service types, effective dates and conditions all hold
are applied in ascending priority (ties keep configuration order). Each rule
sees the running subtotal left by the rules before it and contributes its own
signed line item, so a floor or cap shows up as the amount it moved the price.
"""
import logging
from decimal import Decimal
from typing import Optional

from ..tariffs.configuration import (
    AdjustmentAction,
    AdjustmentRule,
    RateConfiguration,
    RequestField,
    as_decimal,
)
from .conditions import FIELD_ACCESSORS, check_condition, evaluate_conditions
from .models import EstimateRequest, LineItem

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
ZERO = Decimal("0")


class AdjustmentEngine:

    def apply_adjustments(
        self,
        running: Decimal,
        configuration: RateConfiguration,
        request: EstimateRequest,
        crew_size: Optional[int] = None,
    ) -> list[LineItem]:
        items, _ = self.apply_with_rates(running, configuration, request, crew_size)
        return items

    def apply_with_rates(
        self,
        running: Decimal,
        configuration: RateConfiguration,
        request: EstimateRequest,
        crew_size: Optional[int] = None,
    ) -> tuple[list[LineItem], list[dict]]:
        """
        Apply every qualifying adjustment rule to ``running``.

        ``crew_size`` is the planned crew; per-crew-member amounts use it
        instead of the requested crew when given.

        Returns (line_items, resolved_rates).
        """
        active = [r for r in configuration.adjustment_rules if r.is_active]
        # Malformed conditions are fatal even when an earlier check would skip the rule.
        for rule in active:
            for condition in rule.conditions:
                check_condition(condition)

        items: list[LineItem] = []
        rates: list[dict] = []
        for rule in sorted(active, key=lambda r: r.priority):
            if not self._qualifies(rule, request):
                continue
            units = self._units(rule, request, crew_size)
            amount, detail = self._impact(rule, running, units)
            running += amount
            items.append(LineItem(
                name=rule.display_name,
                amount=amount,
                rule_id=rule.id,
                kind="adjustment",
                detail=detail,
            ))
            rate = {"rule_id": rule.id, "action": rule.action.value, "amount": rule.amount}
            if units is not None:
                rate["units"] = units
            rates.append(rate)
            logger.debug("Adjustment %s applied: %s", rule.id, amount)

        return items, rates

    def _qualifies(self, rule: AdjustmentRule, request: EstimateRequest) -> bool:
        if rule.service_types and request.service_type not in rule.service_types:
            return False
        if not rule.in_effect(request.move_date):
            return False
        return evaluate_conditions(rule.conditions, request)

    def _units(self, rule: AdjustmentRule, request: EstimateRequest, crew_size: Optional[int]) -> Optional[Decimal]:
        """Billable units above the threshold, or None for a whole-job rule."""
        if rule.per is None:
            return None
        if rule.per is RequestField.SPECIAL_ITEMS:
            quantity = Decimal(len(request.special_items))
        elif rule.per is RequestField.CREW_SIZE and crew_size is not None:
            quantity = Decimal(crew_size)
        else:
            quantity = as_decimal(FIELD_ACCESSORS[rule.per](request))
        return max(ZERO, quantity - rule.per_threshold)

    def _impact(self, rule: AdjustmentRule, running: Decimal, units: Optional[Decimal]) -> tuple[Decimal, str]:
        action = rule.action
        if action is AdjustmentAction.ADD_FIXED:
            if units is None:
                return rule.amount, f"${rule.amount} fixed"
            above = f" above {rule.per_threshold}" if rule.per_threshold else ""
            return rule.amount * units, f"{units} {rule.per.value}{above} × ${rule.amount}"
        if action is AdjustmentAction.ADD_PERCENTAGE:
            return running * rule.amount / HUNDRED, f"{rule.amount}% of running subtotal ${running}"
        if action is AdjustmentAction.MULTIPLY:
            return running * (rule.amount - 1), f"running subtotal ${running} × {rule.amount}"
        if action is AdjustmentAction.SET_MINIMUM:
            return max(ZERO, rule.amount - running), f"minimum ${rule.amount} (subtotal ${running})"
        if action is AdjustmentAction.SET_MAXIMUM:
            return min(ZERO, rule.amount - running), f"maximum ${rule.amount} (subtotal ${running})"
        return rule.amount - running, f"replaced subtotal ${running} with ${rule.amount}"
