"""
Pricing Engine - tariff-driven estimate calculation with traceability.

Pipeline for one estimate:
1. Validate the request
2. Resolve the configuration effective on the calculation date
3. Select the pricing method
4. Plan the crew (escalate only)
5. Compute the base charge
6. Apply weekend/holiday surcharges and handicaps
7. Apply the tariff's adjustment rules
8. Assemble totals, audit trail and deterministic hash

Nothing in the pipeline mutates shared state apart from the resolver cache,
so one engine instance can serve concurrent calculations.
"""
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

from ..config.logging_config import tariff_context
from ..errors import InvalidEstimateRequestError
from .adjustments import AdjustmentEngine
from .assembler import EstimateAssembler
from .base_charge import BaseChargeCalculator
from .capacity import CapacityPlanner
from .method_selector import PricingMethodSelector
from .models import EstimateRequest, EstimateResult, TraceStep
from .surcharges import SurchargeEngine

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PricingEngine:
    """
    Computes estimates from the tariff effective on a calculation date.

    ``resolver`` is anything with ``resolve(as_of)`` and ``invalidate()``,
    normally a ``TariffResolver``. The remaining collaborators are stateless
    and may be swapped out in tests.
    """

    def __init__(
        self,
        resolver,
        selector: Optional[PricingMethodSelector] = None,
        planner: Optional[CapacityPlanner] = None,
        calculator: Optional[BaseChargeCalculator] = None,
        surcharges: Optional[SurchargeEngine] = None,
        adjustments: Optional[AdjustmentEngine] = None,
        assembler: Optional[EstimateAssembler] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.resolver = resolver
        self.selector = selector or PricingMethodSelector()
        self.planner = planner or CapacityPlanner()
        self.calculator = calculator or BaseChargeCalculator()
        self.surcharges = surcharges or SurchargeEngine()
        self.adjustments = adjustments or AdjustmentEngine()
        self.assembler = assembler or EstimateAssembler()
        self.clock = clock

    def calculate_estimate(self, request: EstimateRequest, as_of: Optional[date] = None) -> EstimateResult:
        """
        Calculate an estimate with full traceability.

        Args:
            request: the job to price
            as_of: calculation date used to resolve the tariff (defaults to
                the move date)

        Returns:
            EstimateResult with line items, applied rules, trace and hash

        Raises:
            EngineError: any subclass; nothing is retried or partially priced
        """
        problems = request.validate()
        if problems:
            raise InvalidEstimateRequestError(
                "Invalid estimate request: " + "; ".join(problems),
                errors=problems,
            )

        as_of = as_of or request.move_date
        if isinstance(as_of, datetime):
            as_of = as_of.date()
        trace = []

        configuration = self.resolver.resolve(as_of)
        trace.append(TraceStep(
            "Tariff",
            f"{configuration.name or configuration.id} effective on {as_of.isoformat()}",
            f"{configuration.id} v{configuration.version}",
        ))

        method, method_trace = self.selector.select_with_trace(configuration, request)
        for step, desc, val in method_trace:
            trace.append(TraceStep(step, desc, val))

        plan = self.planner.plan(configuration, request)
        trace.append(TraceStep("Crew", plan.capacity_note, str(plan.crew_size)))

        base = self.calculator.compute_base(method, configuration, plan.crew_size, request)
        trace.append(TraceStep("Base Charge", base.line_item.detail, f"${base.amount}"))

        surcharge_items, surcharge_rates = self.surcharges.apply_with_rates(base.amount, configuration, request)
        for item in surcharge_items:
            trace.append(TraceStep(item.name, item.detail, f"${item.amount}"))

        running = base.amount + sum((item.amount for item in surcharge_items), Decimal("0"))
        adjustment_items, adjustment_rates = self.adjustments.apply_with_rates(
            running, configuration, request, plan.crew_size,
        )
        for item in adjustment_items:
            trace.append(TraceStep(item.name, item.detail, f"${item.amount}"))

        warnings = list(base.warnings)
        for warning in warnings:
            logger.warning(
                "Estimate warning (%s v%s): %s", configuration.id, configuration.version, warning,
                extra=tariff_context(configuration),
            )

        resolved_rates = {
            "pricing_method": method.rule_id,
            "crew_size": plan.crew_size,
            "base": base.resolved_rates,
            "surcharges": surcharge_rates,
            "adjustments": adjustment_rates,
        }

        result = self.assembler.assemble(
            base_item=base.line_item,
            surcharge_items=surcharge_items,
            adjustment_items=adjustment_items,
            configuration=configuration,
            request=request,
            resolved_rates=resolved_rates,
            pricing_method=method.method_type.value,
            crew_size=plan.crew_size,
            capacity_note=plan.capacity_note,
            warnings=warnings,
            trace=trace,
            generated_at=self.clock(),
        )

        logger.info(
            "Estimate %s via %s (crew %s, tariff %s v%s, hash %s)",
            result.final_price,
            method.rule_id,
            plan.crew_size,
            configuration.id,
            configuration.version,
            result.deterministic_hash[:12],
            extra={
                **tariff_context(configuration),
                "pricing_method": method.rule_id,
                "deterministic_hash": result.deterministic_hash,
            },
        )
        return result

    def on_configuration_activated(self, configuration_id: str):
        """Activation hook for the tariff library; clears cached snapshots."""
        self.resolver.on_configuration_activated(configuration_id)
