"""
Pricing Method Selector - picks exactly one pricing method for a request.

Rules are evaluated in ascending priority (lower = evaluated first, ties keep
configuration order). The first rule whose conditions all hold wins; when
none does, the configuration's default rule is used.
"""
import logging

from ..errors import NoMatchingPricingMethodError
from ..tariffs.configuration import PricingMethodRule, RateConfiguration
from .conditions import check_condition, evaluate_conditions
from .models import EstimateRequest

logger = logging.getLogger(__name__)


class PricingMethodSelector:
    """Resolves the pricing method for a request against one configuration."""

    def select(self, configuration: RateConfiguration, request: EstimateRequest) -> PricingMethodRule:
        rule, _ = self.select_with_trace(configuration, request)
        return rule

    def select_with_trace(
        self,
        configuration: RateConfiguration,
        request: EstimateRequest,
    ) -> tuple[PricingMethodRule, list[tuple]]:
        """
        Select a method and record why.

        Returns (rule, trace_steps) where each trace step is
        ``(step, description, value)``.
        """
        trace = []
        enabled = [m for m in configuration.pricing_methods if m.enabled]
        if not enabled:
            raise NoMatchingPricingMethodError(
                f"Configuration {configuration.id} has no enabled pricing methods",
                configuration_version=configuration.version,
            )

        # Malformed conditions are fatal even on rules that would never be reached.
        for rule in enabled:
            for condition in rule.conditions:
                check_condition(condition)

        for rule in sorted(enabled, key=lambda m: m.priority):
            if evaluate_conditions(rule.conditions, request):
                reason = ", ".join(c.describe() for c in rule.conditions) or "unconditional"
                trace.append(("Method Match", f"{rule.display_name} (priority {rule.priority})", reason))
                logger.debug("Pricing method %s matched (%s)", rule.rule_id, reason)
                return rule, trace

        default = configuration.default_method
        if not default.enabled:
            raise NoMatchingPricingMethodError(
                f"No pricing method matched and default method '{default.rule_id}' is disabled",
                configuration_version=configuration.version,
                field="is_default",
                value=default.rule_id,
            )

        trace.append(("Method Match", "No rule matched, using default method", default.display_name))
        logger.debug("No pricing method matched, falling back to default %s", default.rule_id)
        return default, trace
