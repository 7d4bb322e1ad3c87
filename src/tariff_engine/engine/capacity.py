"""
Capacity Planner - reconciles the requested crew size with the load.

Planning only escalates: a human-specified crew size is never reduced.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal

from ..errors import CapacityExceededError
from ..tariffs.configuration import RateConfiguration
from .models import EstimateRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapacityPlan:
    crew_size: int
    capacity_note: str


class CapacityPlanner:

    def plan(self, configuration: RateConfiguration, request: EstimateRequest) -> CapacityPlan:
        requested = request.crew_size
        if not configuration.auto_pricing.use_crew_ability_limits:
            return CapacityPlan(requested, "Crew ability limits disabled; using requested crew")

        ability = configuration.crew_ability_ascending()
        for entry in ability:
            if entry.can_carry(request.total_volume, request.total_weight):
                if entry.crew_size <= requested:
                    return CapacityPlan(
                        requested,
                        f"Requested crew of {requested} can carry {request.total_weight} lbs / "
                        f"{request.total_volume} cu ft",
                    )
                logger.info(
                    "Crew escalated from %s to %s for %s lbs / %s cu ft",
                    requested, entry.crew_size, request.total_weight, request.total_volume,
                )
                return CapacityPlan(
                    entry.crew_size,
                    f"Crew escalated from {requested} to {entry.crew_size} to carry "
                    f"{request.total_weight} lbs / {request.total_volume} cu ft",
                )

        largest = ability[-1] if ability else None
        max_volume = largest.max_volume if largest else Decimal("0")
        max_weight = largest.max_weight if largest else Decimal("0")
        volume_shortfall = max(Decimal("0"), request.total_volume - max_volume)
        weight_shortfall = max(Decimal("0"), request.total_weight - max_weight)
        raise CapacityExceededError(
            f"No configured crew can carry {request.total_weight} lbs / {request.total_volume} cu ft "
            f"(short by {weight_shortfall} lbs / {volume_shortfall} cu ft)",
            volume_shortfall=volume_shortfall,
            weight_shortfall=weight_shortfall,
            largest_crew_size=largest.crew_size if largest else None,
            configuration_version=configuration.version,
            field="total_weight" if weight_shortfall > 0 else "total_volume",
            value=request.total_weight if weight_shortfall > 0 else request.total_volume,
        )
