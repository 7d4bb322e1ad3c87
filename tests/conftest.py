import sys
import os
from datetime import date

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from tariff_engine.engine.models import EstimateRequest, SiteAccess
from tariff_engine.tariffs.configuration import (
    AutoPricingPolicy,
    CrewAbilityEntry,
    Handicap,
    HourlyRateEntry,
    MinimumHours,
    PricingMethodRule,
    RateConfiguration,
    RateTier,
)

WEDNESDAY = date(2025, 6, 11)
SATURDAY = date(2025, 6, 14)


def build_configuration(**overrides) -> RateConfiguration:
    """Small local-moving tariff; keyword arguments replace whole fields."""
    fields = dict(
        id="tariff-2025",
        version="1.0.0",
        name="Test Tariff",
        effective_from=date(2025, 1, 1),
        is_active=True,
        hourly_rates=(
            HourlyRateEntry(crew_size=1, base_rate="89"),
            HourlyRateEntry(crew_size=2, base_rate="100"),
            HourlyRateEntry(crew_size=3, base_rate="220"),
            HourlyRateEntry(crew_size=4, base_rate="300", weekend_rate="280", holiday_rate="330"),
        ),
        minimum_hours=MinimumHours(weekday="2"),
        crew_ability=(
            CrewAbilityEntry(crew_size=1, max_volume="50", max_weight="350"),
            CrewAbilityEntry(crew_size=2, max_volume="100", max_weight="700"),
            CrewAbilityEntry(crew_size=3, max_volume="150", max_weight="1050"),
            CrewAbilityEntry(crew_size=4, max_volume="200", max_weight="1400"),
        ),
        distance_rates=(
            RateTier(min_value="0", max_value="50", rate_per_unit="1", minimum_charge="100"),
            RateTier(min_value="50", max_value="200", rate_per_unit="2.5", minimum_charge="250"),
        ),
        weight_rates=(
            RateTier(min_value="0", max_value="2000", rate_per_unit="0.95", minimum_charge="500"),
        ),
        volume_rates=(
            RateTier(min_value="0", max_value="300", rate_per_unit="6.5", minimum_charge="450"),
        ),
        handicaps=(
            Handicap(id="stairs", category="stairs", charge_type="percentage", value="9", unit="flight"),
        ),
        auto_pricing=AutoPricingPolicy(
            use_crew_ability_limits=True,
            apply_weekend_surcharge=True,
            weekend_surcharge_percent="10",
            apply_holiday_surcharge=True,
            holiday_surcharge_percent="15",
        ),
        pricing_methods=(
            PricingMethodRule(
                rule_id="local-labor",
                name="Local Labor",
                method_type="hourly",
                priority=10,
                is_default=True,
                conditions=(
                    {"field": "opportunityType", "operator": "equals", "value": "Local"},
                    {"field": "serviceType", "operator": "equals", "value": "Moving"},
                ),
            ),
            PricingMethodRule(
                rule_id="interstate",
                name="Interstate Transport",
                method_type="distance_based",
                priority=40,
                conditions=({"field": "opportunity_type", "operator": "equals", "value": "Interstate"},),
            ),
        ),
    )
    fields.update(overrides)
    return RateConfiguration(**fields)


def build_request(**overrides) -> EstimateRequest:
    """3-person local move, 2.5 hours, one flight of stairs at pickup, on a Wednesday."""
    fields = dict(
        move_date=WEDNESDAY,
        total_weight="1000",
        total_volume="140",
        distance="12",
        crew_size=3,
        estimated_hours="2.5",
        pickup=SiteAccess(stairs_flights=1),
    )
    fields.update(overrides)
    return EstimateRequest(**fields)


@pytest.fixture
def make_configuration():
    return build_configuration


@pytest.fixture
def make_request():
    return build_request


@pytest.fixture
def configuration():
    return build_configuration()


@pytest.fixture
def request_data():
    return build_request()


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
