from datetime import date
from decimal import Decimal

import pytest

from tariff_engine.errors import InvalidConfigurationError
from tariff_engine.tariffs.configuration import (
    AutoPricingPolicy,
    CrewAbilityEntry,
    HourlyRateEntry,
    PricingMethodRule,
    RateTier,
    as_decimal,
    check_configuration,
    find_tier,
)


def test_as_decimal_avoids_float_artifacts():
    assert as_decimal(0.1) == Decimal("0.1")
    assert as_decimal("2.50") == Decimal("2.50")
    with pytest.raises(TypeError):
        as_decimal(True)
    with pytest.raises(TypeError):
        as_decimal("ten")


def test_configuration_is_immutable(configuration):
    with pytest.raises(AttributeError):
        configuration.version = "9.9.9"
    assert isinstance(configuration.hourly_rates, tuple)


def test_effective_dates_must_be_ordered(make_configuration):
    with pytest.raises(InvalidConfigurationError) as exc:
        make_configuration(effective_from=date(2025, 6, 1), effective_to=date(2025, 5, 1))
    assert exc.value.configuration_version == "1.0.0"


def test_exactly_one_default_method(make_configuration):
    with pytest.raises(InvalidConfigurationError, match="No default"):
        make_configuration(pricing_methods=(PricingMethodRule(rule_id="a", method_type="hourly"),))
    with pytest.raises(InvalidConfigurationError, match="Multiple default"):
        make_configuration(pricing_methods=(
            PricingMethodRule(rule_id="a", method_type="hourly", is_default=True),
            PricingMethodRule(rule_id="b", method_type="hourly", is_default=True),
        ))


def test_flat_rate_needs_amount(make_configuration):
    with pytest.raises(InvalidConfigurationError, match="no flat amount"):
        make_configuration(pricing_methods=(
            PricingMethodRule(rule_id="flat", method_type="flat_rate", is_default=True),
        ))


def test_crew_ability_must_be_monotonic(make_configuration):
    with pytest.raises(InvalidConfigurationError, match="lower than"):
        make_configuration(crew_ability=(
            CrewAbilityEntry(crew_size=1, max_volume="50", max_weight="350"),
            CrewAbilityEntry(crew_size=2, max_volume="40", max_weight="700"),
        ))


def test_hourly_crew_sizes_in_range_and_unique(make_configuration):
    with pytest.raises(InvalidConfigurationError, match="outside"):
        make_configuration(hourly_rates=(HourlyRateEntry(crew_size=11, base_rate="700"),))
    with pytest.raises(InvalidConfigurationError, match="unique"):
        make_configuration(hourly_rates=(
            HourlyRateEntry(crew_size=2, base_rate="100"),
            HourlyRateEntry(crew_size=2, base_rate="110"),
        ))


def test_overlapping_tiers_rejected(make_configuration):
    with pytest.raises(InvalidConfigurationError, match="overlaps"):
        make_configuration(distance_rates=(
            RateTier(min_value="0", max_value="100", rate_per_unit="1"),
            RateTier(min_value="50", max_value="200", rate_per_unit="2"),
        ))


def test_warnings_do_not_block(make_configuration):
    config = make_configuration(pricing_methods=(
        PricingMethodRule(rule_id="fallback", method_type="hourly", is_default=True, enabled=False),
        PricingMethodRule(rule_id="local", method_type="hourly", priority=10),
    ))
    result = check_configuration(config)
    assert result.valid
    assert any("'fallback' is disabled" in w for w in result.warnings)


def test_crew_limits_without_ability_table_rejected(make_configuration):
    with pytest.raises(InvalidConfigurationError, match="no crew ability entries") as exc:
        make_configuration(
            crew_ability=(),
            auto_pricing=AutoPricingPolicy(use_crew_ability_limits=True),
        )
    assert any("no crew ability" in e for e in exc.value.errors)


def test_empty_ability_table_allowed_when_limits_off(make_configuration):
    config = make_configuration(crew_ability=(), auto_pricing=AutoPricingPolicy())
    assert check_configuration(config).valid


def test_find_tier_boundaries():
    tiers = (
        RateTier(min_value="0", max_value="50", rate_per_unit="1"),
        RateTier(min_value="50", max_value="200", rate_per_unit="2"),
    )
    assert find_tier(tiers, Decimal("0")) is tiers[0]
    assert find_tier(tiers, Decimal("50")) is tiers[0]
    assert find_tier(tiers, Decimal("50.01")) is tiers[1]
    assert find_tier(tiers, Decimal("200.5")) is None


def test_header_covers(configuration):
    header = configuration.header
    assert header.covers(date(2025, 1, 1))
    assert not header.covers(date(2024, 12, 31))
    assert header.covers(date(2099, 1, 1))
