import pytest

from tariff_engine.engine.method_selector import PricingMethodSelector
from tariff_engine.errors import InvalidConditionOperatorError, NoMatchingPricingMethodError
from tariff_engine.tariffs.configuration import PricingMethodRule


@pytest.fixture
def selector():
    return PricingMethodSelector()


def _rule(rule_id, priority, conditions=(), **kwargs):
    return PricingMethodRule(rule_id=rule_id, method_type="hourly", priority=priority, conditions=conditions, **kwargs)


def test_first_matching_rule_by_priority_wins(selector, make_configuration, make_request):
    config = make_configuration(pricing_methods=(
        _rule("fallback", 90, is_default=True),
        _rule("packing", 20, ({"field": "serviceType", "operator": "equals", "value": "Packing"},)),
        _rule("local", 10, ({"field": "opportunityType", "operator": "equals", "value": "Local"},)),
    ))
    assert selector.select(config, make_request(service_type="Packing")).rule_id == "local"
    assert selector.select(config, make_request(opportunity_type="Interstate", service_type="Packing")).rule_id == "packing"


def test_priority_ties_keep_configuration_order(selector, make_configuration, make_request):
    config = make_configuration(pricing_methods=(
        _rule("first", 20),
        _rule("second", 20),
        _rule("fallback", 90, is_default=True),
    ))
    for _ in range(5):
        assert selector.select(config, make_request()).rule_id == "first"


def test_default_used_when_nothing_matches(selector, configuration, make_request):
    rule, trace = selector.select_with_trace(configuration, make_request(service_type="Storage"))
    assert rule.rule_id == "local-labor"
    assert trace[-1][1] == "No rule matched, using default method"


def test_disabled_rules_are_skipped(selector, make_configuration, make_request):
    config = make_configuration(pricing_methods=(
        _rule("disabled", 1, enabled=False),
        _rule("default", 50, is_default=True),
    ))
    assert selector.select(config, make_request()).rule_id == "default"


def test_disabled_default_with_no_match_raises(selector, make_configuration, make_request):
    config = make_configuration(pricing_methods=(
        _rule("packing", 10, ({"field": "serviceType", "operator": "equals", "value": "Packing"},)),
        _rule("default", 50, ({"field": "serviceType", "operator": "equals", "value": "Storage"},),
              is_default=True, enabled=False),
    ))
    with pytest.raises(NoMatchingPricingMethodError) as exc:
        selector.select(config, make_request())
    assert exc.value.configuration_version == "1.0.0"


def test_no_enabled_rules_raises(selector, make_configuration, make_request):
    config = make_configuration(pricing_methods=(_rule("default", 50, is_default=True, enabled=False),))
    with pytest.raises(NoMatchingPricingMethodError):
        selector.select(config, make_request())


def test_malformed_condition_on_unreached_rule_is_fatal(selector, make_configuration, make_request):
    config = make_configuration(pricing_methods=(
        _rule("default", 10, is_default=True),
        _rule("broken", 90, ({"field": "serviceType", "operator": "contains", "value": "Mov"},)),
    ))
    with pytest.raises(InvalidConditionOperatorError):
        selector.select(config, make_request())


@pytest.mark.parametrize("storage_priority", [5, 15, 50, 95])
def test_non_matching_rule_priority_never_changes_selection(storage_priority, selector, make_configuration, make_request):
    config = make_configuration(pricing_methods=(
        _rule("storage", storage_priority, ({"field": "serviceType", "operator": "equals", "value": "Storage"},)),
        _rule("local", 20, ({"field": "opportunityType", "operator": "equals", "value": "Local"},)),
        _rule("fallback", 90, is_default=True),
    ))
    rule, trace = selector.select_with_trace(config, make_request())
    assert rule.rule_id == "local", f"storage at priority {storage_priority} changed the selection"
    assert trace[-1][1] == "local (priority 20)"
