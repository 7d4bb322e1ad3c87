from datetime import date

import pytest

from tariff_engine.engine.conditions import evaluate_condition, evaluate_conditions
from tariff_engine.errors import InvalidConditionOperatorError, InvalidConfigurationError
from tariff_engine.tariffs.configuration import Condition, Operator, RequestField


def test_camel_case_and_dotted_field_names():
    assert RequestField.parse("opportunityType") is RequestField.OPPORTUNITY_TYPE
    assert RequestField.parse("serviceType") is RequestField.SERVICE_TYPE
    assert RequestField.parse("pickup.stairsFlights") is RequestField.PICKUP_STAIRS_FLIGHTS
    assert RequestField.parse("total_weight") is RequestField.TOTAL_WEIGHT


def test_unknown_field_is_a_configuration_error():
    with pytest.raises(InvalidConfigurationError):
        Condition("customerMood", "equals", "happy")


def test_unknown_operator_is_rejected():
    with pytest.raises(InvalidConditionOperatorError) as exc:
        Condition("serviceType", "matches", "Mov.*")
    assert exc.value.value == "matches"
    assert exc.value.field == "service_type"


def test_equals_and_not_equals(make_request):
    request = make_request(service_type="Packing")
    assert evaluate_condition(Condition("serviceType", "equals", "Packing"), request)
    assert not evaluate_condition(Condition("serviceType", "equals", "Moving"), request)
    assert evaluate_condition(Condition("serviceType", "not_equals", "Moving"), request)


def test_numeric_comparisons_use_decimal(make_request):
    request = make_request(total_weight="1000.5")
    assert evaluate_condition(Condition("totalWeight", "greater_than", 1000), request)
    assert evaluate_condition(Condition("totalWeight", "less_than", "1000.6"), request)
    assert not evaluate_condition(Condition("totalWeight", "greater_than", "1000.5"), request)
    assert evaluate_condition(Condition("totalWeight", "equals", "1000.50"), request)


def test_comparison_against_non_numeric_value_is_false(make_request):
    request = make_request()
    assert not evaluate_condition(Condition("distance", "greater_than", "far"), request)
    assert not evaluate_condition(Condition("serviceType", "greater_than", 3), request)


def test_in_operator(make_request):
    request = make_request(opportunity_type="Interstate")
    assert evaluate_condition(Condition("opportunityType", "in", ["Local", "Interstate"]), request)
    assert not evaluate_condition(Condition("opportunityType", "in", ["Local"]), request)


def test_in_operator_requires_a_list(make_request):
    with pytest.raises(InvalidConditionOperatorError):
        evaluate_condition(Condition("opportunityType", "in", "Local"), make_request())


def test_contains_on_special_items(make_request):
    request = make_request(special_items={"piano", "safe"})
    assert evaluate_condition(Condition("specialItems", "contains", "piano"), request)
    assert not evaluate_condition(Condition("specialItems", "contains", "pool table"), request)


def test_single_special_item_string_is_one_item(make_request):
    request = make_request(special_items="piano")
    assert request.special_items == frozenset({"piano"})
    assert evaluate_condition(Condition("specialItems", "contains", "piano"), request)
    assert not evaluate_condition(Condition("specialItems", "contains", "p"), request)


def test_contains_on_scalar_field_is_malformed(make_request):
    with pytest.raises(InvalidConditionOperatorError):
        evaluate_condition(Condition("serviceType", "contains", "Mov"), make_request())


def test_boolean_and_date_fields(make_request):
    request = make_request(move_date=date(2025, 6, 14))
    assert evaluate_condition(Condition("isWeekend", Operator.EQUALS, True), request)
    assert evaluate_condition(Condition("moveDate", "equals", "2025-06-14"), request)
    assert not evaluate_condition(Condition("isHoliday", "equals", True), request)


def test_empty_condition_list_matches(make_request):
    assert evaluate_conditions((), make_request())


def test_all_conditions_must_hold(make_request):
    conditions = (
        Condition("opportunityType", "equals", "Local"),
        Condition("serviceType", "equals", "Packing"),
    )
    assert not evaluate_conditions(conditions, make_request())
    assert evaluate_conditions(conditions, make_request(service_type="Packing"))
