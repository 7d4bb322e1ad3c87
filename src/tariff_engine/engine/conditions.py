"""
Condition evaluation for pricing-method rules.

Every ``RequestField`` maps to a typed accessor on ``EstimateRequest`` and
every ``Operator`` to one evaluation function, so the only dynamic part of a
condition is its field name, which is checked when the configuration is built.
"""
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Optional

from ..errors import InvalidConditionOperatorError
from ..tariffs.configuration import Condition, Operator, RequestField, as_decimal
from .models import EstimateRequest


FIELD_ACCESSORS: dict[RequestField, Callable[[EstimateRequest], Any]] = {
    RequestField.SERVICE_TYPE: lambda r: r.service_type,
    RequestField.OPPORTUNITY_TYPE: lambda r: r.opportunity_type,
    RequestField.MOVE_DATE: lambda r: r.move_date,
    RequestField.DISTANCE: lambda r: r.distance,
    RequestField.TOTAL_WEIGHT: lambda r: r.total_weight,
    RequestField.TOTAL_VOLUME: lambda r: r.total_volume,
    RequestField.CREW_SIZE: lambda r: r.crew_size,
    RequestField.ESTIMATED_HOURS: lambda r: r.estimated_hours,
    RequestField.IS_WEEKEND: lambda r: r.weekend,
    RequestField.IS_HOLIDAY: lambda r: r.is_holiday,
    RequestField.SEASONAL_PERIOD: lambda r: r.seasonal_period,
    RequestField.SPECIAL_ITEMS: lambda r: r.special_items,
    RequestField.PICKUP_STAIRS_FLIGHTS: lambda r: r.pickup.stairs_flights,
    RequestField.DELIVERY_STAIRS_FLIGHTS: lambda r: r.delivery.stairs_flights,
    RequestField.PICKUP_ELEVATOR: lambda r: r.pickup.elevator,
    RequestField.DELIVERY_ELEVATOR: lambda r: r.delivery.elevator,
}


def _as_number(value: Any) -> Optional[Decimal]:
    """Coerce to Decimal, or None when the value is not numeric."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        return as_decimal(value)
    except TypeError:
        return None


def _same(actual: Any, expected: Any) -> bool:
    if isinstance(actual, date):
        return actual.isoformat() == str(expected)
    if isinstance(actual, (int, Decimal)) and not isinstance(actual, bool):
        expected_number = _as_number(expected)
        return expected_number is not None and Decimal(actual) == expected_number
    return actual == expected


def _op_equals(condition: Condition, actual: Any) -> bool:
    return _same(actual, condition.value)


def _op_not_equals(condition: Condition, actual: Any) -> bool:
    return not _same(actual, condition.value)


def _op_greater_than(condition: Condition, actual: Any) -> bool:
    left, right = _as_number(actual), _as_number(condition.value)
    if left is None or right is None:
        return False
    return left > right


def _op_less_than(condition: Condition, actual: Any) -> bool:
    left, right = _as_number(actual), _as_number(condition.value)
    if left is None or right is None:
        return False
    return left < right


def _op_in(condition: Condition, actual: Any) -> bool:
    return any(_same(actual, candidate) for candidate in condition.value)


def _op_contains(condition: Condition, actual: Any) -> bool:
    return condition.value in actual


OPERATORS: dict[Operator, Callable[[Condition, Any], bool]] = {
    Operator.EQUALS: _op_equals,
    Operator.NOT_EQUALS: _op_not_equals,
    Operator.GREATER_THAN: _op_greater_than,
    Operator.LESS_THAN: _op_less_than,
    Operator.IN: _op_in,
    Operator.CONTAINS: _op_contains,
}


def check_condition(condition: Condition):
    """Raise InvalidConditionOperatorError if the operator cannot apply to this field/value."""
    if condition.operator not in OPERATORS:
        raise InvalidConditionOperatorError(
            f"Unsupported operator '{condition.operator}'",
            field=condition.field.value,
            value=condition.operator,
        )
    if condition.operator is Operator.IN and not isinstance(condition.value, (tuple, list)):
        raise InvalidConditionOperatorError(
            f"Operator 'in' on '{condition.field.value}' needs a list value, got {condition.value!r}",
            field=condition.field.value,
            value=condition.value,
        )
    if condition.operator is Operator.CONTAINS and not condition.field.is_collection:
        raise InvalidConditionOperatorError(
            f"Operator 'contains' needs a collection field, '{condition.field.value}' is a single value",
            field=condition.field.value,
            value=condition.value,
        )


def evaluate_condition(condition: Condition, request: EstimateRequest) -> bool:
    """Evaluate one condition; raises InvalidConditionOperatorError when malformed."""
    check_condition(condition)
    return OPERATORS[condition.operator](condition, FIELD_ACCESSORS[condition.field](request))


def evaluate_conditions(conditions: tuple[Condition, ...], request: EstimateRequest) -> bool:
    """All conditions must hold; an empty list matches unconditionally."""
    return all(evaluate_condition(c, request) for c in conditions)
