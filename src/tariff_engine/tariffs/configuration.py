"""
Rate configuration model - immutable, versioned tariff snapshots.

A ``RateConfiguration`` holds every rate table one pricing calculation needs.
Snapshots are validated when they are built, so the calculation path can
assume the invariants (exactly one default method, monotonic crew ability,
contiguous tiers) without re-checking them.
"""
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from ..errors import InvalidConditionOperatorError, InvalidConfigurationError


MIN_CREW_SIZE = 1
MAX_CREW_SIZE = 10


def as_decimal(value: Any) -> Decimal:
    """Convert a number (or numeric string) to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError(f"Expected a number, got {value!r}")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise TypeError(f"Expected a number, got {value!r}") from None


def _as_optional_decimal(value: Any) -> Optional[Decimal]:
    return None if value is None else as_decimal(value)


def _freeze(obj, **converters):
    """Apply converters to fields of a frozen dataclass instance."""
    for name, convert in converters.items():
        object.__setattr__(obj, name, convert(getattr(obj, name)))


class DayType(str, Enum):
    WEEKDAY = "weekday"
    WEEKEND = "weekend"
    HOLIDAY = "holiday"


class MethodType(str, Enum):
    HOURLY = "hourly"
    DISTANCE_BASED = "distance_based"
    WEIGHT_BASED = "weight_based"
    FLAT_RATE = "flat_rate"
    VOLUME_BASED = "volume_based"


class HandicapCategory(str, Enum):
    STAIRS = "stairs"
    ELEVATOR = "elevator"
    ACCESS = "access"
    PARKING = "parking"
    LOCATION = "location"
    SEASONAL = "seasonal"


class ChargeType(str, Enum):
    FIXED_FEE = "fixed_fee"
    PERCENTAGE = "percentage"
    PER_UNIT = "per_unit"


class AppliesTo(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"
    BOTH = "both"

    @property
    def sides(self) -> tuple[str, ...]:
        if self is AppliesTo.BOTH:
            return ("pickup", "delivery")
        return (self.value,)


class Operator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IN = "in"
    CONTAINS = "contains"


class RequestField(str, Enum):
    """Request fields a pricing-method condition may reference."""
    SERVICE_TYPE = "service_type"
    OPPORTUNITY_TYPE = "opportunity_type"
    MOVE_DATE = "move_date"
    DISTANCE = "distance"
    TOTAL_WEIGHT = "total_weight"
    TOTAL_VOLUME = "total_volume"
    CREW_SIZE = "crew_size"
    ESTIMATED_HOURS = "estimated_hours"
    IS_WEEKEND = "is_weekend"
    IS_HOLIDAY = "is_holiday"
    SEASONAL_PERIOD = "seasonal_period"
    SPECIAL_ITEMS = "special_items"
    PICKUP_STAIRS_FLIGHTS = "pickup_stairs_flights"
    DELIVERY_STAIRS_FLIGHTS = "delivery_stairs_flights"
    PICKUP_ELEVATOR = "pickup_elevator"
    DELIVERY_ELEVATOR = "delivery_elevator"

    @property
    def is_collection(self) -> bool:
        return self is RequestField.SPECIAL_ITEMS

    @classmethod
    def parse(cls, name: str) -> "RequestField":
        """
        Resolve a field name as written in a tariff document.

        Accepts snake_case, camelCase and dotted paths
        (``pickup.stairsFlights`` -> ``pickup_stairs_flights``).
        """
        normalized = re.sub(r'(?<!^)(?=[A-Z])', '_', str(name).strip())
        normalized = normalized.replace('.', '_').replace('__', '_').lower()
        try:
            return cls(normalized)
        except ValueError:
            known = ", ".join(f.value for f in cls)
            raise ValueError(f"Unknown request field '{name}' (known: {known})") from None


@dataclass(frozen=True)
class Condition:
    """A single ``{field, operator, value}`` predicate of a pricing method."""
    field: RequestField
    operator: Operator
    value: Any

    def __post_init__(self):
        if not isinstance(self.field, RequestField):
            try:
                object.__setattr__(self, 'field', RequestField.parse(self.field))
            except ValueError as e:
                raise InvalidConfigurationError(str(e), field="field", value=self.field) from None
        if not isinstance(self.operator, Operator):
            try:
                object.__setattr__(self, 'operator', Operator(self.operator))
            except ValueError:
                raise InvalidConditionOperatorError(
                    f"Unknown condition operator '{self.operator}' on field '{self.field.value}'",
                    field=self.field.value,
                    value=self.operator,
                ) from None
        if isinstance(self.value, list):
            object.__setattr__(self, 'value', tuple(self.value))

    def describe(self) -> str:
        return f"{self.field.value} {self.operator.value} {self.value!r}"


@dataclass(frozen=True)
class HourlyRateEntry:
    crew_size: int
    base_rate: Decimal
    weekend_rate: Optional[Decimal] = None
    holiday_rate: Optional[Decimal] = None
    overtime_multiplier: Decimal = Decimal("1.5")

    def __post_init__(self):
        _freeze(
            self,
            crew_size=int,
            base_rate=as_decimal,
            weekend_rate=_as_optional_decimal,
            holiday_rate=_as_optional_decimal,
            overtime_multiplier=as_decimal,
        )

    def rate_for(self, day_type: DayType) -> Decimal:
        """Hourly rate for a day type, falling back to the base rate."""
        if day_type is DayType.HOLIDAY and self.holiday_rate is not None:
            return self.holiday_rate
        if day_type is DayType.WEEKEND and self.weekend_rate is not None:
            return self.weekend_rate
        return self.base_rate


@dataclass(frozen=True)
class MinimumHours:
    weekday: Decimal = Decimal("0")
    weekend: Decimal = Decimal("0")
    holiday: Decimal = Decimal("0")

    def __post_init__(self):
        _freeze(self, weekday=as_decimal, weekend=as_decimal, holiday=as_decimal)

    def for_day(self, day_type: DayType) -> Decimal:
        return getattr(self, day_type.value)


@dataclass(frozen=True)
class CrewAbilityEntry:
    crew_size: int
    max_volume: Decimal
    max_weight: Decimal

    def __post_init__(self):
        _freeze(self, crew_size=int, max_volume=as_decimal, max_weight=as_decimal)

    def can_carry(self, volume: Decimal, weight: Decimal) -> bool:
        return self.max_volume >= volume and self.max_weight >= weight


@dataclass(frozen=True)
class RateTier:
    """One tier of a distance, weight or volume rate table."""
    min_value: Decimal
    max_value: Decimal
    rate_per_unit: Decimal
    minimum_charge: Optional[Decimal] = None
    name: str = ""

    def __post_init__(self):
        _freeze(
            self,
            min_value=as_decimal,
            max_value=as_decimal,
            rate_per_unit=as_decimal,
            minimum_charge=_as_optional_decimal,
        )

    def contains(self, value: Decimal) -> bool:
        return self.min_value <= value <= self.max_value

    def charge_for(self, value: Decimal) -> Decimal:
        return max(self.minimum_charge or Decimal("0"), value * self.rate_per_unit)


def find_tier(tiers: tuple[RateTier, ...], value: Decimal) -> Optional[RateTier]:
    """First tier containing ``value``; a shared boundary belongs to the lower tier."""
    for tier in tiers:
        if tier.contains(value):
            return tier
    return None


@dataclass(frozen=True)
class Handicap:
    id: str
    category: HandicapCategory
    charge_type: ChargeType
    value: Decimal
    applies_to: AppliesTo = AppliesTo.BOTH
    is_active: bool = True
    name: str = ""
    unit: Optional[str] = None

    def __post_init__(self):
        _freeze(
            self,
            category=HandicapCategory,
            charge_type=ChargeType,
            value=as_decimal,
            applies_to=AppliesTo,
        )


@dataclass(frozen=True)
class PricingMethodRule:
    rule_id: str
    method_type: MethodType
    priority: int = 50
    enabled: bool = True
    is_default: bool = False
    conditions: tuple[Condition, ...] = ()
    name: str = ""
    description: str = ""
    flat_amount: Optional[Decimal] = None

    def __post_init__(self):
        _freeze(
            self,
            method_type=MethodType,
            priority=int,
            conditions=lambda items: tuple(
                c if isinstance(c, Condition) else Condition(**c) for c in items
            ),
            flat_amount=_as_optional_decimal,
        )

    @property
    def display_name(self) -> str:
        return self.name or self.rule_id


def _as_optional_field(value: Any) -> Optional[RequestField]:
    if value is None or isinstance(value, RequestField):
        return value
    try:
        return RequestField.parse(value)
    except ValueError as e:
        raise InvalidConfigurationError(str(e), field="per", value=value) from None


class AdjustmentAction(str, Enum):
    ADD_FIXED = "add_fixed"
    ADD_PERCENTAGE = "add_percentage"
    MULTIPLY = "multiply"
    SET_MINIMUM = "set_minimum"
    SET_MAXIMUM = "set_maximum"
    REPLACE = "replace"


# Fields an adjustment may be charged per unit of
QUANTITY_FIELDS = frozenset({
    RequestField.DISTANCE,
    RequestField.TOTAL_WEIGHT,
    RequestField.TOTAL_VOLUME,
    RequestField.CREW_SIZE,
    RequestField.ESTIMATED_HOURS,
    RequestField.SPECIAL_ITEMS,
    RequestField.PICKUP_STAIRS_FLIGHTS,
    RequestField.DELIVERY_STAIRS_FLIGHTS,
})


@dataclass(frozen=True)
class AdjustmentRule:
    """
    A conditional price adjustment applied after handicaps.

    ``amount`` means a money amount for add_fixed, set_minimum, set_maximum
    and replace, a percent for add_percentage and a factor for multiply.
    With ``per`` set, an add_fixed amount is charged for every unit of that
    request field above ``per_threshold`` (special_items counts items).
    """
    id: str
    action: AdjustmentAction
    amount: Decimal
    priority: int = 50
    is_active: bool = True
    conditions: tuple[Condition, ...] = ()
    name: str = ""
    description: str = ""
    per: Optional[RequestField] = None
    per_threshold: Decimal = Decimal("0")
    service_types: tuple[str, ...] = ()
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None

    def __post_init__(self):
        _freeze(
            self,
            action=AdjustmentAction,
            amount=as_decimal,
            priority=int,
            conditions=lambda items: tuple(
                c if isinstance(c, Condition) else Condition(**c) for c in items
            ),
            per=_as_optional_field,
            per_threshold=as_decimal,
            service_types=lambda value: (value,) if isinstance(value, str) else tuple(value),
        )

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def in_effect(self, on: date) -> bool:
        if self.effective_from is not None and on < self.effective_from:
            return False
        return self.effective_to is None or on <= self.effective_to


@dataclass(frozen=True)
class AutoPricingPolicy:
    max_hours_per_job: Optional[Decimal] = None
    use_crew_ability_limits: bool = False
    apply_weekend_surcharge: bool = False
    weekend_surcharge_percent: Decimal = Decimal("0")
    apply_holiday_surcharge: bool = False
    holiday_surcharge_percent: Decimal = Decimal("0")

    def __post_init__(self):
        _freeze(
            self,
            max_hours_per_job=_as_optional_decimal,
            weekend_surcharge_percent=as_decimal,
            holiday_surcharge_percent=as_decimal,
        )


@dataclass(frozen=True)
class ConfigurationHeader:
    """Lightweight metadata used to pick the effective configuration."""
    id: str
    version: str
    effective_from: date
    effective_to: Optional[date] = None
    is_active: bool = False

    def covers(self, as_of: date) -> bool:
        if as_of < self.effective_from:
            return False
        return self.effective_to is None or as_of <= self.effective_to


@dataclass
class ValidationResult:
    """Result of configuration validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RateConfiguration:
    """Immutable snapshot of every rate table of one tariff version."""
    id: str
    version: str
    effective_from: date
    pricing_methods: tuple[PricingMethodRule, ...]
    effective_to: Optional[date] = None
    is_active: bool = False
    name: str = ""
    hourly_rates: tuple[HourlyRateEntry, ...] = ()
    minimum_hours: MinimumHours = field(default_factory=MinimumHours)
    crew_ability: tuple[CrewAbilityEntry, ...] = ()
    distance_rates: tuple[RateTier, ...] = ()
    weight_rates: tuple[RateTier, ...] = ()
    volume_rates: tuple[RateTier, ...] = ()
    handicaps: tuple[Handicap, ...] = ()
    adjustment_rules: tuple[AdjustmentRule, ...] = ()
    auto_pricing: AutoPricingPolicy = field(default_factory=AutoPricingPolicy)

    def __post_init__(self):
        _freeze(
            self,
            pricing_methods=tuple,
            hourly_rates=tuple,
            crew_ability=tuple,
            distance_rates=tuple,
            weight_rates=tuple,
            volume_rates=tuple,
            handicaps=tuple,
            adjustment_rules=tuple,
        )
        result = check_configuration(self)
        if not result.valid:
            raise InvalidConfigurationError(
                f"Configuration {self.id} v{self.version} is invalid: " + "; ".join(result.errors),
                errors=result.errors,
                warnings=result.warnings,
                configuration_version=self.version,
            )

    @property
    def header(self) -> ConfigurationHeader:
        return ConfigurationHeader(
            id=self.id,
            version=self.version,
            effective_from=self.effective_from,
            effective_to=self.effective_to,
            is_active=self.is_active,
        )

    @property
    def default_method(self) -> PricingMethodRule:
        return next(m for m in self.pricing_methods if m.is_default)

    def hourly_rate_for(self, crew_size: int) -> Optional[HourlyRateEntry]:
        for entry in self.hourly_rates:
            if entry.crew_size == crew_size:
                return entry
        return None

    def crew_ability_ascending(self) -> list[CrewAbilityEntry]:
        return sorted(self.crew_ability, key=lambda e: e.crew_size)


def _check_tiers(label: str, tiers: tuple[RateTier, ...], errors: list[str]):
    previous = None
    for i, tier in enumerate(tiers):
        if tier.min_value > tier.max_value:
            errors.append(f"{label} tier {i + 1}: min {tier.min_value} exceeds max {tier.max_value}")
        if tier.rate_per_unit < 0:
            errors.append(f"{label} tier {i + 1}: rate must not be negative")
        if previous is not None:
            if tier.min_value < previous.max_value:
                errors.append(f"{label} tier {i + 1}: overlaps or is out of order with tier {i}")
            elif tier.min_value > previous.max_value:
                errors.append(
                    f"{label} tier {i + 1}: gap between {previous.max_value} and {tier.min_value}"
                )
        previous = tier


def _check_adjustment_rules(rules: tuple[AdjustmentRule, ...], errors: list[str]):
    seen = set()
    for rule in rules:
        if rule.id in seen:
            errors.append(f"Duplicate adjustment rule id '{rule.id}'")
        seen.add(rule.id)
        if rule.per is not None:
            if rule.action is not AdjustmentAction.ADD_FIXED:
                errors.append(f"Adjustment rule '{rule.id}': only add_fixed can be charged per unit")
            if rule.per not in QUANTITY_FIELDS:
                errors.append(f"Adjustment rule '{rule.id}': '{rule.per.value}' is not a quantity")
        if rule.action not in (AdjustmentAction.ADD_FIXED, AdjustmentAction.ADD_PERCENTAGE) and rule.amount < 0:
            errors.append(f"Adjustment rule '{rule.id}': {rule.action.value} amount must not be negative")
        if rule.effective_from and rule.effective_to and rule.effective_from > rule.effective_to:
            errors.append(f"Adjustment rule '{rule.id}': effective from date must be before effective to date")


def check_configuration(config: RateConfiguration) -> ValidationResult:
    """
    Validate a configuration snapshot.

    Errors make the snapshot unusable; warnings are reported but tolerated.
    """
    result = ValidationResult(valid=True)
    errors = result.errors
    warnings = result.warnings

    if config.effective_to is not None and config.effective_from > config.effective_to:
        errors.append("Effective from date must be before effective to date")

    # Pricing methods
    if not config.pricing_methods:
        errors.append("No pricing methods defined")
    defaults = [m for m in config.pricing_methods if m.is_default]
    if config.pricing_methods and not defaults:
        errors.append("No default pricing method set")
    if len(defaults) > 1:
        errors.append(
            "Multiple default pricing methods set: " + ", ".join(m.rule_id for m in defaults)
        )
    if defaults and not defaults[0].enabled:
        warnings.append(f"Default pricing method '{defaults[0].rule_id}' is disabled")

    seen_rule_ids = set()
    for method in config.pricing_methods:
        if method.rule_id in seen_rule_ids:
            errors.append(f"Duplicate pricing method id '{method.rule_id}'")
        seen_rule_ids.add(method.rule_id)
        if method.method_type is MethodType.FLAT_RATE and method.flat_amount is None:
            errors.append(f"Flat-rate method '{method.rule_id}' has no flat amount")

    enabled_types = {m.method_type for m in config.pricing_methods if m.enabled}
    if MethodType.HOURLY in enabled_types and not config.hourly_rates:
        errors.append("Hourly pricing is enabled but no hourly rates are defined")
    for method_type, tiers in (
        (MethodType.DISTANCE_BASED, config.distance_rates),
        (MethodType.WEIGHT_BASED, config.weight_rates),
        (MethodType.VOLUME_BASED, config.volume_rates),
    ):
        if method_type in enabled_types and not tiers:
            warnings.append(f"{method_type.value} pricing is enabled but its rate table is empty")

    # Hourly rates
    crew_sizes = [e.crew_size for e in config.hourly_rates]
    if len(crew_sizes) != len(set(crew_sizes)):
        errors.append("Hourly rate crew sizes must be unique")
    for entry in config.hourly_rates:
        if not MIN_CREW_SIZE <= entry.crew_size <= MAX_CREW_SIZE:
            errors.append(
                f"Hourly rate crew size {entry.crew_size} outside {MIN_CREW_SIZE}..{MAX_CREW_SIZE}"
            )
        if entry.overtime_multiplier < 1:
            errors.append(f"Overtime multiplier for crew of {entry.crew_size} must be at least 1")

    # Crew ability must not shrink as crews grow
    ability = config.crew_ability_ascending()
    for smaller, larger in zip(ability, ability[1:]):
        if smaller.crew_size == larger.crew_size:
            errors.append(f"Duplicate crew ability entry for crew of {larger.crew_size}")
        elif larger.max_volume < smaller.max_volume or larger.max_weight < smaller.max_weight:
            errors.append(
                f"Crew ability for crew of {larger.crew_size} is lower than for crew of {smaller.crew_size}"
            )
    if config.auto_pricing.use_crew_ability_limits and not ability:
        errors.append("Crew ability limits are enabled but no crew ability entries exist")

    _check_tiers("Distance", config.distance_rates, errors)
    _check_tiers("Weight", config.weight_rates, errors)
    _check_tiers("Volume", config.volume_rates, errors)

    handicap_ids = [h.id for h in config.handicaps]
    if len(handicap_ids) != len(set(handicap_ids)):
        errors.append("Handicap ids must be unique")

    _check_adjustment_rules(config.adjustment_rules, errors)

    result.valid = not errors
    return result
