"""
Tariff directory loader.

A tariff lives in one directory:

    tariff.json            metadata, minimum hours, auto pricing,
                           handicaps, pricing methods, adjustment rules
    hourly_rates.csv       crew_size, base_rate, weekend_rate, holiday_rate, overtime_multiplier
    crew_ability.csv       crew_size, max_volume, max_weight
    distance_rates.csv     min_value, max_value, rate_per_unit, minimum_charge, name
    weight_rates.csv       (same columns as distance_rates.csv)
    volume_rates.csv       (same columns as distance_rates.csv)

All CSV files are optional. Values are read as text and converted straight to
Decimal so no float rounding leaks into the rates.
"""
import json
import logging
from pathlib import Path
from typing import Optional

import pandas as pd
from pydantic import ValidationError

from ..config.settings import get_packaged_tariffs_dir
from ..errors import EngineError, InvalidConfigurationError
from .configuration import (
    AdjustmentRule,
    AutoPricingPolicy,
    Condition,
    ConfigurationHeader,
    CrewAbilityEntry,
    Handicap,
    HourlyRateEntry,
    MinimumHours,
    PricingMethodRule,
    RateConfiguration,
    RateTier,
    ValidationResult,
    as_decimal,
    check_configuration,
)
from .schema import TariffDocument, TariffHeaderDocument

logger = logging.getLogger(__name__)

TARIFF_DOCUMENT = "tariff.json"

HOURLY_COLUMNS = ("crew_size", "base_rate")
CREW_ABILITY_COLUMNS = ("crew_size", "max_volume", "max_weight")
TIER_COLUMNS = ("min_value", "max_value", "rate_per_unit")


def _read_json(path: Path) -> dict:
    document = path / TARIFF_DOCUMENT
    if not document.exists():
        raise InvalidConfigurationError(f"{document} not found", field="path", value=str(path))
    try:
        with open(document, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidConfigurationError(f"{document} is not valid JSON: {e}", field="path", value=str(path)) from e


def _format_validation_error(error: ValidationError) -> list[str]:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        messages.append(f"{location}: {item['msg']}")
    return messages


def _load_csv(path: Path, filename: str, required: tuple[str, ...]) -> pd.DataFrame:
    csv_path = path / filename
    if not csv_path.exists():
        return pd.DataFrame()
    try:
        df = pd.read_csv(csv_path, dtype=str, skipinitialspace=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise InvalidConfigurationError(f"Cannot read {csv_path}: {e}", field=filename) from e

    df.columns = [c.strip() for c in df.columns]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise InvalidConfigurationError(
            f"{csv_path} is missing column(s): {', '.join(missing)}",
            field=filename,
            value=missing,
        )
    return df


def _cell(row: pd.Series, column: str) -> Optional[str]:
    """Stripped cell text, or None for a missing column or empty cell."""
    if column not in row.index or not pd.notna(row[column]):
        return None
    text = str(row[column]).strip()
    return text or None


def _rows(df: pd.DataFrame, filename: str, build):
    items = []
    for i, row in df.iterrows():
        try:
            items.append(build(row))
        except (TypeError, ValueError) as e:
            # Header is line 1
            raise InvalidConfigurationError(f"{filename} line {i + 2}: {e}", field=filename) from e
    return tuple(items)


def _hourly_entry(row: pd.Series) -> HourlyRateEntry:
    kwargs = {
        "crew_size": int(_cell(row, "crew_size")),
        "base_rate": as_decimal(_cell(row, "base_rate")),
        "weekend_rate": _cell(row, "weekend_rate"),
        "holiday_rate": _cell(row, "holiday_rate"),
    }
    overtime = _cell(row, "overtime_multiplier")
    if overtime is not None:
        kwargs["overtime_multiplier"] = overtime
    return HourlyRateEntry(**kwargs)


def _crew_ability_entry(row: pd.Series) -> CrewAbilityEntry:
    return CrewAbilityEntry(
        crew_size=int(_cell(row, "crew_size")),
        max_volume=_cell(row, "max_volume"),
        max_weight=_cell(row, "max_weight"),
    )


def _rate_tier(row: pd.Series) -> RateTier:
    return RateTier(
        min_value=_cell(row, "min_value"),
        max_value=_cell(row, "max_value"),
        rate_per_unit=_cell(row, "rate_per_unit"),
        minimum_charge=_cell(row, "minimum_charge"),
        name=_cell(row, "name") or "",
    )


def _parse_document(path: Path) -> TariffDocument:
    raw = _read_json(path)
    try:
        return TariffDocument.model_validate(raw)
    except ValidationError as e:
        errors = _format_validation_error(e)
        raise InvalidConfigurationError(
            f"{path / TARIFF_DOCUMENT} failed validation: " + "; ".join(errors),
            errors=errors,
            configuration_version=raw.get("version") if isinstance(raw, dict) else None,
        ) from e


def _build_configuration(path: Path) -> RateConfiguration:
    doc = _parse_document(path)

    try:
        pricing_methods = tuple(
            PricingMethodRule(
                rule_id=m.id,
                method_type=m.method_type,
                priority=m.priority,
                enabled=m.enabled,
                is_default=m.is_default,
                conditions=tuple(Condition(c.field, c.operator, c.value) for c in m.conditions),
                name=m.name,
                description=m.description,
                flat_amount=m.flat_amount,
            )
            for m in doc.pricing_methods
        )
        handicaps = tuple(
            Handicap(
                id=h.id,
                category=h.category,
                charge_type=h.charge_type,
                value=h.value,
                applies_to=h.applies_to,
                is_active=h.is_active,
                name=h.name,
                unit=h.unit,
            )
            for h in doc.handicaps
        )
        adjustment_rules = tuple(
            AdjustmentRule(
                id=a.id,
                action=a.action,
                amount=a.amount,
                priority=a.priority,
                is_active=a.is_active,
                conditions=tuple(Condition(c.field, c.operator, c.value) for c in a.conditions),
                name=a.name,
                description=a.description,
                per=a.per,
                per_threshold=a.per_threshold,
                service_types=tuple(a.service_types),
                effective_from=a.effective_from,
                effective_to=a.effective_to,
            )
            for a in doc.adjustment_rules
        )
        hourly_rates = _rows(_load_csv(path, "hourly_rates.csv", HOURLY_COLUMNS), "hourly_rates.csv", _hourly_entry)
        crew_ability = _rows(
            _load_csv(path, "crew_ability.csv", CREW_ABILITY_COLUMNS), "crew_ability.csv", _crew_ability_entry
        )
        tiers = {
            name: _rows(_load_csv(path, f"{name}.csv", TIER_COLUMNS), f"{name}.csv", _rate_tier)
            for name in ("distance_rates", "weight_rates", "volume_rates")
        }
    except EngineError as e:
        if e.configuration_version is None:
            e.configuration_version = doc.version
        raise

    return RateConfiguration(
        id=doc.id,
        version=doc.version,
        name=doc.name,
        effective_from=doc.effective_from,
        effective_to=doc.effective_to,
        is_active=doc.is_active,
        pricing_methods=pricing_methods,
        hourly_rates=hourly_rates,
        minimum_hours=MinimumHours(**doc.minimum_hours.model_dump()),
        crew_ability=crew_ability,
        handicaps=handicaps,
        adjustment_rules=adjustment_rules,
        auto_pricing=AutoPricingPolicy(**doc.auto_pricing.model_dump()),
        **tiers,
    )


def read_tariff_header(path: Path) -> ConfigurationHeader:
    """Read only the metadata of a tariff directory."""
    path = Path(path)
    raw = _read_json(path)
    try:
        doc = TariffHeaderDocument.model_validate(raw)
    except ValidationError as e:
        errors = _format_validation_error(e)
        raise InvalidConfigurationError(
            f"{path / TARIFF_DOCUMENT} has invalid metadata: " + "; ".join(errors),
            errors=errors,
        ) from e
    return ConfigurationHeader(
        id=doc.id,
        version=doc.version,
        effective_from=doc.effective_from,
        effective_to=doc.effective_to,
        is_active=doc.is_active,
    )


def load_tariff_directory(path: Path) -> RateConfiguration:
    """
    Load and validate a tariff directory into an immutable snapshot.

    Raises:
        InvalidConfigurationError: the document, a CSV file or the resulting
            snapshot is invalid
        InvalidConditionOperatorError: a pricing-method condition names an
            unknown operator
    """
    path = Path(path)
    configuration = _build_configuration(path)
    logger.info(
        "Loaded tariff %s v%s from %s (%d pricing methods, %d hourly rates, %d handicaps, %d adjustment rules)",
        configuration.id,
        configuration.version,
        path,
        len(configuration.pricing_methods),
        len(configuration.hourly_rates),
        len(configuration.handicaps),
        len(configuration.adjustment_rules),
    )
    return configuration


def validate_tariff_directory(path: Path) -> ValidationResult:
    """Validate a tariff directory, reporting problems instead of raising them."""
    try:
        configuration = _build_configuration(Path(path))
    except InvalidConfigurationError as e:
        return ValidationResult(valid=False, errors=e.errors or [e.message], warnings=e.warnings)
    except EngineError as e:
        return ValidationResult(valid=False, errors=[e.message])
    return check_configuration(configuration)


def default_tariff_path() -> Path:
    """Directory of the tariff bundled with the package."""
    return get_packaged_tariffs_dir() / "default"
