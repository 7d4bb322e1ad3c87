"""
Pydantic models for the tariff.json document.

These only check the document's shape; the cross-table invariants live in
``configuration.check_configuration`` and run when the snapshot is built.
"""
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .configuration import AdjustmentAction, AppliesTo, ChargeType, HandicapCategory, MethodType


class TariffModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ConditionModel(TariffModel):
    """Condition fields may be written in snake_case or camelCase."""
    field: str
    operator: str
    value: Any


class PricingMethodModel(TariffModel):
    id: str
    method_type: MethodType
    name: str = ""
    description: str = ""
    priority: int = 50
    enabled: bool = True
    is_default: bool = False
    flat_amount: Optional[Decimal] = None
    conditions: list[ConditionModel] = Field(default_factory=list)


class HandicapModel(TariffModel):
    id: str
    category: HandicapCategory
    charge_type: ChargeType
    value: Decimal = Field(..., ge=0)
    applies_to: AppliesTo = AppliesTo.BOTH
    is_active: bool = True
    name: str = ""
    unit: Optional[str] = None


class AdjustmentRuleModel(TariffModel):
    id: str
    action: AdjustmentAction
    amount: Decimal
    name: str = ""
    description: str = ""
    priority: int = 50
    is_active: bool = True
    per: Optional[str] = None
    per_threshold: Decimal = Field(Decimal("0"), ge=0)
    service_types: list[str] = Field(default_factory=list)
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    conditions: list[ConditionModel] = Field(default_factory=list)


class MinimumHoursModel(TariffModel):
    weekday: Decimal = Field(Decimal("0"), ge=0)
    weekend: Decimal = Field(Decimal("0"), ge=0)
    holiday: Decimal = Field(Decimal("0"), ge=0)


class AutoPricingModel(TariffModel):
    max_hours_per_job: Optional[Decimal] = Field(None, gt=0)
    use_crew_ability_limits: bool = False
    apply_weekend_surcharge: bool = False
    weekend_surcharge_percent: Decimal = Field(Decimal("0"), ge=0)
    apply_holiday_surcharge: bool = False
    holiday_surcharge_percent: Decimal = Field(Decimal("0"), ge=0)


class TariffDocument(TariffModel):
    id: str
    version: str
    name: str = ""
    effective_from: date
    effective_to: Optional[date] = None
    is_active: bool = False
    minimum_hours: MinimumHoursModel = Field(default_factory=MinimumHoursModel)
    auto_pricing: AutoPricingModel = Field(default_factory=AutoPricingModel)
    handicaps: list[HandicapModel] = Field(default_factory=list)
    pricing_methods: list[PricingMethodModel] = Field(default_factory=list)
    adjustment_rules: list[AdjustmentRuleModel] = Field(default_factory=list)


class TariffHeaderDocument(BaseModel):
    """Just the metadata; used when scanning a tariff library."""
    id: str
    version: str
    effective_from: date
    effective_to: Optional[date] = None
    is_active: bool = False
