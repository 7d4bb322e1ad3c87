"""
Error taxonomy for the tariff pricing engine.

Every error aborts the calculation and carries enough context (configuration
version, offending field/value) to diagnose without re-running. ``status_code``
is a hint for whatever transport layer sits in front of the engine:
configuration problems are operator-fixable (5xx), request problems are
caller-fixable (4xx).
"""
from decimal import Decimal
from typing import Any, Optional


class EngineError(Exception):
    """Base class for all pricing engine errors."""

    status_code = 500

    def __init__(
        self,
        message: str,
        configuration_version: Optional[str] = None,
        field: Optional[str] = None,
        value: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.configuration_version = configuration_version
        self.field = field
        self.value = value

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "configuration_version": self.configuration_version,
            "field": self.field,
            "value": None if self.value is None else str(self.value),
        }


class NoActiveConfigurationError(EngineError):
    """No tariff is active for the requested date."""


class NoMatchingPricingMethodError(EngineError):
    """No pricing method could be selected (broken default rule)."""


class RateNotFoundError(EngineError):
    """A required rate entry or tier is absent for the resolved key."""


class InvalidConditionOperatorError(EngineError):
    """A pricing-method condition is malformed."""


class InvalidConfigurationError(EngineError):
    """A configuration snapshot failed validation when it was built or loaded."""

    def __init__(
        self,
        message: str,
        errors: Optional[list[str]] = None,
        warnings: Optional[list[str]] = None,
        **context,
    ):
        super().__init__(message, **context)
        self.errors = list(errors or [])
        self.warnings = list(warnings or [])

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["errors"] = self.errors
        data["warnings"] = self.warnings
        return data


class CapacityExceededError(EngineError):
    """No configured crew size can carry the requested load."""

    status_code = 422

    def __init__(
        self,
        message: str,
        volume_shortfall: Decimal,
        weight_shortfall: Decimal,
        largest_crew_size: Optional[int] = None,
        **context,
    ):
        super().__init__(message, **context)
        self.volume_shortfall = volume_shortfall
        self.weight_shortfall = weight_shortfall
        self.largest_crew_size = largest_crew_size

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            "volume_shortfall": str(self.volume_shortfall),
            "weight_shortfall": str(self.weight_shortfall),
            "largest_crew_size": self.largest_crew_size,
        })
        return data


class InvalidEstimateRequestError(EngineError):
    """The estimate request itself is not priceable."""

    status_code = 422

    def __init__(self, message: str, errors: Optional[list[str]] = None, **context):
        super().__init__(message, **context)
        self.errors = list(errors or [])

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["errors"] = self.errors
        return data
