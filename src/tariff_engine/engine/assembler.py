"""
Estimate Assembler - totals, rounding, audit trail and the deterministic hash.

The hash is a SHA-256 over a frozen canonical encoding:

- JSON, keys sorted, compact separators, ASCII only
- Decimals as normalized plain strings ("550", "49.5", never "5.5E+1")
- dates as ISO-8601 strings, enums as their values
- sets as sorted lists, tuples as lists

covering the encoding version, the configuration id and version, every rate
value the calculation actually used, and the full request. ``generated_at``
is deliberately outside the hash. Changing anything in this encoding requires
bumping ``HASH_ENCODING_VERSION``.
"""
import hashlib
import json
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Iterable, Optional

from ..tariffs.configuration import RateConfiguration
from .models import AppliedRule, EstimateRequest, EstimateResult, LineItem, TraceStep

HASH_ENCODING_VERSION = "1"
CENT = Decimal("0.01")


def round_half_up(value: Decimal, places: Decimal = CENT) -> Decimal:
    return value.quantize(places, rounding=ROUND_HALF_UP)


def _canonical(value: Any) -> Any:
    if isinstance(value, bool) or value is None or isinstance(value, str):
        return value
    if isinstance(value, Enum):
        return _canonical(value.value)
    if isinstance(value, Decimal):
        return format(value.normalize(), 'f')
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return format(Decimal(str(value)).normalize(), 'f')
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _canonical(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted(_canonical(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    raise TypeError(f"Cannot canonicalize value of type {type(value).__name__}")


def canonical_json(payload: Any) -> str:
    """Order-stable JSON text for hashing."""
    return json.dumps(_canonical(payload), sort_keys=True, separators=(',', ':'), ensure_ascii=True)


def compute_deterministic_hash(
    configuration: RateConfiguration,
    request: EstimateRequest,
    resolved_rates: dict,
) -> str:
    payload = {
        "encoding": HASH_ENCODING_VERSION,
        "configuration": {"id": configuration.id, "version": configuration.version},
        "resolved_rates": resolved_rates,
        "request": request.to_canonical(),
    }
    return hashlib.sha256(canonical_json(payload).encode('ascii')).hexdigest()


class EstimateAssembler:

    def assemble(
        self,
        base_item: LineItem,
        surcharge_items: Iterable[LineItem],
        configuration: RateConfiguration,
        request: EstimateRequest,
        resolved_rates: dict,
        pricing_method: str,
        crew_size: int,
        capacity_note: str = "",
        warnings: Iterable[str] = (),
        trace: Iterable[TraceStep] = (),
        adjustment_items: Iterable[LineItem] = (),
        generated_at: Optional[datetime] = None,
    ) -> EstimateResult:
        """
        Build the immutable result.

        Line items keep full precision; rounding to cents happens exactly once,
        on the final sum.
        """
        line_items = [base_item, *surcharge_items, *adjustment_items]
        total = sum((item.amount for item in line_items), Decimal("0"))
        final_price = round_half_up(total)

        applied_rules = tuple(
            AppliedRule(
                rule_id=item.rule_id,
                rule_name=item.name,
                price_impact=item.amount,
                calculation_details=item.detail,
            )
            for item in line_items
        )

        steps = list(trace)
        steps.append(TraceStep("Total", f"{len(line_items)} line items, rounded half-up to cents", f"${final_price}"))

        return EstimateResult(
            final_price=final_price,
            breakdown=tuple(line_items),
            applied_rules=applied_rules,
            configuration_id=configuration.id,
            configuration_version=configuration.version,
            deterministic_hash=compute_deterministic_hash(configuration, request, resolved_rates),
            generated_at=generated_at or datetime.now(timezone.utc),
            pricing_method=pricing_method,
            crew_size=crew_size,
            capacity_note=capacity_note,
            warnings=tuple(warnings),
            trace=tuple(steps),
        )
