"""Edit-and-recompute engine for offer snapshots.

A snapshot is never changed in place. :func:`edit_field` applies one edited
value and walks that field's fixed recompute chain, then refreshes cash flow,
returns, viability and validation, and hands back a new snapshot. Because each
step is a pure function of the previous snapshot, a list of edits can be
replayed to rebuild any point in an editing session.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Tuple

from core.rules import classify, evaluate_viability, validate_snapshot
from sellerfin.calculators import (
    amortization_period,
    appreciated_value,
    balloon_figures,
    closing_cost,
    monthly_payment,
    net_rental_yield,
    non_debt_expenses,
    percent_of,
)
from sellerfin.models import CalculatorConfig, OfferResult, OfferSnapshot, PropertyData
from sellerfin.presets import DEFAULT_CONFIG, FIELD_METADATA, SNAPSHOT_DEFAULTS

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "offer_price",
    "down_payment_percent",
    "down_payment",
    "entry_fee_percent",
    "entry_fee_amount",
    "amortization_years",
    "monthly_payment",
    "balloon_period",
    "rehab_cost",
)

Values = Dict[str, Any]


def _entry_fee_total(v: Values) -> float:
    return v["down_payment"] + v["rehab_cost"] + v["closing_cost"] + v["assignment_fee"]


def _payment(v: Values, config: CalculatorConfig) -> float:
    return monthly_payment(v["loan_amount"], config.annual_interest_rate, v["amortization_years"])


def _balloon(v: Values, config: CalculatorConfig) -> None:
    v["principal_paid"], v["balloon_payment"] = balloon_figures(
        v["loan_amount"], v["monthly_payment"], v["balloon_period"], config.annual_interest_rate
    )


def _appreciation(v: Values, property_data: PropertyData, config: CalculatorConfig) -> None:
    v["appreciation_profit"] = (
        appreciated_value(property_data.listed_price, v["balloon_period"], config) - v["offer_price"]
    )


def _from_offer_price(v: Values, property_data: PropertyData, config: CalculatorConfig) -> None:
    v["closing_cost"] = v["offer_price"] * v["closing_cost_percent"]
    v["down_payment"] = v["offer_price"] * (v["down_payment_percent"] / 100)
    v["loan_amount"] = v["offer_price"] - v["down_payment"]
    v["entry_fee_amount"] = _entry_fee_total(v)
    v["entry_fee_percent"] = percent_of(v["entry_fee_amount"], v["offer_price"])
    v["monthly_payment"] = _payment(v, config)
    _balloon(v, config)
    _appreciation(v, property_data, config)


def _from_down_payment_percent(v: Values, property_data: PropertyData, config: CalculatorConfig) -> None:
    v["down_payment"] = v["offer_price"] * (v["down_payment_percent"] / 100)
    _after_down_payment(v, config)


def _from_down_payment(v: Values, property_data: PropertyData, config: CalculatorConfig) -> None:
    v["down_payment_percent"] = percent_of(v["down_payment"], v["offer_price"])
    _after_down_payment(v, config)


def _after_down_payment(v: Values, config: CalculatorConfig) -> None:
    v["loan_amount"] = v["offer_price"] - v["down_payment"]
    v["entry_fee_amount"] = _entry_fee_total(v)
    v["entry_fee_percent"] = percent_of(v["entry_fee_amount"], v["offer_price"])
    v["monthly_payment"] = _payment(v, config)
    _balloon(v, config)


def _from_entry_fee_percent(v: Values, property_data: PropertyData, config: CalculatorConfig) -> None:
    v["entry_fee_amount"] = v["offer_price"] * (v["entry_fee_percent"] / 100)
    _after_entry_fee(v, config)


def _from_entry_fee_amount(v: Values, property_data: PropertyData, config: CalculatorConfig) -> None:
    v["entry_fee_percent"] = percent_of(v["entry_fee_amount"], v["offer_price"])
    _after_entry_fee(v, config)


def _after_entry_fee(v: Values, config: CalculatorConfig) -> None:
    # back-solve the down payment from the other entry fee components
    v["down_payment"] = v["entry_fee_amount"] - v["rehab_cost"] - v["closing_cost"] - v["assignment_fee"]
    v["down_payment_percent"] = percent_of(v["down_payment"], v["offer_price"])
    v["loan_amount"] = v["offer_price"] - v["down_payment"]
    v["monthly_payment"] = _payment(v, config)
    _balloon(v, config)


def _from_amortization(v: Values, property_data: PropertyData, config: CalculatorConfig) -> None:
    v["monthly_payment"] = _payment(v, config)
    _balloon(v, config)


def _from_monthly_payment(v: Values, property_data: PropertyData, config: CalculatorConfig) -> None:
    v["amortization_years"] = amortization_period(
        v["loan_amount"], v["monthly_payment"], config.annual_interest_rate
    )
    _balloon(v, config)


def _from_balloon_period(v: Values, property_data: PropertyData, config: CalculatorConfig) -> None:
    _balloon(v, config)
    _appreciation(v, property_data, config)


def _from_rehab_cost(v: Values, property_data: PropertyData, config: CalculatorConfig) -> None:
    v["rehab_cost"] = max(v["rehab_cost"], config.rehab_cost_min)
    v["entry_fee_amount"] = _entry_fee_total(v)
    v["entry_fee_percent"] = percent_of(v["entry_fee_amount"], v["offer_price"])


HANDLERS: Dict[str, Callable[[Values, PropertyData, CalculatorConfig], None]] = {
    "offer_price": _from_offer_price,
    "down_payment_percent": _from_down_payment_percent,
    "down_payment": _from_down_payment,
    "entry_fee_percent": _from_entry_fee_percent,
    "entry_fee_amount": _from_entry_fee_amount,
    "amortization_years": _from_amortization,
    "monthly_payment": _from_monthly_payment,
    "balloon_period": _from_balloon_period,
    "rehab_cost": _from_rehab_cost,
}


def _finalize(v: Values, property_data: PropertyData, config: CalculatorConfig) -> OfferSnapshot:
    """Cash flow and returns last, then viability and validation."""

    v["monthly_rent"] = property_data.monthly_rent
    v["monthly_expenses"] = non_debt_expenses(property_data, config)
    v["monthly_cash_flow"] = v["monthly_rent"] - v["monthly_expenses"] - v["monthly_payment"]
    v["annual_net_income"] = v["monthly_cash_flow"] * 12
    v["net_rental_yield"] = net_rental_yield(v["annual_net_income"], v["entry_fee_amount"])

    v["deal_viability"], v["viability_reasons"] = classify(
        evaluate_viability(
            v["offer_key"],
            v["down_payment"],
            v["down_payment_percent"],
            v["monthly_cash_flow"],
            v["net_rental_yield"],
            v["amortization_years"],
            config,
        )
    )
    # validation looks at the same numbers the caller will see
    draft = OfferSnapshot.model_construct(**v)
    errors = [r.message for r in validate_snapshot(draft, config)]
    v["validation_errors"] = errors
    v["is_valid"] = not errors
    return OfferSnapshot(**v)


def edit_field(
    snapshot: OfferSnapshot,
    field: str,
    value: float,
    property_data: PropertyData,
    config: CalculatorConfig = DEFAULT_CONFIG,
) -> OfferSnapshot:
    """Apply one edit and return the recomputed snapshot.

    Out-of-range values are accepted; the violations come back in
    ``validation_errors``. Only names in ``EDITABLE_FIELDS`` may be edited.
    """

    handler = HANDLERS.get(field)
    if handler is None:
        raise ValueError(f"{field!r} is not an editable field")

    v = snapshot.model_dump()
    v[field] = float(value)
    handler(v, property_data, config)
    logger.debug("edit %s: %r -> %r", field, getattr(snapshot, field), v[field])
    return _finalize(v, property_data, config)


def create_snapshot(
    property_data: PropertyData, offer_key: str, config: CalculatorConfig = DEFAULT_CONFIG
) -> OfferSnapshot:
    """Starting snapshot for a tier at the default down payment and term."""

    tier = config.tier(offer_key)
    price = property_data.listed_price * (1 + tier.price_markup)
    v: Values = {
        "offer_key": offer_key,
        "offer_price": price,
        "down_payment_percent": SNAPSHOT_DEFAULTS["down_payment_percent"],
        "amortization_years": SNAPSHOT_DEFAULTS["amortization_years"],
        "balloon_period": tier.balloon_period,
        "rehab_cost": config.rehab_cost_min,
        "closing_cost_percent": config.closing_cost_percent_of_offer,
        "assignment_fee": config.assignment_fee,
    }
    _from_offer_price(v, property_data, config)
    return _finalize(v, property_data, config)


def snapshot_from_offer(
    offer: OfferResult, property_data: PropertyData, config: CalculatorConfig = DEFAULT_CONFIG
) -> OfferSnapshot:
    """Editable snapshot seeded from an optimizer result."""

    v: Values = {
        "offer_key": offer.offer_key,
        "offer_price": offer.final_offer_price,
        "down_payment_percent": offer.down_payment_percent,
        "down_payment": offer.down_payment,
        "entry_fee_percent": offer.final_entry_fee_percent,
        "entry_fee_amount": offer.final_entry_fee_amount,
        "loan_amount": offer.loan_amount,
        "amortization_years": offer.amortization_years,
        "monthly_payment": offer.monthly_payment,
        "balloon_period": offer.balloon_period,
        "rehab_cost": offer.rehab_cost,
        "closing_cost_percent": config.closing_cost_percent_of_offer,
        "closing_cost": closing_cost(offer.final_offer_price, config),
        "assignment_fee": config.assignment_fee,
        "principal_paid": offer.principal_paid,
        "balloon_payment": offer.balloon_payment,
        "appreciation_profit": offer.appreciation_profit,
    }
    return _finalize(v, property_data, config)


def field_metadata(field: str) -> Dict[str, Any]:
    """Label, display format and input limits for an editable field."""

    return dict(FIELD_METADATA.get(field, {"label": field, "format": "currency"}))


def entry_fee_breakdown(snapshot: OfferSnapshot) -> Dict[str, float]:
    return {
        "down_payment": snapshot.down_payment,
        "rehab_cost": snapshot.rehab_cost,
        "closing_cost": snapshot.closing_cost,
        "assignment_fee": snapshot.assignment_fee,
        "total": snapshot.entry_fee_amount,
    }


def recommended_down_payment_range(
    offer_price: float, config: CalculatorConfig = DEFAULT_CONFIG
) -> Tuple[float, float]:
    lo, hi = config.down_payment_percent_range
    return offer_price * lo / 100, offer_price * hi / 100
