"""Offer search.

For each tier the optimizer walks a grid of down-payment percentages, drops
the ones whose entry fee breaks the tier cap, and for each survivor bisects
the amortization term toward the tier's net-rental-yield band. Candidates are
ranked by :func:`offer_score`; the best one becomes the tier's offer.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from core.rules import classify, evaluate_viability
from sellerfin.calculators import (
    appreciated_value,
    balloon_figures,
    closing_cost,
    entry_fee,
    monthly_cash_flow,
    monthly_payment,
    net_rental_yield,
    percent_of,
)
from sellerfin.models import CalculatorConfig, OfferResult, PropertyData, TierConfig
from sellerfin.presets import (
    DEFAULT_CONFIG,
    LOAN_SIZE_MAX_YEARS,
    MAX_PAYMENT_SHARE_OF_RENT,
    NEIGHBOR_SPAN,
    RENT_MIN_YEARS,
    SCORE_WEIGHTS,
    TIER_LABELS,
    TIER_ORDER,
    YIELD_DEVIATION_ALLOWANCE,
)

logger = logging.getLogger(__name__)


def amortization_bounds(
    loan_amount: float, monthly_rent: float, config: CalculatorConfig = DEFAULT_CONFIG
) -> Tuple[int, int]:
    """Range of whole years worth searching for a loan.

    Small loans do not need long terms, high rents can carry short ones, and
    the payment may never exceed 60% of rent. If that last rule pushes the
    minimum past the maximum, the maximum is stretched five years (up to the
    configured ceiling) and the minimum is then held at the maximum.
    """

    ceiling = int(config.max_amortization_years)
    min_years, max_years = 1, ceiling

    for limit, years in LOAN_SIZE_MAX_YEARS:
        if loan_amount < limit:
            max_years = min(years, max_years)
            break

    for rent_floor, years in RENT_MIN_YEARS:
        if monthly_rent > rent_floor:
            min_years = max(years, min_years)
            break

    max_payment = monthly_rent * MAX_PAYMENT_SHARE_OF_RENT
    if max_payment > 0:
        min_years = max(min_years, math.ceil(loan_amount / (max_payment * 12)))
    else:
        min_years = ceiling

    if min_years > max_years:
        max_years = min(ceiling, min_years + 5)
    return min(min_years, max_years), max_years


def yield_score(net_yield: float, yield_range: Tuple[float, float]) -> float:
    min_yield, max_yield = yield_range
    dev = YIELD_DEVIATION_ALLOWANCE
    if net_yield < min_yield - dev:
        return max(0.0, 50 * (1 - (min_yield - net_yield - dev) / 5))
    if net_yield < min_yield:
        return 85 - ((min_yield - net_yield) / dev) * 15
    if net_yield > max_yield + dev:
        return min(100.0, 80 + 20 * math.exp(-(net_yield - max_yield - dev) / 5))
    if net_yield > max_yield:
        return 95 + ((net_yield - max_yield) / dev) * 5
    band = max_yield - min_yield
    if band <= 0:
        return 100.0
    target = (min_yield + max_yield) / 2
    return 100 - (abs(net_yield - target) / band) * 15


def cashflow_score(cash_flow: float) -> float:
    if cash_flow < 100:
        return 0.0
    if cash_flow < 200:
        return 30 + (cash_flow - 100) * 0.3
    if cash_flow < 500:
        return 60 + (cash_flow - 200) * 0.1
    return min(100.0, 90 + (cash_flow - 500) * 0.02)


def amortization_score(years: float, config: CalculatorConfig = DEFAULT_CONFIG) -> float:
    return max(0.0, 100 - (years / config.max_amortization_years) * 100)


def offer_score(
    net_yield: float,
    cash_flow: float,
    years: float,
    yield_range: Tuple[float, float],
    config: CalculatorConfig = DEFAULT_CONFIG,
) -> float:
    """Weighted 0-100 score: mostly yield fit, then cash flow, then term length."""

    return (
        SCORE_WEIGHTS["yield"] * yield_score(net_yield, yield_range)
        + SCORE_WEIGHTS["cashflow"] * cashflow_score(cash_flow)
        + SCORE_WEIGHTS["amortization"] * amortization_score(years, config)
    )


def _probe(years, loan_amount, entry_fee_amount, property_data, tier, config) -> Dict[str, Any]:
    payment = monthly_payment(loan_amount, config.annual_interest_rate, years)
    cash_flow = monthly_cash_flow(property_data, payment, config)
    net_yield = net_rental_yield(cash_flow * 12, entry_fee_amount)
    return {
        "amortization_years": years,
        "monthly_payment": payment,
        "monthly_cash_flow": cash_flow,
        "net_rental_yield": net_yield,
        "score": offer_score(net_yield, cash_flow, years, tier.net_rental_yield_range, config),
    }


def find_optimal_amortization(
    loan_amount: float,
    entry_fee_amount: float,
    property_data: PropertyData,
    tier: TierConfig,
    config: CalculatorConfig = DEFAULT_CONFIG,
) -> Dict[str, Any]:
    """Pick the best-scoring whole-year term for a fixed loan and entry fee.

    Longer terms mean smaller payments and therefore higher yield, so the
    bisection moves toward longer terms while the yield is under the band and
    toward shorter ones while it is over. Once a probe lands inside the band
    the search stops and scores the two terms on either side. The best probe
    seen anywhere along the way wins, not just the last midpoint.
    """

    min_yield, max_yield = tier.net_rental_yield_range
    min_years, max_years = amortization_bounds(loan_amount, property_data.monthly_rent, config)

    best: Optional[Dict[str, Any]] = None
    low, high = min_years, max_years
    while low <= high:
        mid = (low + high) // 2
        probe = _probe(mid, loan_amount, entry_fee_amount, property_data, tier, config)
        if best is None or probe["score"] > best["score"]:
            best = probe

        if probe["net_rental_yield"] < min_yield:
            low = mid + 1
        elif probe["net_rental_yield"] > max_yield:
            high = mid - 1
        else:
            for years in range(mid - NEIGHBOR_SPAN, mid + NEIGHBOR_SPAN + 1):
                if years == mid or years < min_years or years > max_years:
                    continue
                neighbor = _probe(years, loan_amount, entry_fee_amount, property_data, tier, config)
                if neighbor["score"] > best["score"]:
                    best = neighbor
            break

    logger.debug(
        "amortization search loan=%.2f bounds=(%d, %d) -> %d years, yield %.2f%%",
        loan_amount, min_years, max_years, best["amortization_years"], best["net_rental_yield"],
    )
    return best


def down_payment_grid(config: CalculatorConfig = DEFAULT_CONFIG) -> List[float]:
    lo, hi = config.down_payment_percent_range
    steps = int(round((hi - lo) / config.down_payment_step))
    return [lo + i * config.down_payment_step for i in range(steps + 1)]


def find_optimal_down_payment(
    offer_price: float,
    property_data: PropertyData,
    tier: TierConfig,
    config: CalculatorConfig = DEFAULT_CONFIG,
) -> Optional[Dict[str, Any]]:
    """Best down-payment percentage for a tier, or ``None`` if none fits the cap."""

    if offer_price <= 0:
        return None
    rehab = config.rehab_cost_min
    best: Optional[Dict[str, Any]] = None
    for dp_percent in down_payment_grid(config):
        down_payment = offer_price * (dp_percent / 100)
        fee = entry_fee(down_payment, rehab, offer_price, config)
        fee_percent = percent_of(fee, offer_price)
        if fee_percent > tier.entry_fee_max_percent:
            continue

        choice = find_optimal_amortization(offer_price - down_payment, fee, property_data, tier, config)
        if best is None or choice["score"] > best["score"]:
            best = {
                **choice,
                "down_payment_percent": dp_percent,
                "down_payment": down_payment,
                "entry_fee_amount": fee,
                "entry_fee_percent": fee_percent,
            }
    return best


def offer_price_for(property_data: PropertyData, tier: TierConfig) -> float:
    return property_data.listed_price * (1 + tier.price_markup)


def _unbuyable(offer_key: str, offer_price: float, config: CalculatorConfig) -> OfferResult:
    tier = config.tier(offer_key)
    lo = config.down_payment_percent_range[0]
    min_fee = entry_fee(offer_price * lo / 100, config.rehab_cost_min, offer_price, config)
    if offer_price <= 0:
        reason = (
            f"Offer price is not positive; fixed costs of ${min_fee:,.0f} exceed "
            f"the {tier.entry_fee_max_percent:g}% entry fee maximum"
        )
    else:
        reason = (
            f"Entry fee at {lo:g}% down is {percent_of(min_fee, offer_price):.1f}% of the offer price, "
            f"above the {tier.entry_fee_max_percent:g}% maximum"
        )
    logger.info("%s offer is unbuyable: %s", TIER_LABELS[offer_key], reason)
    return OfferResult(
        offer_type=TIER_LABELS[offer_key],
        offer_key=offer_key,
        is_buyable=False,
        unbuyable_reason=reason,
        deal_viability="not_viable",
        viability_reasons=[reason],
        rehab_cost=config.rehab_cost_min,
    )


def compute_offer(
    property_data: PropertyData, offer_key: str, config: CalculatorConfig = DEFAULT_CONFIG
) -> OfferResult:
    """Search and assemble the offer for a single tier."""

    tier = config.tier(offer_key)
    price = offer_price_for(property_data, tier)
    best = find_optimal_down_payment(price, property_data, tier, config)
    if best is None:
        return _unbuyable(offer_key, price, config)

    rehab = config.rehab_cost_min
    closing = closing_cost(price, config)
    fee = best["entry_fee_amount"]
    down_payment = best["down_payment"]
    loan = price - down_payment
    payment = best["monthly_payment"]
    principal_paid, balloon_payment = balloon_figures(
        loan, payment, tier.balloon_period, config.annual_interest_rate
    )
    years = best["amortization_years"]
    cash_flow = best["monthly_cash_flow"]
    net_yield = best["net_rental_yield"]
    dp_percent = best["down_payment_percent"]

    viability, reasons = classify(
        evaluate_viability(offer_key, down_payment, dp_percent, cash_flow, net_yield, years, config)
    )
    logger.debug(
        "%s: price=%.2f down=%.1f%% entry fee=%.1f%% years=%d score=%.2f viability=%s",
        TIER_LABELS[offer_key], price, dp_percent, best["entry_fee_percent"], years, best["score"], viability,
    )

    return OfferResult(
        offer_type=TIER_LABELS[offer_key],
        offer_key=offer_key,
        is_buyable=True,
        deal_viability=viability,
        viability_reasons=reasons,
        final_offer_price=price,
        down_payment=down_payment,
        down_payment_percent=dp_percent,
        final_entry_fee_amount=fee,
        final_entry_fee_percent=best["entry_fee_percent"],
        closing_cost=closing,
        loan_amount=loan,
        monthly_payment=payment,
        amortization_years=years,
        final_monthly_cash_flow=cash_flow,
        net_rental_yield=net_yield,
        final_coc_percent=net_yield,
        balloon_period=tier.balloon_period,
        principal_paid=principal_paid,
        balloon_payment=balloon_payment,
        appreciation_profit=appreciated_value(property_data.listed_price, tier.balloon_period, config) - price,
        rehab_cost=rehab,
    )


def compute_all_offers(
    property_data: PropertyData, config: CalculatorConfig = DEFAULT_CONFIG
) -> List[OfferResult]:
    """One offer per tier: owner favored, balanced, buyer favored."""

    return [compute_offer(property_data, key, config) for key in TIER_ORDER]
