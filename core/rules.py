from __future__ import annotations
import math
from typing import Literal, List, Dict, Any, Tuple
from pydantic import BaseModel, Field

from sellerfin.models import CalculatorConfig, OfferSnapshot
from sellerfin.presets import DEFAULT_CONFIG, VALIDATION_LIMITS, VIABILITY


class RuleResult(BaseModel):
    code: str
    severity: Literal["info", "warn", "critical"]
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)


def evaluate_viability(
    offer_key: str,
    down_payment: float,
    down_payment_percent: float,
    monthly_cash_flow: float,
    net_rental_yield: float,
    amortization_years: float,
    config: CalculatorConfig = DEFAULT_CONFIG,
) -> List[RuleResult]:
    """Run the deal health rules for one offer.

    Critical rules are checked in order and the first one that fires ends the
    evaluation. Otherwise every warning that applies is returned.
    """

    min_yield = config.tier(offer_key).min_yield
    min_cf = VIABILITY["min_cash_flow"]
    shortfall = VIABILITY["yield_shortfall_limit"]

    if down_payment < 0:
        return [
            RuleResult(
                code="NEGATIVE_DOWN_PAYMENT",
                severity="critical",
                message="Negative down payment - deal requires more cash than available",
                context={"down_payment": down_payment},
            )
        ]
    if monthly_cash_flow < min_cf:
        return [
            RuleResult(
                code="CASH_FLOW_TOO_LOW",
                severity="critical",
                message=f"Monthly cash flow too low (${monthly_cash_flow:.0f}) - minimum ${min_cf:.0f} required",
                context={"actual": monthly_cash_flow, "limit": min_cf},
            )
        ]
    if net_rental_yield < min_yield - shortfall:
        return [
            RuleResult(
                code="YIELD_FAR_BELOW_THRESHOLD",
                severity="critical",
                message=(
                    f"Net rental yield ({net_rental_yield:.1f}%) is "
                    f"{min_yield - net_rental_yield:.1f}% below minimum threshold"
                ),
                context={"actual": net_rental_yield, "limit": min_yield},
            )
        ]

    res: List[RuleResult] = []

    if down_payment_percent < VIABILITY["low_down_payment_percent"]:
        res.append(
            RuleResult(
                code="LOW_DOWN_PAYMENT",
                severity="warn",
                message=f"Low down payment ({down_payment_percent:.1f}%) - less than 3% of offer price",
                context={"actual": down_payment_percent},
            )
        )

    if min_cf <= monthly_cash_flow < VIABILITY["recommended_cash_flow"]:
        res.append(
            RuleResult(
                code="MARGINAL_CASH_FLOW",
                severity="warn",
                message=f"Marginal cash flow (${monthly_cash_flow:.0f}/month) - minimum $200 recommended",
                context={"actual": monthly_cash_flow},
            )
        )

    if min_yield - shortfall <= net_rental_yield < min_yield:
        res.append(
            RuleResult(
                code="YIELD_BELOW_THRESHOLD",
                severity="warn",
                message=f"Net rental yield ({net_rental_yield:.1f}%) is below minimum threshold ({min_yield:g}%)",
                context={"actual": net_rental_yield, "limit": min_yield},
            )
        )

    if amortization_years > VIABILITY["long_amortization_years"]:
        res.append(
            RuleResult(
                code="LONG_AMORTIZATION",
                severity="warn",
                message=f"Very long amortization ({amortization_years:g} years) - payoff takes over 35 years",
                context={"actual": amortization_years},
            )
        )

    return res


def classify(res: List[RuleResult]) -> Tuple[str, List[str]]:
    """Collapse viability rule results into a rating and its reasons."""

    if has_blocking(res):
        return "not_viable", [r.message for r in res if r.severity == "critical"]
    if res:
        return "marginal", [r.message for r in res]
    return "good", ["All metrics meet or exceed target thresholds"]


def validate_snapshot(
    snapshot: OfferSnapshot, config: CalculatorConfig = DEFAULT_CONFIG
) -> List[RuleResult]:
    """Field-range checks for an edited snapshot. Nothing here raises."""

    res: List[RuleResult] = []
    dp_min, dp_max = config.down_payment_percent_range
    ef_max = VALIDATION_LIMITS["entry_fee_percent_max"]
    am_min = VALIDATION_LIMITS["min_amortization_years"]
    am_max = config.max_amortization_years
    cf_min = VALIDATION_LIMITS["min_cash_flow"]

    def fail(code: str, message: str, **context: Any) -> None:
        res.append(RuleResult(code=code, severity="critical", message=message, context=context))

    if snapshot.down_payment_percent < dp_min:
        fail("DOWN_PAYMENT_BELOW_MIN", f"Down payment must be at least {dp_min:g}%", actual=snapshot.down_payment_percent)
    if snapshot.down_payment_percent > dp_max:
        fail("DOWN_PAYMENT_ABOVE_MAX", f"Down payment cannot exceed {dp_max:g}%", actual=snapshot.down_payment_percent)

    if snapshot.entry_fee_percent > ef_max:
        fail("ENTRY_FEE_ABOVE_MAX", f"Entry fee cannot exceed {ef_max:g}%", actual=snapshot.entry_fee_percent)

    years = snapshot.amortization_years
    if not math.isfinite(years):
        fail("AMORTIZATION_UNDEFINED", "Amortization is undefined for a non-positive monthly payment")
    else:
        if years < am_min:
            fail("AMORTIZATION_BELOW_MIN", f"Amortization must be at least {am_min:g} year", actual=years)
        if years > am_max:
            fail("AMORTIZATION_ABOVE_MAX", f"Amortization cannot exceed {am_max:g} years", actual=years)

    if snapshot.monthly_cash_flow < cf_min:
        fail("CASH_FLOW_BELOW_MIN", f"Monthly cash flow must be at least ${cf_min:.0f}", actual=snapshot.monthly_cash_flow)

    if snapshot.down_payment < 0:
        fail("NEGATIVE_DOWN_PAYMENT", "Down payment cannot be negative", actual=snapshot.down_payment)

    return res


def has_blocking(res: List[RuleResult]) -> bool:
    return any(r.severity == "critical" for r in res)
