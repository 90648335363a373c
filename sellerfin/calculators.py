from __future__ import annotations
import math

from sellerfin.presets import DEFAULT_CONFIG


def nz(x, default=0.0):
    """Return a float for ``x`` or a fallback value.

    Property figures arrive from valuation lookups where a missing estimate
    shows up as ``None`` or ``NaN``. Coercing them here keeps later math from
    breaking.
    """

    try:
        if x is None or (isinstance(x, float) and math.isnan(x)):
            return default
        return float(x)
    except (TypeError, ValueError):
        return default


def percent_of(part, whole):
    """``part`` as a percentage of ``whole``; ``0`` when ``whole`` is not positive."""

    w = nz(whole)
    if w <= 0:
        return 0.0
    return nz(part) / w * 100


def net_rental_yield(annual_net_income, entry_fee):
    """Annual net income over the cash needed to close, as a percentage."""

    if nz(entry_fee) <= 0:
        return 0.0
    return nz(annual_net_income) / nz(entry_fee) * 100


def appreciated_value(base_price, years, config=DEFAULT_CONFIG):
    """Value of ``base_price`` after ``years`` of compound appreciation."""

    return nz(base_price) * (1 + config.appreciation_per_year) ** nz(years)


def closing_cost(offer_price, config=DEFAULT_CONFIG):
    return nz(offer_price) * config.closing_cost_percent_of_offer


def entry_fee(down_payment, rehab_cost, offer_price, config=DEFAULT_CONFIG):
    """Total cash to close: down payment, rehab reserve, closing and assignment."""

    return nz(down_payment) + nz(rehab_cost) + closing_cost(offer_price, config) + config.assignment_fee


def non_debt_expenses(property_data, config=DEFAULT_CONFIG):
    """Monthly carrying costs excluding the seller-financed note."""

    rent = nz(property_data.monthly_rent)
    return (
        nz(property_data.monthly_property_tax)
        + nz(property_data.monthly_insurance)
        + nz(property_data.monthly_hoa_fee)
        + nz(property_data.monthly_other_fees)
        + rent * config.monthly_maintenance_rate
        + rent * config.monthly_prop_mgmt_rate
    )


def operating_expenses(property_data, monthly_payment, config=DEFAULT_CONFIG):
    """Monthly carrying costs including the note payment."""

    return nz(monthly_payment) + non_debt_expenses(property_data, config)


def monthly_cash_flow(property_data, monthly_payment, config=DEFAULT_CONFIG):
    return nz(property_data.monthly_rent) - operating_expenses(property_data, monthly_payment, config)


def monthly_payment(loan_amount, annual_rate_pct, years):
    """Monthly note payment that retires ``loan_amount`` over ``years``.

    Seller notes here are normally interest free, in which case the payment is
    the loan spread evenly over the term. ``years`` may be fractional because
    terms back-solved from an edited payment rarely land on whole years.
    """

    L = nz(loan_amount)
    r = nz(annual_rate_pct) / 100 / 12
    n = nz(years) * 12
    if n <= 0:
        return 0.0
    if abs(r) < 1e-9:
        return L / n
    return (r * L) / (1 - (1 + r) ** (-n))


def amortization_period(loan_amount, payment, annual_rate_pct=0.0):
    """Reverse of :func:`monthly_payment`: the term in years a payment implies.

    Returns ``inf`` when the payment is not positive or does not even cover the
    monthly interest; callers treat that as an invalid term.
    """

    L = nz(loan_amount)
    P = nz(payment)
    r = nz(annual_rate_pct) / 100 / 12
    if P <= 0:
        return math.inf
    if abs(r) < 1e-9:
        return L / (P * 12)
    if P <= r * L:
        return math.inf
    return -math.log(1 - r * L / P) / math.log(1 + r) / 12


def balloon_figures(loan_amount, payment, balloon_years, annual_rate_pct=0.0):
    """Principal retired by the balloon date and the balance then due.

    Returns ``(principal_paid, balloon_payment)``; principal paid never exceeds
    the loan and never goes negative.
    """

    L = nz(loan_amount)
    P = nz(payment)
    k = nz(balloon_years) * 12
    r = nz(annual_rate_pct) / 100 / 12
    if abs(r) < 1e-9:
        paid = P * k
    else:
        growth = (1 + r) ** k
        paid = L - (L * growth - P * (growth - 1) / r)
    paid = max(0.0, min(paid, L))
    return paid, max(0.0, L - paid)
