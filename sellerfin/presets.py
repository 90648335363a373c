from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from sellerfin.models import CalculatorConfig, TierConfig

TIER_ORDER = ("owner_favored", "balanced", "buyer_favored")

TIER_LABELS = {
    "owner_favored": "Max Owner Favored",
    "balanced": "Balanced",
    "buyer_favored": "Max Buyer Favored",
}

DEFAULT_OFFERS = {
    "owner_favored": TierConfig(
        appreciation_profit_fixed=30000.0,
        entry_fee_max_percent=22.5,
        net_rental_yield_range=(15.0, 17.0),
        balloon_period=5,
        price_markup=0.10,
    ),
    "balanced": TierConfig(
        appreciation_profit_fixed=40000.0,
        entry_fee_max_percent=20.0,
        net_rental_yield_range=(17.0, 20.0),
        balloon_period=6,
        price_markup=0.05,
    ),
    "buyer_favored": TierConfig(
        appreciation_profit_fixed=60000.0,
        entry_fee_max_percent=20.0,
        net_rental_yield_range=(20.0, 30.0),
        balloon_period=7,
        price_markup=0.0,
    ),
}

DEFAULT_CONFIG = CalculatorConfig(offers=DEFAULT_OFFERS)

# Amortization search: loan-size caps on the longest term, rent floors on the
# shortest, and the share of rent the payment may consume.
LOAN_SIZE_MAX_YEARS = ((50000.0, 15), (100000.0, 25), (200000.0, 30))
RENT_MIN_YEARS = ((4000.0, 5), (2500.0, 3))
MAX_PAYMENT_SHARE_OF_RENT = 0.6
NEIGHBOR_SPAN = 2

# Offer score weights and yield tolerance around the tier band.
SCORE_WEIGHTS = {"yield": 0.70, "cashflow": 0.20, "amortization": 0.10}
YIELD_DEVIATION_ALLOWANCE = 2.0

# Viability classifier thresholds.
VIABILITY = {
    "min_cash_flow": 100.0,
    "recommended_cash_flow": 200.0,
    "yield_shortfall_limit": 5.0,
    "low_down_payment_percent": 3.0,
    "long_amortization_years": 35.0,
}

# Field-range validator applied to edited snapshots. The down payment band and
# the longest amortization come from the config.
VALIDATION_LIMITS = {
    "entry_fee_percent_max": 20.0,
    "min_amortization_years": 1.0,
    "min_cash_flow": 100.0,
}

# Starting point of a snapshot built straight from property data.
SNAPSHOT_DEFAULTS = {"down_payment_percent": 5.0, "amortization_years": 20.0}

FIELD_METADATA: Dict[str, Dict[str, Any]] = {
    "offer_price": {"label": "Offer Price", "format": "currency", "step": 1000},
    "down_payment_percent": {"label": "Down Payment %", "format": "percent", "min": 5, "max": 10, "step": 0.5},
    "down_payment": {"label": "Down Payment", "format": "currency", "step": 100},
    "entry_fee_percent": {"label": "Entry Fee %", "format": "percent", "max": 20, "step": 0.5},
    "entry_fee_amount": {"label": "Entry Fee", "format": "currency", "step": 100},
    "amortization_years": {"label": "Amortization", "format": "years", "min": 1, "max": 40, "step": 1},
    "monthly_payment": {"label": "Monthly Payment", "format": "currency", "step": 10},
    "balloon_period": {"label": "Balloon Period", "format": "years", "min": 1, "max": 10, "step": 1},
    "rehab_cost": {"label": "Rehab Cost", "format": "currency", "min": 6000, "step": 500},
}


def load_config(path: Optional[Union[str, Path]] = None, **overrides: Any) -> CalculatorConfig:
    """Build a validated config from the defaults.

    ``path`` points at a JSON file holding any subset of the config keys; tier
    entries under ``offers`` are merged key by key onto the default tiers.
    Keyword ``overrides`` are applied last. Invalid values raise pydantic's
    ``ValidationError``.
    """

    data: Dict[str, Any] = {}
    if path is not None:
        with Path(path).open("r", encoding="utf-8") as f:
            data.update(json.load(f))
    data.update(overrides)

    base = DEFAULT_CONFIG.model_dump()
    offers = base.pop("offers")
    for key, tier in (data.pop("offers", None) or {}).items():
        offers[key] = {**offers.get(key, {}), **tier}
    base.update(data)
    base["offers"] = offers
    return CalculatorConfig.model_validate(base)
