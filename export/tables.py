"""Tabular views of offers and snapshots."""
from __future__ import annotations
from typing import Iterable

import pandas as pd

from sellerfin.models import OfferResult, OfferSnapshot

OFFER_COLUMNS = {
    "offer_type": "Offer Type",
    "is_buyable": "Buyable",
    "deal_viability": "Viability",
    "final_offer_price": "Offer Price",
    "final_entry_fee_percent": "Entry Fee %",
    "final_entry_fee_amount": "Entry Fee $",
    "final_monthly_cash_flow": "Monthly Cash Flow",
    "monthly_payment": "Monthly Payment",
    "net_rental_yield": "Net Rental Yield %",
    "down_payment": "Down Payment",
    "down_payment_percent": "Down Payment %",
    "loan_amount": "Loan Amount",
    "amortization_years": "Amortization Years",
    "balloon_period": "Balloon Period",
    "principal_paid": "Principal Paid",
    "balloon_payment": "Balloon Payment",
    "appreciation_profit": "Appreciation Profit",
}


def offers_to_frame(offers: Iterable[OfferResult]) -> pd.DataFrame:
    """One row per offer with spreadsheet-style column names."""

    rows = [o.model_dump(include=set(OFFER_COLUMNS)) for o in offers]
    df = pd.DataFrame(rows, columns=list(OFFER_COLUMNS))
    return df.rename(columns=OFFER_COLUMNS)


def snapshot_to_frame(snapshot: OfferSnapshot) -> pd.DataFrame:
    """Field/value listing of a snapshot; list-valued fields are joined."""

    data = snapshot.model_dump()
    for key in ("viability_reasons", "validation_errors"):
        data[key] = "; ".join(data[key])
    return pd.DataFrame({"Field": list(data), "Value": list(data.values())})
