from __future__ import annotations

from typing import Dict, List, Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

TierKey = Literal["owner_favored", "balanced", "buyer_favored"]
DealViability = Literal["good", "marginal", "not_viable"]


class FrozenModel(BaseModel):
    """Immutable record; edits build a new instance from ``model_dump``."""

    model_config = ConfigDict(frozen=True)


class PropertyData(FrozenModel):
    listed_price: float = Field(ge=0)
    monthly_rent: float = Field(ge=0)
    monthly_property_tax: float = Field(default=0.0, ge=0)
    monthly_insurance: float = Field(default=0.0, ge=0)
    monthly_hoa_fee: float = Field(default=0.0, ge=0)
    monthly_other_fees: float = Field(default=0.0, ge=0)


class TierConfig(FrozenModel):
    appreciation_profit_fixed: float = 0.0
    entry_fee_max_percent: float = 20.0
    net_rental_yield_range: Tuple[float, float] = (15.0, 17.0)
    balloon_period: int = 5
    price_markup: float = 0.0

    @field_validator("net_rental_yield_range")
    @classmethod
    def _ordered_band(cls, v: Tuple[float, float]) -> Tuple[float, float]:
        if v[0] > v[1]:
            raise ValueError("net_rental_yield_range must be (min, max)")
        return v

    @property
    def min_yield(self) -> float:
        return self.net_rental_yield_range[0]

    @property
    def max_yield(self) -> float:
        return self.net_rental_yield_range[1]


class CalculatorConfig(FrozenModel):
    annual_interest_rate: float = 0.0
    assignment_fee: float = Field(default=5000.0, ge=0)
    closing_cost_percent_of_offer: float = Field(default=0.02, ge=0)
    monthly_maintenance_rate: float = Field(default=0.10, ge=0)
    monthly_prop_mgmt_rate: float = Field(default=0.10, ge=0)
    appreciation_per_year: float = 0.045
    max_amortization_years: int = Field(default=40, ge=1)
    rehab_cost_min: float = Field(default=6000.0, ge=0)
    down_payment_percent_range: Tuple[float, float] = (5.0, 10.0)
    down_payment_step: float = Field(default=0.5, gt=0)
    offers: Dict[str, TierConfig] = Field(default_factory=dict)

    def tier(self, key: str) -> TierConfig:
        try:
            return self.offers[key]
        except KeyError:
            raise ValueError(f"unknown offer tier: {key!r}") from None


class OfferResult(FrozenModel):
    offer_type: str
    offer_key: TierKey
    is_buyable: bool
    unbuyable_reason: str = ""
    deal_viability: DealViability = "not_viable"
    viability_reasons: List[str] = Field(default_factory=list)
    final_offer_price: float = 0.0
    down_payment: float = 0.0
    down_payment_percent: float = 0.0
    final_entry_fee_amount: float = 0.0
    final_entry_fee_percent: float = 0.0
    closing_cost: float = 0.0
    loan_amount: float = 0.0
    monthly_payment: float = 0.0
    amortization_years: float = 0.0
    final_monthly_cash_flow: float = 0.0
    net_rental_yield: float = 0.0
    final_coc_percent: float = 0.0
    balloon_period: int = 0
    principal_paid: float = 0.0
    balloon_payment: float = 0.0
    appreciation_profit: float = 0.0
    rehab_cost: float = 0.0


class OfferSnapshot(FrozenModel):
    """Editable view of an offer.

    Every field a user can change sits next to the fields derived from it, so a
    single edit can be propagated by :func:`core.dynamic.edit_field` into a new
    snapshot without touching the old one."""

    offer_key: TierKey

    # primary inputs
    offer_price: float
    down_payment_percent: float
    entry_fee_percent: float
    amortization_years: float
    balloon_period: float

    # derived from the inputs above
    down_payment: float
    entry_fee_amount: float
    loan_amount: float
    monthly_payment: float

    # fixed costs
    rehab_cost: float
    closing_cost_percent: float
    closing_cost: float
    assignment_fee: float

    # cash flow
    monthly_rent: float
    monthly_expenses: float
    monthly_cash_flow: float

    # returns
    annual_net_income: float
    net_rental_yield: float

    # balloon
    principal_paid: float
    balloon_payment: float
    appreciation_profit: float

    deal_viability: DealViability = "not_viable"
    viability_reasons: List[str] = Field(default_factory=list)
    is_valid: bool = True
    validation_errors: List[str] = Field(default_factory=list)
