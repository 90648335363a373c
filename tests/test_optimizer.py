import pytest

from core.optimizer import (
    amortization_bounds,
    amortization_score,
    cashflow_score,
    compute_all_offers,
    compute_offer,
    down_payment_grid,
    find_optimal_amortization,
    offer_score,
    yield_score,
)
from core.rules import classify, evaluate_viability
from sellerfin.calculators import entry_fee, monthly_cash_flow, monthly_payment, net_rental_yield
from sellerfin.models import PropertyData
from sellerfin.presets import DEFAULT_CONFIG, TIER_ORDER, load_config


def _property(price, rent, tax=0.0, insurance=0.0, hoa=0.0, other=0.0):
    return PropertyData(
        listed_price=price, monthly_rent=rent, monthly_property_tax=tax,
        monthly_insurance=insurance, monthly_hoa_fee=hoa, monthly_other_fees=other,
    )


PROPERTY_87K = _property(87000, 1150, tax=95, insurance=80)
PROPERTY_79K = _property(79900, 1514, insurance=91.67, other=150)


def test_amortization_bounds_rules():
    # $90,915 loan: 25-year cap, 60%-of-rent rule lifts the floor to 11
    assert amortization_bounds(90915, 1150) == (11, 25)
    # small loan and high rent
    assert amortization_bounds(40000, 3000) == (3, 15)
    # large loan, no size cap
    assert amortization_bounds(300000, 4500) == (10, 40)


def test_amortization_bounds_extension_and_clamp():
    # rent rule wants 42 years, cap of 30 is stretched to the 40 ceiling
    assert amortization_bounds(150000, 500) == (40, 40)
    # no rent: nothing is affordable, search only the ceiling
    assert amortization_bounds(90000, 0) == (40, 40)
    # stretched five years but still under the ceiling
    assert amortization_bounds(40000, 200) == (28, 33)


def test_yield_score_regions():
    band = (15, 17)
    assert yield_score(16, band) == pytest.approx(100)
    assert yield_score(15, band) == pytest.approx(92.5)
    assert yield_score(14, band) == pytest.approx(77.5)
    assert yield_score(12, band) == pytest.approx(40)
    assert yield_score(5, band) == 0.0
    assert yield_score(18, band) == pytest.approx(97.5)
    assert yield_score(19, band) == pytest.approx(100)
    assert yield_score(24, band) == pytest.approx(80 + 20 * 2.718281828 ** -1)


def test_cashflow_and_amortization_scores():
    assert cashflow_score(50) == 0.0
    assert cashflow_score(150) == pytest.approx(45)
    assert cashflow_score(300) == pytest.approx(70)
    assert cashflow_score(500) == pytest.approx(90)
    assert cashflow_score(1000) == 100.0
    assert amortization_score(10) == pytest.approx(75)
    assert amortization_score(40) == 0.0
    assert amortization_score(50) == 0.0


def test_offer_score_weights():
    assert offer_score(16, 300, 10, (15, 17)) == pytest.approx(0.7 * 100 + 0.2 * 70 + 0.1 * 75)


def test_down_payment_grid():
    grid = down_payment_grid()
    assert grid[0] == 5.0 and grid[-1] == 10.0
    assert len(grid) == 11


def test_yield_rises_with_longer_amortization():
    loan, fee = 90915.0, 17699.0
    yields = []
    for years in range(1, 41):
        payment = monthly_payment(loan, 0, years)
        yields.append(net_rental_yield(monthly_cash_flow(PROPERTY_87K, payment) * 12, fee))
    assert all(a <= b for a, b in zip(yields, yields[1:]))


def test_find_optimal_amortization_owner_favored():
    # bisection visits 18, 14, 16, 15 (inside the band) and neighbors; 16 scores best
    tier = DEFAULT_CONFIG.tier("owner_favored")
    best = find_optimal_amortization(90915.0, 17699.0, PROPERTY_87K, tier)
    assert best["amortization_years"] == 16
    assert best["monthly_payment"] == pytest.approx(90915 / 192)
    assert best["net_rental_yield"] > tier.max_yield


def test_all_offers_in_tier_order():
    offers = compute_all_offers(PROPERTY_87K)
    assert [o.offer_key for o in offers] == list(TIER_ORDER)
    assert [o.offer_type for o in offers] == ["Max Owner Favored", "Balanced", "Max Buyer Favored"]


def test_87k_offers_hold_their_identities():
    for o in compute_all_offers(PROPERTY_87K):
        tier = DEFAULT_CONFIG.tier(o.offer_key)
        assert o.is_buyable
        assert o.final_offer_price == pytest.approx(87000 * (1 + tier.price_markup))
        assert 5.0 <= o.down_payment_percent <= 10.0
        assert o.final_entry_fee_percent <= tier.entry_fee_max_percent
        assert o.final_entry_fee_amount == pytest.approx(
            o.down_payment + o.rehab_cost + o.closing_cost + DEFAULT_CONFIG.assignment_fee
        )
        assert o.closing_cost == pytest.approx(o.final_offer_price * 0.02)
        assert o.loan_amount == pytest.approx(o.final_offer_price - o.down_payment)
        assert o.monthly_payment == pytest.approx(o.loan_amount / (o.amortization_years * 12))
        assert o.net_rental_yield == pytest.approx(o.final_monthly_cash_flow * 12 / o.final_entry_fee_amount * 100)
        assert o.final_coc_percent == o.net_rental_yield
        assert o.principal_paid == pytest.approx(min(o.monthly_payment * 12 * tier.balloon_period, o.loan_amount))
        assert o.balloon_payment == pytest.approx(o.loan_amount - o.principal_paid)
        assert o.appreciation_profit == pytest.approx(87000 * 1.045 ** tier.balloon_period - o.final_offer_price)
        expected = classify(evaluate_viability(
            o.offer_key, o.down_payment, o.down_payment_percent,
            o.final_monthly_cash_flow, o.net_rental_yield, o.amortization_years,
        ))
        assert (o.deal_viability, o.viability_reasons) == expected


def test_buyer_favored_only_fits_at_minimum_down():
    # 5.5% down already puts the entry fee at 20.14% of $87,000
    offer = compute_offer(PROPERTY_87K, "buyer_favored")
    assert offer.down_payment_percent == 5.0
    assert offer.final_entry_fee_percent == pytest.approx(17090 / 870)


def test_79k_buyability_follows_minimum_entry_fee():
    for o in compute_all_offers(PROPERTY_79K):
        tier = DEFAULT_CONFIG.tier(o.offer_key)
        price = 79900 * (1 + tier.price_markup)
        min_fee_pct = entry_fee(price * 0.05, 6000, price) / price * 100
        assert o.is_buyable == (min_fee_pct <= tier.entry_fee_max_percent)
    keys = {o.offer_key: o.is_buyable for o in compute_all_offers(PROPERTY_79K)}
    assert keys == {"owner_favored": True, "balanced": False, "buyer_favored": False}


def test_unbuyable_offer_shape():
    offers = compute_all_offers(_property(30000, 900, tax=50, insurance=50))
    for o in offers:
        assert not o.is_buyable
        assert o.deal_viability == "not_viable"
        assert o.unbuyable_reason
        assert o.viability_reasons == [o.unbuyable_reason]
        assert o.final_offer_price == 0
        assert o.monthly_payment == 0
        assert o.final_entry_fee_amount == 0
        assert o.rehab_cost == 6000


def test_tier_cap_comes_from_config():
    cfg = load_config(offers={"balanced": {"entry_fee_max_percent": 10}})
    offer = compute_offer(PROPERTY_87K, "balanced", cfg)
    assert not offer.is_buyable
    assert "above the 10% maximum" in offer.unbuyable_reason


def test_assignment_fee_comes_from_config():
    cfg = load_config(assignment_fee=2000)
    offer = compute_offer(PROPERTY_87K, "balanced", cfg)
    assert offer.final_entry_fee_amount == pytest.approx(
        offer.down_payment + 6000 + offer.closing_cost + 2000
    )


def test_unknown_tier_raises():
    with pytest.raises(ValueError):
        compute_offer(PROPERTY_87K, "seller_favored")


def test_compute_is_deterministic():
    assert compute_all_offers(PROPERTY_87K) == compute_all_offers(PROPERTY_87K)


def test_zero_price_listing_is_unbuyable():
    # fixed costs alone are an unbounded share of a $0 offer
    offers = compute_all_offers(_property(0, 1000))
    for o in offers:
        assert not o.is_buyable
        assert o.deal_viability == "not_viable"
        assert o.final_entry_fee_amount == 0
        assert "$11,000" in o.unbuyable_reason
