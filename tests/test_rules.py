from core.rules import RuleResult, classify, evaluate_viability, has_blocking


def _codes(**kw):
    args = dict(
        offer_key="owner_favored",
        down_payment=5000,
        down_payment_percent=5.0,
        monthly_cash_flow=300,
        net_rental_yield=16.0,
        amortization_years=20,
    )
    args.update(kw)
    return [r.code for r in evaluate_viability(**args)]


def test_good_deal_has_single_affirming_reason():
    res = evaluate_viability("owner_favored", 5000, 5.0, 300, 16.0, 20)
    assert res == []
    viability, reasons = classify(res)
    assert viability == "good"
    assert reasons == ["All metrics meet or exceed target thresholds"]


def test_negative_down_payment_wins_precedence():
    codes = _codes(down_payment=-10, monthly_cash_flow=20, net_rental_yield=0)
    assert codes == ["NEGATIVE_DOWN_PAYMENT"]


def test_low_cash_flow_is_not_viable():
    res = evaluate_viability("owner_favored", 5000, 5.0, 50, 4.0, 20)
    assert [r.code for r in res] == ["CASH_FLOW_TOO_LOW"]
    viability, reasons = classify(res)
    assert viability == "not_viable"
    assert "cash flow too low" in reasons[0]


def test_yield_far_below_tier_minimum():
    # owner favored minimum is 15%, so anything under 10% is out
    assert _codes(net_rental_yield=9.9) == ["YIELD_FAR_BELOW_THRESHOLD"]
    assert _codes(net_rental_yield=10.0) == ["YIELD_BELOW_THRESHOLD"]


def test_marginal_warnings_accumulate():
    res = evaluate_viability("owner_favored", 2000, 2.0, 150, 12.0, 36)
    assert [r.code for r in res] == [
        "LOW_DOWN_PAYMENT",
        "MARGINAL_CASH_FLOW",
        "YIELD_BELOW_THRESHOLD",
        "LONG_AMORTIZATION",
    ]
    viability, reasons = classify(res)
    assert viability == "marginal"
    assert len(reasons) == 4


def test_tier_band_changes_threshold():
    # 16% clears owner favored but is below buyer favored's 20% floor
    assert _codes(offer_key="owner_favored", net_rental_yield=16.0) == []
    assert _codes(offer_key="buyer_favored", net_rental_yield=16.0) == ["YIELD_BELOW_THRESHOLD"]


def test_has_blocking():
    warn = RuleResult(code="X", severity="warn", message="w")
    crit = RuleResult(code="Y", severity="critical", message="c")
    assert not has_blocking([warn])
    assert has_blocking([warn, crit])
