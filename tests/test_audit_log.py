from core.audit import EditLog
from core.dynamic import create_snapshot, edit_field
from sellerfin.models import PropertyData

PROPERTY = PropertyData(
    listed_price=87000, monthly_rent=1150, monthly_property_tax=95,
    monthly_insurance=80, monthly_hoa_fee=0, monthly_other_fees=0,
)


def _log():
    return EditLog(create_snapshot(PROPERTY, "owner_favored"), PROPERTY)


def test_apply_records_old_and_new():
    log = _log()
    start_dp = log.current.down_payment_percent
    log.apply("down_payment_percent", 7)
    entries = log.as_dict()
    assert len(entries) == 1
    assert entries[0]["field"] == "down_payment_percent"
    assert entries[0]["old"] == start_dp
    assert entries[0]["new"] == 7
    assert log.current.down_payment_percent == 7


def test_undo_redo_replays_edits():
    log = _log()
    first = log.apply("down_payment_percent", 7)
    second = log.apply("amortization_years", 12)
    assert log.undo() == first
    assert log.undo() == log.initial
    assert not log.can_undo()
    assert log.redo() == first
    assert log.redo() == second
    assert not log.can_redo()


def test_new_edit_drops_redo_history():
    log = _log()
    log.apply("down_payment_percent", 7)
    log.apply("amortization_years", 12)
    log.undo()
    log.apply("balloon_period", 3)
    assert not log.can_redo()
    assert [e["field"] for e in log.as_dict()] == ["down_payment_percent", "balloon_period"]


def test_replay_prefix_matches_manual_edits():
    log = _log()
    log.apply("offer_price", 99000)
    log.apply("entry_fee_percent", 19)
    manual = edit_field(log.initial, "offer_price", 99000, PROPERTY)
    assert log.replay(1) == manual
    assert log.replay() == log.current


def test_recorded_value_matches_snapshot_type():
    log = _log()
    log.apply("amortization_years", 12)
    entry = log.as_dict()[0]
    assert isinstance(entry["new"], float)
    assert entry["new"] == log.current.amortization_years
