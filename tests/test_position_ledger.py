from decimal import Decimal

from fund_ledger.core.ledger.position_ledger import PositionLedger, calc_profit_rate, rescale_profit


def test_calc_profit_rate():
    assert calc_profit_rate(Decimal("110"), Decimal("10")) == Decimal("10.00")
    # 本金 <= 0 时按持有金额计算
    assert calc_profit_rate(Decimal("10"), Decimal("20")) == Decimal("200.00")
    assert calc_profit_rate(Decimal("0"), Decimal("0")) is None


def test_rescale_profit():
    assert rescale_profit(Decimal("100"), Decimal("1000"), Decimal("400")) == Decimal("40.00")
    assert rescale_profit(Decimal("-30"), Decimal("300"), Decimal("100")) == Decimal("-10.00")
    assert rescale_profit(Decimal("100"), Decimal("1000"), Decimal("0")) == Decimal("0")


def test_apply_with_day_rate():
    ledger = PositionLedger()
    position = ledger.apply("001467", Decimal("1000"), Decimal("0"), Decimal("1"))
    assert position.amount == Decimal("1000.00")
    assert position.holding_days == 1
    assert position.profit_rate == Decimal("0.00")
    # 1000 * 1 / 101
    assert position.day_profit == Decimal("9.90")
    assert position.day_profit_rate == Decimal("1.00")


def test_apply_without_day_rate_uses_fallback():
    ledger = PositionLedger()
    position = ledger.apply("001467", Decimal("1100"), Decimal("100"))
    assert position.profit_rate == Decimal("10.00")
    assert position.day_profit == Decimal("25.00")
    assert position.day_profit_rate == Decimal("1.80")
    assert position.format_profit_rate() == "10.00%"


def test_apply_to_zero_deletes_position():
    ledger = PositionLedger()
    ledger.apply("001467", Decimal("500"), Decimal("20"))
    assert ledger.apply("001467", Decimal("-500"), Decimal("20")) is None
    assert ledger.get("001467") is None
    assert ledger.codes() == []


def test_apply_never_goes_negative():
    ledger = PositionLedger(is_referenced=lambda code: code == "001467")
    ledger.apply("001467", Decimal("500"), Decimal("20"))
    position = ledger.apply("001467", Decimal("-800"), Decimal("20"))
    # 仍被引用：保留 0 金额持仓
    assert position is not None
    assert position.amount == Decimal("0")
    assert position.profit == Decimal("0")
    assert position.format_profit_rate() == "--"


def test_max_sell_share():
    ledger = PositionLedger()
    ledger.apply("001467", Decimal("1000"), Decimal("0"))
    assert ledger.max_sell_share("001467", Decimal("3")) == Decimal("333.3333")
    assert ledger.max_sell_share("001467", Decimal("0")) == Decimal("0")
    assert ledger.max_sell_share("000001", Decimal("1")) == Decimal("0")


def test_import_position_overrides_amount_and_profit():
    ledger = PositionLedger()
    ledger.apply("001467", Decimal("1000"), Decimal("50"))
    position = ledger.import_position("001467", Decimal("800"), Decimal("-20"))
    assert position.amount == Decimal("800.00")
    assert position.profit == Decimal("-20.00")


def test_revision_advances_on_change():
    ledger = PositionLedger()
    before = ledger.revision
    ledger.apply("001467", Decimal("100"), Decimal("0"))
    assert ledger.revision > before
    assert not ledger.remove("000001")


def test_dict_round_trip():
    ledger = PositionLedger()
    ledger.apply("001467", Decimal("1100"), Decimal("100"), Decimal("-0.5"))
    ledger.apply("000001", Decimal("50"), Decimal("-60"))

    restored = PositionLedger()
    restored.load_dict(ledger.to_dict())
    assert restored.to_dict() == ledger.to_dict()
    assert restored.get("001467").amount == Decimal("1100.00")


def test_referenced_position_survives_at_zero():
    ledger = PositionLedger(is_referenced=lambda code: True)
    ledger.apply("001467", Decimal("1000"), Decimal("120"))

    position = ledger.apply("001467", Decimal("-1000"), Decimal("0"))

    assert position is not None
    assert ledger.codes() == ["001467"]
    assert position.amount == Decimal("0")
    assert position.profit == Decimal("0")
    assert ledger.max_sell_share("001467", Decimal("1")) == Decimal("0")


def test_only_unreferenced_codes_are_deleted():
    ledger = PositionLedger(is_referenced=lambda code: code == "001467")
    ledger.apply("001467", Decimal("100"), Decimal("0"))
    ledger.apply("000001", Decimal("100"), Decimal("0"))

    ledger.apply("001467", Decimal("-100"), Decimal("0"))
    ledger.apply("000001", Decimal("-100"), Decimal("0"))

    assert ledger.codes() == ["001467"]
