import json
from datetime import date, datetime
from decimal import Decimal

from fund_ledger.core.ledger.book import FundBook


def _populated_book(make_book) -> FundBook:
    book = make_book(datetime(2024, 3, 20, 10, 0))
    book.trades.buy("001467", Decimal("1000"), fund_name="华夏成长", day_rate=Decimal("0.8"))
    book.trades.sell("001467", Decimal("100"), Decimal("2"))
    book.positions.import_position("000001", Decimal("500"), Decimal("-12.5"))
    book.trades.convert("000001", "000002", Decimal("200"), Decimal("199"))
    book.sip.add_plan("001467", None, Decimal("100"), "monthly:15", "2024-01-15")
    book.sip.run_due()
    return book


def test_snapshot_round_trip(make_book):
    book = _populated_book(make_book)
    snapshot = book.snapshot()

    restored = FundBook.restore(snapshot, clock=lambda: datetime(2024, 3, 20, 10, 0))

    assert restored.snapshot() == snapshot
    position = restored.positions.get("001467")
    assert position.amount == book.positions.get("001467").amount
    assert position.profit == book.positions.get("001467").profit
    assert position.holding_days == 1

    plan = restored.sip.all_plans()[0]
    assert plan.invested_total == Decimal("300.00")
    assert plan.next_run_date == date(2024, 4, 15)


def test_snapshot_is_json_serializable(make_book):
    snapshot = _populated_book(make_book).snapshot()
    assert json.loads(json.dumps(snapshot)) == snapshot


def test_restore_keeps_id_seeds(make_book):
    book = _populated_book(make_book)
    restored = FundBook.restore(book.snapshot(), clock=lambda: datetime(2024, 3, 21, 10, 0))

    record = restored.trades.buy("001467", Decimal("1"))
    plan = restored.sip.add_plan("001467", None, Decimal("1"), "每日", None)

    assert record.id == book.records.seed + 1
    assert plan.id == book.sip.seed + 1


def test_restored_book_knows_fund_names(make_book):
    restored = FundBook.restore(_populated_book(make_book).snapshot())
    assert restored.known_name("001467") == "华夏成长"
    assert restored.lookup_name("999999") is None
    assert restored.known_name("999999") == "基金999999"


def test_restore_empty():
    book = FundBook.restore(None)
    assert book.positions.codes() == []
    assert len(book.records) == 0
    assert book.sip.all_plans() == []
