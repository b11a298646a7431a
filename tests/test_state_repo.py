from datetime import datetime
from decimal import Decimal

from fund_ledger.core.ledger.book import FundBook


def test_empty_database_loads_empty_snapshot(state_repo):
    snapshot = state_repo.load()
    assert snapshot["positions"] == {}
    assert snapshot["trade_records"] == []
    assert snapshot["sip_plans"] == {}
    assert snapshot["record_seed"] == 0
    assert snapshot["plan_seed"] == 0


def test_save_and_restore(state_repo, make_book):
    book = make_book(datetime(2024, 3, 20, 10, 0))
    book.trades.buy("001467", Decimal("1000"), fund_name="华夏成长")
    book.trades.sell("001467", Decimal("100"), Decimal("2"))
    book.sip.add_plan("000001", None, Decimal("50"), "每周一", "2024-03-04")
    book.sip.run_due()

    snapshot = book.snapshot()
    state_repo.save(snapshot)

    restored = FundBook.restore(state_repo.load())
    assert restored.snapshot() == snapshot


def test_save_replaces_positions_and_plans(state_repo, make_book):
    book = make_book(datetime(2024, 1, 8, 16, 0))
    book.trades.buy("001467", Decimal("1000"))
    plan = book.sip.add_plan("001467", None, Decimal("100"), "每月15日", None)
    state_repo.save(book.snapshot())

    book.trades.sell("001467", Decimal("500"), Decimal("2"))
    book.sip.remove_plan(plan.id)
    state_repo.save(book.snapshot())

    loaded = state_repo.load()
    assert loaded["positions"] == {}
    assert loaded["sip_plans"] == {}
    assert [row["type"] for row in loaded["trade_records"]] == ["buy", "sell"]
    assert loaded["record_seed"] == 2
    assert loaded["plan_seed"] == 1


def test_saved_records_are_not_rewritten(state_repo, book):
    book.trades.buy("001467", Decimal("1000"), fund_name="华夏成长")
    snapshot = book.snapshot()
    state_repo.save(snapshot)

    tampered = dict(snapshot)
    tampered["trade_records"] = [dict(snapshot["trade_records"][0], fund_name="改名")]
    state_repo.save(tampered)

    assert state_repo.load()["trade_records"][0]["fund_name"] == "华夏成长"
