from datetime import date, datetime
from decimal import Decimal

from fund_ledger.core.models import FundEstimate
from fund_ledger.flows.fund import resolve_fund_name_by_code
from fund_ledger.flows.market import fetch_day_rates
from fund_ledger.flows.sip import (
    add_sip_plan,
    get_sip_plans_by_code,
    list_sip_plans,
    remove_sip_plan,
    run_due_sip_plans,
)
from fund_ledger.flows.trade import (
    get_trade_records_by_code,
    import_positions,
    list_positions,
    sync_buy_trade,
    sync_convert_trade,
    sync_sell_trade,
    sync_sip_trade,
)


class FakeEastmoneyClient:
    """按固定数据返回的行情客户端。"""

    def __init__(self, names=None, estimates=None):
        self.names = names or {}
        self.estimates = estimates or {}
        self.search_calls = []

    def search_fund_name(self, code):
        self.search_calls.append(code)
        return self.names.get(code)

    def get_estimate(self, code):
        return self.estimates.get(code)

    def get_estimates(self, codes):
        return {c: self.estimates[c] for c in codes if c in self.estimates}


def _estimate(code, name="", change="0.5"):
    return FundEstimate(
        code=code,
        name=name,
        nav_estimate=Decimal("1.2345"),
        nav_last=Decimal("1.2300"),
        day_change_percent=Decimal(change),
        as_of="2024-01-08 15:00",
    )


def test_sync_buy_trade_persists(book, state_repo):
    ok = sync_buy_trade({"code": "001467", "amount": "1000"}, fund_book=book, state_repo=state_repo)

    assert ok is True
    saved = state_repo.load()
    assert saved["positions"]["001467"]["amount"] == "1000.00"
    assert len(saved["trade_records"]) == 1


def test_sync_buy_trade_rejects_invalid_payload(book, state_repo):
    assert sync_buy_trade({"code": "001467"}, fund_book=book, state_repo=state_repo) is False
    assert sync_buy_trade({"code": "001467", "amount": "-5"}, fund_book=book, state_repo=state_repo) is False
    assert sync_buy_trade(
        {"code": "001467", "amount": "10", "slot": "noon"}, fund_book=book, state_repo=state_repo
    ) is False

    assert book.positions.codes() == []
    assert state_repo.load()["trade_records"] == []


def test_sync_sell_trade(book, state_repo):
    sync_buy_trade({"code": "001467", "amount": "1000"}, fund_book=book, state_repo=state_repo)

    result = sync_sell_trade(
        {"code": "001467", "share": "500", "nav": "2.0"}, fund_book=book, state_repo=state_repo
    )

    assert result.sold_amount == Decimal("1000.00")
    assert state_repo.load()["positions"] == {}


def test_sync_sell_trade_without_position(book, state_repo):
    result = sync_sell_trade({"code": "001467", "share": "5", "nav": "1"}, fund_book=book, state_repo=state_repo)
    assert result is None


def test_sync_sip_and_convert(book, state_repo):
    assert sync_sip_trade(
        {"code": "000001", "amount": "300", "requestAt": "2024-01-06T09:30:00"},
        fund_book=book,
        state_repo=state_repo,
    )

    result = sync_convert_trade(
        {"sourceCode": "000001", "targetCode": "001467", "outAmount": "100", "inAmount": "99.5"},
        fund_book=book,
        state_repo=state_repo,
    )

    assert result.source_remaining == Decimal("200.00")
    assert result.target_amount == Decimal("99.50")
    records = get_trade_records_by_code("000001", fund_book=book)
    assert [r.type for r in records] == ["convert", "sip"]


def test_import_positions(book, state_repo):
    count = import_positions(
        [
            {"code": "001467", "amount": "1000", "profit": "50"},
            {"code": "", "amount": "10"},
            {"code": "000001", "amount": "0"},
            {"code": "000002", "amount": "20.456"},
        ],
        fund_book=book,
        state_repo=state_repo,
    )

    assert count == 2
    assert [p.code for p in list_positions(fund_book=book)] == ["000002", "001467"]
    assert book.positions.get("000002").amount == Decimal("20.46")
    assert book.positions.get("000002").profit == Decimal("0.00")
    assert len(book.records) == 0
    assert set(state_repo.load()["positions"]) == {"000002", "001467"}


def test_add_sip_plan_runs_due_immediately(make_book, state_repo):
    book = make_book(datetime(2024, 3, 20, 10, 0))

    plan = add_sip_plan(
        "001467", None, Decimal("100"), "monthly:15", "2024-01-15", fund_book=book, state_repo=state_repo
    )

    assert plan.invested_count == 3
    assert plan.next_run_date == date(2024, 4, 15)
    assert get_sip_plans_by_code("001467", fund_book=book) == [plan]
    saved = state_repo.load()
    assert saved["sip_plans"]["001467"][0]["invested_count"] == 3
    assert len(saved["trade_records"]) == 3


def test_add_sip_plan_invalid(book, state_repo):
    assert add_sip_plan("001467", None, Decimal("100"), "每年", fund_book=book, state_repo=state_repo) is None
    assert list_sip_plans(fund_book=book) == []


def test_run_due_and_remove(make_book, state_repo):
    book = make_book(datetime(2024, 1, 8, 10, 0))
    plan = add_sip_plan("001467", None, Decimal("10"), "每日", None, fund_book=book, state_repo=state_repo)
    assert plan.invested_count == 1

    result = run_due_sip_plans(date(2024, 1, 10), fund_book=book, state_repo=state_repo)
    assert result.executed_count == 2

    assert remove_sip_plan(plan.id, fund_book=book, state_repo=state_repo)
    assert not remove_sip_plan(plan.id, fund_book=book, state_repo=state_repo)
    assert state_repo.load()["sip_plans"] == {}


def test_resolve_fund_name_prefers_book(book):
    book.trades.buy("001467", Decimal("10"), fund_name="华夏成长")
    client = FakeEastmoneyClient(names={"001467": "别的名字"})

    assert resolve_fund_name_by_code("001467", fund_book=book, eastmoney_client=client) == "华夏成长"
    assert client.search_calls == []


def test_resolve_fund_name_fallbacks(book):
    client = FakeEastmoneyClient(
        names={"000001": "华夏成长混合"},
        estimates={"000002": _estimate("000002", name="估值名称")},
    )

    assert resolve_fund_name_by_code("000001", fund_book=book, eastmoney_client=client) == "华夏成长混合"
    assert resolve_fund_name_by_code("000002", fund_book=book, eastmoney_client=client) == "估值名称"
    assert resolve_fund_name_by_code("000003", fund_book=book, eastmoney_client=client) == "基金000003"


def test_fetch_day_rates():
    client = FakeEastmoneyClient(estimates={"001467": _estimate("001467", change="-1.23")})

    rates = fetch_day_rates(["001467", "000001"], eastmoney_client=client)

    assert rates == {"001467": Decimal("-1.23")}
