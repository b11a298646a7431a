from datetime import date, datetime, timedelta

import pytest

from fund_ledger.core.trading.calendar import is_trading_day, next_trading_day
from fund_ledger.core.trading.timing import (
    format_occurred_at,
    resolve_buy_timing,
    resolve_convert_timing,
    resolve_sell_timing,
    resolve_sip_timing,
)


def test_buy_after_close_on_monday():
    timing = resolve_buy_timing(datetime(2024, 1, 8, 16, 0), "after-close")
    assert timing.request_date == date(2024, 1, 8)
    assert timing.trade_date == date(2024, 1, 9)
    assert timing.confirm_date == date(2024, 1, 10)
    assert timing.is_trading_day
    assert timing.is_after_close


def test_buy_before_close_on_monday():
    timing = resolve_buy_timing(date(2024, 1, 8), "before-close")
    assert timing.trade_date == date(2024, 1, 8)
    assert timing.confirm_date == date(2024, 1, 9)
    assert not timing.is_after_close


def test_buy_on_weekend_rolls_to_next_trading_day():
    timing = resolve_buy_timing(date(2024, 1, 6), "before-close")
    assert not timing.is_trading_day
    assert timing.trade_date == date(2024, 1, 8)
    assert timing.confirm_date == date(2024, 1, 9)


@pytest.mark.parametrize("slot", ["before-close", "after-close"])
def test_buy_trade_date_rule(slot):
    start = date(2024, 3, 1)
    for offset in range(21):
        day = start + timedelta(days=offset)
        trade_date = resolve_buy_timing(day, slot).trade_date
        if slot == "before-close" and is_trading_day(day):
            assert trade_date == day
        else:
            assert trade_date == next_trading_day(day)


def test_sell_on_friday_after_close():
    timing = resolve_sell_timing(date(2024, 1, 12), "after-close")
    assert timing.trade_date == date(2024, 1, 15)
    assert timing.confirm_date == date(2024, 1, 16)
    assert timing.cash_arrival_start == date(2024, 1, 17)
    assert timing.cash_arrival_end == date(2024, 1, 19)


def test_sip_ignores_slot():
    weekend = resolve_sip_timing(datetime(2024, 1, 13, 20, 0))
    assert weekend.trade_date == date(2024, 1, 15)
    assert weekend.confirm_date == date(2024, 1, 16)
    assert not weekend.is_after_close

    weekday = resolve_sip_timing(datetime(2024, 1, 15, 20, 0))
    assert weekday.trade_date == date(2024, 1, 15)


def test_convert_matches_buy():
    day = date(2024, 1, 10)
    assert resolve_convert_timing(day, "after-close") == resolve_buy_timing(day, "after-close")


def test_format_occurred_at_clamps_to_slot():
    assert format_occurred_at(datetime(2024, 1, 8, 16, 30, 5), "before-close") == "2024-01-08 14:59:59"
    assert format_occurred_at(datetime(2024, 1, 8, 10, 0), "after-close") == "2024-01-08 15:00:00"
    assert format_occurred_at(datetime(2024, 1, 8, 10, 12, 13, 999), "before-close") == "2024-01-08 10:12:13"
    assert format_occurred_at(datetime(2024, 1, 8, 21, 5, 0), "after-close") == "2024-01-08 21:05:00"
