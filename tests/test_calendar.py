from datetime import date, datetime, timedelta

from fund_ledger.core.trading.calendar import (
    add_trading_days,
    format_month_day_week_label,
    is_trading_day,
    next_trading_day,
    next_trading_day_or_self,
    parse_ymd,
)


def test_weekend_is_not_trading_day():
    assert is_trading_day(date(2024, 1, 5))  # 周五
    assert not is_trading_day(date(2024, 1, 6))
    assert not is_trading_day(datetime(2024, 1, 7, 10, 30))
    assert is_trading_day(date(2024, 1, 8))


def test_next_trading_day_skips_weekend():
    assert next_trading_day(date(2024, 1, 5)) == date(2024, 1, 8)
    assert next_trading_day(date(2024, 1, 6)) == date(2024, 1, 8)
    assert next_trading_day(date(2024, 1, 8)) == date(2024, 1, 9)


def test_next_trading_day_is_the_first_trading_day_after():
    start = date(2024, 2, 20)
    for offset in range(60):
        day = start + timedelta(days=offset)
        nxt = next_trading_day(day)
        assert nxt > day
        assert is_trading_day(nxt)
        between = day + timedelta(days=1)
        while between < nxt:
            assert not is_trading_day(between)
            between += timedelta(days=1)


def test_next_trading_day_or_self():
    assert next_trading_day_or_self(date(2024, 1, 9)) == date(2024, 1, 9)
    assert next_trading_day_or_self(date(2024, 1, 6)) == date(2024, 1, 8)


def test_add_trading_days():
    assert add_trading_days(date(2024, 1, 5), 1) == date(2024, 1, 8)
    assert add_trading_days(date(2024, 1, 9), 4) == date(2024, 1, 15)
    assert add_trading_days(date(2024, 1, 6), 0) == date(2024, 1, 6)
    # 负数按 0 处理
    assert add_trading_days(date(2024, 1, 9), -3) == date(2024, 1, 9)


def test_parse_ymd_is_strict():
    assert parse_ymd("2024-02-29") == date(2024, 2, 29)
    assert parse_ymd(" 2024-03-01 ") == date(2024, 3, 1)
    assert parse_ymd("2024-02-30") is None
    assert parse_ymd("2024-2-3") is None
    assert parse_ymd("") is None
    assert parse_ymd(None) is None


def test_format_month_day_week_label():
    assert format_month_day_week_label(date(2024, 1, 8)) == "01月08日 周一"
    assert format_month_day_week_label(date(2024, 12, 29)) == "12月29日 周日"
