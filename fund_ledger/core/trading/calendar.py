from __future__ import annotations

import re
from datetime import date, datetime, timedelta

_YMD_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

WEEKDAY_TOKENS = ["MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN"]


def normalize_date(value: date | datetime) -> date:
    """去除时分秒，只保留日历日期。"""
    if isinstance(value, datetime):
        return value.date()
    return value


def is_trading_day(day: date | datetime) -> bool:
    """
    交易日判定：仅将周六/周日视为非交易日。

    说明：不维护法定节假日表。
    """
    return normalize_date(day).weekday() < 5  # 0..4 = 周一..周五


def next_trading_day(day: date | datetime) -> date:
    """返回严格晚于 day 的第一个交易日（不会返回 day 本身）。"""
    d = normalize_date(day) + timedelta(days=1)
    while not is_trading_day(d):
        d = d + timedelta(days=1)
    return d


def next_trading_day_or_self(day: date | datetime) -> date:
    """若 day 为交易日则返回自身，否则返回下一个交易日。"""
    d = normalize_date(day)
    if is_trading_day(d):
        return d
    return next_trading_day(d)


def add_trading_days(day: date | datetime, n: int) -> date:
    """
    从 day 起向后数 n 个交易日。

    Args:
        day: 起始日期（不计入）。
        n: 交易日偏移；负数按 0 处理（返回 day 本身）。
    """
    remaining = max(0, int(n))
    d = normalize_date(day)
    while remaining > 0:
        d = d + timedelta(days=1)
        if is_trading_day(d):
            remaining -= 1
    return d


def parse_ymd(value: str | None) -> date | None:
    """
    严格解析 "YYYY-MM-DD"，格式错误或日期不存在（如 2024-02-30）返回 None。
    """
    text = str(value or "").strip()
    m = _YMD_RE.match(text)
    if not m:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None


def format_month_day_week_label(day: date) -> str:
    """格式化为 "MM月DD日 周X"，用于 CLI 展示确认日/到账日。"""
    week = ["周一", "周二", "周三", "周四", "周五", "周六", "周日"][day.weekday()]
    return f"{day.month:02d}月{day.day:02d}日 {week}"
