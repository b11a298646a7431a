from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True, slots=True)
class TradeTiming:
    """
    交易时间口径（值对象，不落库）。

    - request_date: 申请日（已去除时分秒）
    - trade_date: 实际成交（定价）日
    - confirm_date: 份额确认日
    - is_after_close: 是否按收盘后时段申请（定投恒为 False）
    """

    request_date: date
    trade_date: date
    confirm_date: date
    is_trading_day: bool
    is_after_close: bool


@dataclass(frozen=True, slots=True)
class SellTiming(TradeTiming):
    """卖出时间口径：额外给出资金到账区间。"""

    cash_arrival_start: date | None = None
    cash_arrival_end: date | None = None
