"""
交易时间口径解析（申请日 → 成交日 / 确认日 / 到账日）。

规则：
- 申请日为交易日且在收盘前（before-close）申请：成交日 = 申请日；
- 其余情况：成交日 = 申请日之后的下一个交易日；
- 买入/转换/定投：确认日 = 成交日 + 1 个交易日；
- 卖出：确认日同上，资金到账区间为成交日 + 2 ~ + 4 个交易日；
- 定投不区分时段：成交日 = 申请日（若为交易日）否则下一个交易日。
"""

from __future__ import annotations

from datetime import date, datetime, time

from fund_ledger.core.models.timing import SellTiming, TradeTiming
from fund_ledger.core.models.trade_record import TradeTimeSlot
from fund_ledger.core.trading.calendar import (
    add_trading_days,
    is_trading_day,
    next_trading_day,
    next_trading_day_or_self,
    normalize_date,
)

CUTOFF = time(15, 0)
_LAST_BEFORE_CLOSE = time(14, 59, 59)

CONFIRM_LAG = 1
CASH_ARRIVAL_START_LAG = 2
CASH_ARRIVAL_END_LAG = 4


def resolve_trade_date(request_date: date | datetime, slot: TradeTimeSlot) -> date:
    day = normalize_date(request_date)
    if is_trading_day(day) and slot == "before-close":
        return day
    return next_trading_day(day)


def resolve_buy_timing(request_date: date | datetime, slot: TradeTimeSlot) -> TradeTiming:
    day = normalize_date(request_date)
    trade_date = resolve_trade_date(day, slot)
    return TradeTiming(
        request_date=day,
        trade_date=trade_date,
        confirm_date=add_trading_days(trade_date, CONFIRM_LAG),
        is_trading_day=is_trading_day(day),
        is_after_close=slot == "after-close",
    )


def resolve_sell_timing(request_date: date | datetime, slot: TradeTimeSlot) -> SellTiming:
    day = normalize_date(request_date)
    trade_date = resolve_trade_date(day, slot)
    return SellTiming(
        request_date=day,
        trade_date=trade_date,
        confirm_date=add_trading_days(trade_date, CONFIRM_LAG),
        is_trading_day=is_trading_day(day),
        is_after_close=slot == "after-close",
        cash_arrival_start=add_trading_days(trade_date, CASH_ARRIVAL_START_LAG),
        cash_arrival_end=add_trading_days(trade_date, CASH_ARRIVAL_END_LAG),
    )


def resolve_sip_timing(request_date: date | datetime) -> TradeTiming:
    day = normalize_date(request_date)
    trade_date = next_trading_day_or_self(day)
    return TradeTiming(
        request_date=day,
        trade_date=trade_date,
        confirm_date=add_trading_days(trade_date, CONFIRM_LAG),
        is_trading_day=is_trading_day(day),
        is_after_close=False,
    )


def resolve_convert_timing(request_date: date | datetime, slot: TradeTimeSlot) -> TradeTiming:
    # 转换与买入同口径
    return resolve_buy_timing(request_date, slot)


def format_occurred_at(request_at: datetime, slot: TradeTimeSlot) -> str:
    """
    生成交易记录的展示时刻 "YYYY-MM-DD HH:MM:SS"。

    时刻需与所用时段一致：收盘前的记录不晚于 14:59:59，收盘后的记录不早于 15:00:00。
    """
    clock = request_at.time().replace(microsecond=0)
    if slot == "before-close" and clock >= CUTOFF:
        clock = _LAST_BEFORE_CLOSE
    elif slot == "after-close" and clock < CUTOFF:
        clock = CUTOFF
    return f"{request_at.date().isoformat()} {clock.strftime('%H:%M:%S')}"
