from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Literal

RecordType = Literal["buy", "sell", "sip", "convert"]
Direction = Literal["buy", "sell"]
AmountUnit = Literal["currency", "share"]
TradeTimeSlot = Literal["before-close", "after-close"]


@dataclass(frozen=True, slots=True)
class TradeRecord:
    """
    交易记录（只追加、不可变）。

    说明：
    - amount 的单位由 unit 决定：currency=金额（元），share=份额；
    - occurred_at 为 "YYYY-MM-DD HH:MM:SS"，时刻按所用的收盘前/后时段格式化；
    - cash_arrival_* 仅卖出记录填写；counterpart_code 仅转换记录填写（转入基金）。
    """

    id: int
    code: str
    fund_name: str
    type: RecordType
    direction: Direction
    amount: Decimal
    unit: AmountUnit
    request_date: date
    trade_date: date
    confirm_date: date
    occurred_at: str
    cash_arrival_start: date | None = None
    cash_arrival_end: date | None = None
    counterpart_code: str | None = None
