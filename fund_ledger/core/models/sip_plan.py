from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Literal

SipCycle = Literal["daily", "weekly", "biweekly", "monthly"]
SipStatus = Literal["running"]


@dataclass(slots=True)
class SipPlan:
    """
    定投计划。

    - cycle: 定投周期（daily/weekly/biweekly/monthly）
    - cycle_value: daily 为空；weekly/biweekly 用 MON/TUE/...；monthly 用 1..31
    - next_run_date: 下一次应执行的日期，仅由补跑逻辑推进
    - invested_total / invested_count: 已执行的累计金额与次数
    """

    id: int
    code: str
    fund_name: str
    amount: Decimal
    cycle: SipCycle
    cycle_value: str
    next_run_date: date
    invested_total: Decimal = Decimal("0")
    invested_count: int = 0
    status: SipStatus = "running"
    created_at: str = field(default="")


@dataclass(slots=True)
class SipRunResult:
    """
    一次定投补跑的统计结果。

    - records: 本次补跑生成的交易记录（按执行顺序）
    - stalled: 因定投执行失败而未推进的计划 id（下次轮询仍会到期）
    - guard_exhausted: 达到单次迭代上限而提前停止的计划 id
    """

    records: list = field(default_factory=list)
    stalled: list[int] = field(default_factory=list)
    guard_exhausted: list[int] = field(default_factory=list)

    @property
    def executed_count(self) -> int:
        return len(self.records)
