from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(slots=True)
class Position:
    """
    单只基金的持仓快照。

    - amount: 当前持有金额（>= 0）。
    - profit: 累计收益（可为负）。
    - holding_days: 持有天数，仅用于展示。
    - profit_rate / day_profit / day_profit_rate: 派生字段，由 PositionLedger 在每次变更后重算；
      profit_rate 与 day_profit_rate 为百分比口径，None 表示不可计算（展示为 `--`）。
    """

    code: str
    amount: Decimal
    profit: Decimal
    holding_days: int = 1
    profit_rate: Decimal | None = None
    day_profit: Decimal = Decimal("0")
    day_profit_rate: Decimal | None = None

    @property
    def cost(self) -> Decimal:
        """持仓本金（amount - profit）。"""
        return self.amount - self.profit

    def format_profit_rate(self) -> str:
        return "--" if self.profit_rate is None else f"{self.profit_rate}%"

    def format_day_profit_rate(self) -> str:
        return "--" if self.day_profit_rate is None else f"{self.day_profit_rate}%"
