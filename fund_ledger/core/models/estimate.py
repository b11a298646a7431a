from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(slots=True)
class FundEstimate:
    """
    盘中估值快照（来自行情数据源，仅用于展示与日涨跌幅口径）。

    - nav_estimate: 估算净值（gsz）
    - nav_last: 上一交易日单位净值（dwjz）
    - day_change_percent: 估算日涨跌幅（gszzl，百分比口径）
    - as_of: 估值时间 "YYYY-MM-DD HH:MM"
    """

    code: str
    name: str
    nav_estimate: Decimal
    nav_last: Decimal
    day_change_percent: Decimal
    as_of: str

    @property
    def nav(self) -> Decimal:
        """优先使用估算净值，缺失时回退到上一交易日净值。"""
        if self.nav_estimate > 0:
            return self.nav_estimate
        return self.nav_last
