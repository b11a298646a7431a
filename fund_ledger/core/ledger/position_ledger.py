from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Callable

from fund_ledger.core.models.position import Position
from fund_ledger.core.rules.precision import (
    ZERO,
    quantize_amount,
    quantize_rate,
    quantize_shares,
    to_decimal,
)

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
# 未提供日涨跌幅时，用累计口径的固定比例近似当日收益
FALLBACK_DAY_PROFIT_RATIO = Decimal("0.25")
FALLBACK_DAY_RATE_RATIO = Decimal("0.18")


def calc_profit_rate(amount: Decimal, profit: Decimal) -> Decimal | None:
    """
    计算持有收益率（百分比）。

    - 本金（amount - profit）> 0：profit / 本金；
    - 否则 amount > 0：profit / amount；
    - 否则不可计算，返回 None。
    """
    principal = amount - profit
    if principal > ZERO:
        return quantize_rate(profit / principal * HUNDRED)
    if amount > ZERO:
        return quantize_rate(profit / amount * HUNDRED)
    return None


def rescale_profit(profit: Decimal, amount: Decimal, next_amount: Decimal) -> Decimal:
    """
    部分减仓时按剩余比例缩放累计收益：profit' = profit * (A' / A)。

    说明：假设已实现收益与减仓比例成正比，是一种简化口径，并非按批次（FIFO）计算成本。
    """
    if amount <= ZERO or next_amount <= ZERO:
        return ZERO
    return quantize_amount(profit * next_amount / amount)


class PositionLedger:
    """
    持仓台账：按基金代码维护唯一的持仓快照。

    约定：
    - 每次变更后重算收益率与当日收益等派生字段；
    - 金额归零时删除该持仓，除非 `is_referenced(code)` 表明仍被其他持有列表引用。
    """

    def __init__(self, is_referenced: Callable[[str], bool] | None = None) -> None:
        self._positions: dict[str, Position] = {}
        self._is_referenced = is_referenced or (lambda _code: False)
        self.revision = 0

    def get(self, code: str) -> Position | None:
        return self._positions.get(code)

    def codes(self) -> list[str]:
        return sorted(self._positions)

    def all(self) -> list[Position]:
        return [self._positions[c] for c in self.codes()]

    def amount_of(self, code: str) -> Decimal:
        position = self._positions.get(code)
        return position.amount if position else ZERO

    def ensure(self, code: str) -> Position:
        """确保持仓存在；不存在时以 0 金额、0 收益创建。"""
        position = self._positions.get(code)
        if position is None:
            position = Position(code=code, amount=ZERO, profit=ZERO)
            self._positions[code] = position
            self.revision += 1
        return position

    def apply(
        self,
        code: str,
        delta_amount: Decimal,
        new_profit: Decimal,
        day_rate: Decimal | None = None,
    ) -> Position | None:
        """
        调整持仓金额并写入新的累计收益。

        Args:
            code: 基金代码。
            delta_amount: 金额变化（买入为正，卖出/转出为负）。
            new_profit: 调用方算好的新累计收益。
            day_rate: 当日涨跌幅（百分比），用于计算当日收益；None 时按累计口径近似。

        Returns:
            更新后的持仓；若金额归零且被删除则返回 None。
        """
        current = self._positions.get(code)
        base_amount = current.amount if current else ZERO
        amount = max(ZERO, quantize_amount(base_amount + delta_amount))
        profit = quantize_amount(new_profit) if amount > ZERO else ZERO

        if amount == ZERO and not self._is_referenced(code):
            if current is not None:
                del self._positions[code]
                self.revision += 1
                logger.debug("持仓清零已删除：code=%s", code)
            return None

        position = current or Position(code=code, amount=ZERO, profit=ZERO)
        position.amount = amount
        position.profit = profit
        self._refresh_derived(position, day_rate)
        self._positions[code] = position
        self.revision += 1
        return position

    def max_sell_share(self, code: str, nav: Decimal) -> Decimal:
        """按净值折算的最大可卖份额（amount / nav，4 位小数）。"""
        amount = self.amount_of(code)
        if amount <= ZERO or nav <= ZERO:
            return ZERO
        return quantize_shares(amount / nav)

    def import_position(self, code: str, amount: Decimal, profit: Decimal) -> Position | None:
        """
        手动导入持仓：直接覆盖金额与收益（不产生交易记录）。

        Returns:
            导入后的持仓；amount <= 0 时删除持仓并返回 None。
        """
        current = self.amount_of(code)
        return self.apply(code, amount - current, profit)

    def remove(self, code: str) -> bool:
        if code not in self._positions:
            return False
        del self._positions[code]
        self.revision += 1
        return True

    @staticmethod
    def _refresh_derived(position: Position, day_rate: Decimal | None) -> None:
        position.profit_rate = calc_profit_rate(position.amount, position.profit)

        if day_rate is not None and HUNDRED + day_rate > ZERO:
            position.day_profit = quantize_amount(position.amount * day_rate / (HUNDRED + day_rate))
            position.day_profit_rate = quantize_rate(day_rate)
            return

        position.day_profit = quantize_amount(position.profit * FALLBACK_DAY_PROFIT_RATIO)
        position.day_profit_rate = (
            None
            if position.profit_rate is None
            else quantize_rate(position.profit_rate * FALLBACK_DAY_RATE_RATIO)
        )

    # ========== 序列化 ==========

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {
            code: {
                "amount": str(p.amount),
                "profit": str(p.profit),
                "holding_days": p.holding_days,
                "profit_rate": None if p.profit_rate is None else str(p.profit_rate),
                "day_profit": str(p.day_profit),
                "day_profit_rate": None if p.day_profit_rate is None else str(p.day_profit_rate),
            }
            for code, p in sorted(self._positions.items())
        }

    def load_dict(self, data: dict[str, dict[str, Any]]) -> None:
        """按快照原样恢复持仓（不重算派生字段）。"""
        self._positions = {}
        for code, raw in (data or {}).items():
            profit_rate = raw.get("profit_rate")
            day_profit_rate = raw.get("day_profit_rate")
            self._positions[code] = Position(
                code=code,
                amount=to_decimal(raw.get("amount")),
                profit=to_decimal(raw.get("profit")),
                holding_days=int(raw.get("holding_days") or 0),
                profit_rate=None if profit_rate is None else to_decimal(profit_rate),
                day_profit=to_decimal(raw.get("day_profit")),
                day_profit_rate=None if day_profit_rate is None else to_decimal(day_profit_rate),
            )
        self.revision += 1
