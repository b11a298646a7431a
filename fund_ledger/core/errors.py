"""交易拒绝原因与异常。"""

from __future__ import annotations

from enum import Enum


class RejectReason(Enum):
    """交易指令被拒绝的原因码。"""

    INVALID_INPUT = "invalid_input"  # 代码为空、金额/份额/净值非正、转换同一基金
    INSUFFICIENT_POSITION = "insufficient_position"  # 卖出/转出时无持仓或持仓为 0


class TradeRejected(ValueError):
    """
    交易指令在任何状态变更之前被拒绝。

    Attributes:
        reason: 拒绝原因码。
        detail: 人话说明（用于日志）。
    """

    def __init__(self, reason: RejectReason, detail: str) -> None:
        super().__init__(f"{reason.value}: {detail}")
        self.reason = reason
        self.detail = detail
