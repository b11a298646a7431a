from __future__ import annotations

import threading
from datetime import datetime
from typing import Any, Callable

from fund_ledger.core.ledger.operations import TradeService, default_fund_name
from fund_ledger.core.ledger.position_ledger import PositionLedger
from fund_ledger.core.ledger.record_log import TradeRecordLog
from fund_ledger.core.ledger.sip_scheduler import SipScheduler

SNAPSHOT_FORMAT = 1


class FundBook:
    """
    账本聚合：持仓台账 + 交易记录 + 定投计划，以及编排它们的 TradeService / SipScheduler。

    说明：
    - 不做任何观察/推送，外部通过轮询 `version` 判断是否有变化；
    - `lock` 用于串行化“先计算后变更”的操作（卖出、转换、补跑），由 Flow 层持有；
    - `snapshot()` / `restore()` 负责与持久化层交换纯数据结构；
    - `is_referenced(code)` 由宿主提供：多持有人场景下某代码仍被其他持有列表引用时，清零的持仓不删除。
      单账本进程（container）不传，清零即删除。
    """

    def __init__(
        self,
        *,
        name_resolver: Callable[[str], str] | None = None,
        clock: Callable[[], datetime] | None = None,
        is_referenced: Callable[[str], bool] | None = None,
    ) -> None:
        self.positions = PositionLedger(is_referenced=is_referenced)
        self.records = TradeRecordLog()
        self.trades = TradeService(
            self.positions,
            self.records,
            name_resolver=name_resolver or self.known_name,
            clock=clock,
        )
        self.sip = SipScheduler(self.trades, clock=clock)
        self.lock = threading.RLock()

    def lookup_name(self, code: str) -> str | None:
        """按已有交易记录或定投计划查找基金名称，未知返回 None。"""
        name = self.records.known_name(code)
        if name:
            return name
        for plan in self.sip.list_by_code(code):
            if plan.fund_name:
                return plan.fund_name
        return None

    def known_name(self, code: str) -> str:
        return self.lookup_name(code) or default_fund_name(code)

    @property
    def version(self) -> int:
        """单调递增的变更计数（任一子台账变更都会推进）。"""
        return self.positions.revision + self.records.revision + self.sip.revision

    def snapshot(self) -> dict[str, Any]:
        """导出完整状态（仅含 str/int/None/list/dict，可直接 JSON 序列化）。"""
        return {
            "format": SNAPSHOT_FORMAT,
            "positions": self.positions.to_dict(),
            "trade_records": self.records.to_list(),
            "record_seed": self.records.seed,
            "sip_plans": self.sip.to_dict(),
            "plan_seed": self.sip.seed,
        }

    def load(self, data: dict[str, Any]) -> None:
        """按快照原样覆盖当前状态。"""
        self.positions.load_dict(data.get("positions") or {})
        self.records.load_list(data.get("trade_records") or [], data.get("record_seed"))
        self.sip.load_dict(data.get("sip_plans") or {}, data.get("plan_seed"))

    @classmethod
    def restore(cls, data: dict[str, Any] | None, **kwargs: Any) -> FundBook:
        book = cls(**kwargs)
        if data:
            book.load(data)
        return book
