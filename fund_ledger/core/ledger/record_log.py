from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from fund_ledger.core.models.timing import SellTiming, TradeTiming
from fund_ledger.core.models.trade_record import (
    AmountUnit,
    Direction,
    RecordType,
    TradeRecord,
)
from fund_ledger.core.rules.precision import to_decimal


class TradeRecordLog:
    """
    交易记录日志：只追加，按基金代码查询。

    说明：id 由内部种子单调递增分配，删除/修改接口刻意不提供。
    """

    def __init__(self) -> None:
        self._records: list[TradeRecord] = []
        self._seed = 0
        self.revision = 0

    def append(
        self,
        *,
        code: str,
        fund_name: str,
        record_type: RecordType,
        direction: Direction,
        amount: Decimal,
        unit: AmountUnit,
        timing: TradeTiming,
        occurred_at: str,
        counterpart_code: str | None = None,
    ) -> TradeRecord:
        """按给定时间口径追加一条记录，返回带 id 的 TradeRecord。"""
        self._seed += 1
        is_sell_timing = isinstance(timing, SellTiming)
        record = TradeRecord(
            id=self._seed,
            code=code,
            fund_name=fund_name,
            type=record_type,
            direction=direction,
            amount=amount,
            unit=unit,
            request_date=timing.request_date,
            trade_date=timing.trade_date,
            confirm_date=timing.confirm_date,
            occurred_at=occurred_at,
            cash_arrival_start=timing.cash_arrival_start if is_sell_timing else None,
            cash_arrival_end=timing.cash_arrival_end if is_sell_timing else None,
            counterpart_code=counterpart_code,
        )
        self._records.append(record)
        self.revision += 1
        return record

    def list_by_code(self, code: str) -> list[TradeRecord]:
        """返回指定基金的记录，按 occurred_at 降序、id 降序排列。"""
        rows = [r for r in self._records if r.code == code]
        rows.sort(key=lambda r: (r.occurred_at, r.id), reverse=True)
        return rows

    def all(self) -> list[TradeRecord]:
        return list(self._records)

    def known_name(self, code: str) -> str | None:
        """返回该代码最近一次记录使用的基金名称。"""
        for record in reversed(self._records):
            if record.code == code and record.fund_name:
                return record.fund_name
        return None

    def __len__(self) -> int:
        return len(self._records)

    # ========== 序列化 ==========

    @property
    def seed(self) -> int:
        return self._seed

    def to_list(self) -> list[dict[str, Any]]:
        return [_record_to_dict(r) for r in self._records]

    def load_list(self, rows: list[dict[str, Any]], seed: int | None = None) -> None:
        self._records = [_dict_to_record(row) for row in rows or []]
        max_id = max((r.id for r in self._records), default=0)
        self._seed = max(max_id, int(seed or 0))
        self.revision += 1


def _optional_date(value: Any) -> date | None:
    return date.fromisoformat(value) if value else None


def _record_to_dict(record: TradeRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "code": record.code,
        "fund_name": record.fund_name,
        "type": record.type,
        "direction": record.direction,
        "amount": str(record.amount),
        "unit": record.unit,
        "request_date": record.request_date.isoformat(),
        "trade_date": record.trade_date.isoformat(),
        "confirm_date": record.confirm_date.isoformat(),
        "occurred_at": record.occurred_at,
        "cash_arrival_start": record.cash_arrival_start.isoformat() if record.cash_arrival_start else None,
        "cash_arrival_end": record.cash_arrival_end.isoformat() if record.cash_arrival_end else None,
        "counterpart_code": record.counterpart_code,
    }


def _dict_to_record(row: dict[str, Any]) -> TradeRecord:
    return TradeRecord(
        id=int(row["id"]),
        code=row["code"],
        fund_name=row.get("fund_name") or "",
        type=row["type"],
        direction=row["direction"],
        amount=to_decimal(row["amount"]),
        unit=row["unit"],
        request_date=date.fromisoformat(row["request_date"]),
        trade_date=date.fromisoformat(row["trade_date"]),
        confirm_date=date.fromisoformat(row["confirm_date"]),
        occurred_at=row["occurred_at"],
        cash_arrival_start=_optional_date(row.get("cash_arrival_start")),
        cash_arrival_end=_optional_date(row.get("cash_arrival_end")),
        counterpart_code=row.get("counterpart_code"),
    )
