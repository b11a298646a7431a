from __future__ import annotations

import sqlite3
from typing import Any

from fund_ledger.core.ledger.book import SNAPSHOT_FORMAT

_POSITION_COLUMNS = ("amount", "profit", "holding_days", "profit_rate", "day_profit", "day_profit_rate")
_RECORD_COLUMNS = (
    "id",
    "code",
    "fund_name",
    "type",
    "direction",
    "amount",
    "unit",
    "request_date",
    "trade_date",
    "confirm_date",
    "occurred_at",
    "cash_arrival_start",
    "cash_arrival_end",
    "counterpart_code",
)
_PLAN_COLUMNS = (
    "id",
    "code",
    "fund_name",
    "amount",
    "cycle",
    "cycle_value",
    "next_run_date",
    "invested_total",
    "invested_count",
    "status",
    "created_at",
)


class LedgerStateRepo:
    """
    账本状态仓储（SQLite）。

    负责把 FundBook.snapshot() 的纯数据结构落库，并在启动时原样恢复：
    - positions / sip_plans：按快照整表覆盖；
    - trade_records：只追加（按 id 插入缺失的记录，已存在的记录不会被改写）；
    - meta：保存 id 种子。
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def save(self, snapshot: dict[str, Any]) -> None:
        """在单个事务内写入完整快照。"""
        positions = snapshot.get("positions") or {}
        plans = snapshot.get("sip_plans") or {}
        records = snapshot.get("trade_records") or []

        with self.conn:
            self.conn.execute("DELETE FROM positions")
            self.conn.executemany(
                (
                    "INSERT INTO positions (code, amount, profit, holding_days, profit_rate, "
                    "day_profit, day_profit_rate) VALUES (?, ?, ?, ?, ?, ?, ?)"
                ),
                [(code, *(row.get(c) for c in _POSITION_COLUMNS)) for code, row in positions.items()],
            )

            self.conn.executemany(
                (
                    f"INSERT OR IGNORE INTO trade_records ({', '.join(_RECORD_COLUMNS)}) "
                    f"VALUES ({', '.join('?' for _ in _RECORD_COLUMNS)})"
                ),
                [tuple(row.get(c) for c in _RECORD_COLUMNS) for row in records],
            )

            self.conn.execute("DELETE FROM sip_plans")
            self.conn.executemany(
                (
                    f"INSERT INTO sip_plans ({', '.join(_PLAN_COLUMNS)}) "
                    f"VALUES ({', '.join('?' for _ in _PLAN_COLUMNS)})"
                ),
                [tuple(row.get(c) for c in _PLAN_COLUMNS) for rows in plans.values() for row in rows],
            )

            for key in ("record_seed", "plan_seed"):
                self.conn.execute(
                    "INSERT INTO meta(key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    (key, str(int(snapshot.get(key) or 0))),
                )

    def load(self) -> dict[str, Any]:
        """读取完整快照；空库返回空结构。"""
        positions = {
            row["code"]: {c: row[c] for c in _POSITION_COLUMNS}
            for row in self.conn.execute("SELECT * FROM positions ORDER BY code").fetchall()
        }
        records = [
            {c: row[c] for c in _RECORD_COLUMNS}
            for row in self.conn.execute("SELECT * FROM trade_records ORDER BY id").fetchall()
        ]
        plans: dict[str, list[dict[str, Any]]] = {}
        for row in self.conn.execute("SELECT * FROM sip_plans ORDER BY id").fetchall():
            plans.setdefault(row["code"], []).append({c: row[c] for c in _PLAN_COLUMNS})

        return {
            "format": SNAPSHOT_FORMAT,
            "positions": positions,
            "trade_records": records,
            "record_seed": self._get_meta_int("record_seed"),
            "sip_plans": plans,
            "plan_seed": self._get_meta_int("plan_seed"),
        }

    def _get_meta_int(self, key: str) -> int:
        row = self.conn.execute("SELECT value FROM meta WHERE key = ?", (key,)).fetchone()
        return int(row["value"]) if row else 0
