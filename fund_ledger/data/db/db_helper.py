from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

from fund_ledger.core.config import enable_sql_debug, get_db_path

SCHEMA_VERSION = 1

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS positions (
    code TEXT PRIMARY KEY,
    amount TEXT NOT NULL,
    profit TEXT NOT NULL,
    holding_days INTEGER NOT NULL DEFAULT 1,
    profit_rate TEXT,
    day_profit TEXT NOT NULL DEFAULT '0',
    day_profit_rate TEXT
);

CREATE TABLE IF NOT EXISTS trade_records (
    id INTEGER PRIMARY KEY,
    code TEXT NOT NULL,
    fund_name TEXT NOT NULL,
    type TEXT NOT NULL,
    direction TEXT NOT NULL,
    amount TEXT NOT NULL,
    unit TEXT NOT NULL,
    request_date TEXT NOT NULL,
    trade_date TEXT NOT NULL,
    confirm_date TEXT NOT NULL,
    occurred_at TEXT NOT NULL,
    cash_arrival_start TEXT,
    cash_arrival_end TEXT,
    counterpart_code TEXT
);

CREATE INDEX IF NOT EXISTS idx_trade_records_code
ON trade_records(code, occurred_at);

CREATE TABLE IF NOT EXISTS sip_plans (
    id INTEGER PRIMARY KEY,
    code TEXT NOT NULL,
    fund_name TEXT NOT NULL,
    amount TEXT NOT NULL,
    cycle TEXT NOT NULL,
    cycle_value TEXT NOT NULL DEFAULT '',
    next_run_date TEXT NOT NULL,
    invested_total TEXT NOT NULL DEFAULT '0',
    invested_count INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'running',
    created_at TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


_MEMORY_DB = ":memory:"
_VERSION_KEY = "schema_version"


class DbHelper:
    """
    账本数据库（SQLite）。

    - 同一个 DbHelper 只持有一条连接，由 container 作为进程内单例复用；
    - 连接允许跨线程使用，写入由 FundBook.lock 串行化；
    - `:memory:` 用于测试，不落盘。
    """

    def __init__(self, db_path: Optional[str] = None) -> None:
        self.db_path = db_path or get_db_path()
        self._conn: Optional[sqlite3.Connection] = None

    def get_connection(self) -> sqlite3.Connection:
        """返回共享连接（行以 sqlite3.Row 形式返回），首次调用时建立。"""
        if self._conn is None:
            self._conn = self._connect()
        return self._conn

    def _connect(self) -> sqlite3.Connection:
        if self.db_path != _MEMORY_DB:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        if enable_sql_debug():
            conn.set_trace_callback(print)
        return conn

    def init_schema_if_needed(self) -> None:
        """
        建表并登记 schema 版本；库中版本低于当前版本时拒绝启动。

        Raises:
            RuntimeError: 旧版本数据库（需手动迁移或删除后重建）。
        """
        conn = self.get_connection()
        with conn:
            conn.executescript(SCHEMA_DDL)
            conn.execute(
                "INSERT OR IGNORE INTO meta(key, value) VALUES (?, ?)",
                (_VERSION_KEY, str(SCHEMA_VERSION)),
            )
            stored = int(conn.execute("SELECT value FROM meta WHERE key = ?", (_VERSION_KEY,)).fetchone()[0])
        if stored < SCHEMA_VERSION:
            raise RuntimeError(
                f"[DbHelper] 账本库版本 v{stored} 低于 v{SCHEMA_VERSION}：{self.db_path}"
            )

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
