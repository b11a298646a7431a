"""
依赖容器模块（Dependency Container）。

职责：
- 集中管理依赖对象的创建逻辑，并通过 @register 注册到注入容器；
- 数据库连接与账本为进程内单例：账本在首次获取时从 SQLite 恢复。

注意事项：
- @register 的名字必须与 Flow 函数参数名一致；
- 本模块在 fund_ledger/flows/__init__.py 中自动导入。
"""

from __future__ import annotations

import sqlite3

from fund_ledger.core.config import EastmoneyConfig
from fund_ledger.core.dependency import register
from fund_ledger.core.ledger.book import FundBook
from fund_ledger.core.log import log
from fund_ledger.data.client.eastmoney import EastmoneyClient
from fund_ledger.data.db.db_helper import DbHelper
from fund_ledger.data.db.state_repo import LedgerStateRepo

# ========== 全局单例 ==========

_db_connection: sqlite3.Connection | None = None
_fund_book: FundBook | None = None


def get_db_connection() -> sqlite3.Connection:
    """
    获取数据库连接（单例模式）。

    说明：首次调用时初始化 Schema，后续调用复用同一连接。
    """
    global _db_connection
    if _db_connection is None:
        db_helper = DbHelper()
        db_helper.init_schema_if_needed()
        _db_connection = db_helper.get_connection()
    return _db_connection


# ========== 依赖工厂函数（注册到容器） ==========


@register("state_repo")
def get_state_repo() -> LedgerStateRepo:
    """获取账本状态仓储。注册名：state_repo"""
    return LedgerStateRepo(get_db_connection())


@register("fund_book")
def get_fund_book() -> FundBook:
    """
    获取账本（单例）。注册名：fund_book

    首次调用时从 state_repo 恢复持仓、交易记录与定投计划。
    进程内只有一个持有列表，因此不传 is_referenced（清零的持仓直接删除）。
    """
    global _fund_book
    if _fund_book is None:
        snapshot = get_state_repo().load()
        _fund_book = FundBook.restore(snapshot)
        log(
            f"[Container] 账本已恢复：持仓 {len(_fund_book.positions.codes())} 只，"
            f"记录 {len(_fund_book.records)} 条，定投计划 {len(_fund_book.sip.all_plans())} 个"
        )
    return _fund_book


@register("eastmoney_client")
def get_eastmoney_client() -> EastmoneyClient:
    """获取东方财富行情客户端。注册名：eastmoney_client"""
    return EastmoneyClient(
        timeout=EastmoneyConfig.get_timeout(),
        retries=EastmoneyConfig.get_retries(),
    )
