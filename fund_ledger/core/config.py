from __future__ import annotations

import os

from dotenv import load_dotenv

# 允许通过项目根目录的 .env 覆盖配置；已存在的环境变量优先。
load_dotenv()


def get_db_path() -> str:
    """
    返回 SQLite DB 路径。

    Returns:
        数据库文件路径；默认 `data/ledger.db`（可由 `DB_PATH` 覆盖）。
    """
    return os.getenv("DB_PATH", "data/ledger.db")


def enable_sql_debug() -> bool:
    """
    是否启用 SQL 打印（开发期可打开）。

    Returns:
        True/False（由 `ENABLE_SQL_DEBUG=1` 控制）。
    """
    return os.getenv("ENABLE_SQL_DEBUG", "0") == "1"


def get_log_level() -> str:
    """返回日志级别名称（`LOG_LEVEL`，默认 INFO）。"""
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_sip_tick_seconds() -> int:
    """
    返回定投补跑任务的轮询间隔（秒）。

    Returns:
        间隔秒数；默认 3600（每小时一次），由 `SIP_TICK_SECONDS` 覆盖，最小 1。
    """
    return max(1, int(os.getenv("SIP_TICK_SECONDS", "3600")))


class EastmoneyConfig:
    """
    行情估值客户端配置。

    环境变量：
    - EASTMONEY_TIMEOUT: 单次请求超时秒数（默认 3）
    - EASTMONEY_RETRIES: 最大重试次数（默认 2）
    """

    @staticmethod
    def get_timeout() -> float:
        return float(os.getenv("EASTMONEY_TIMEOUT", "3.0"))

    @staticmethod
    def get_retries() -> int:
        return int(os.getenv("EASTMONEY_RETRIES", "2"))
