"""
统一输出入口。

CLI 与 Job 通过 `log()` 输出人类可读的进度信息，底层走标准库 logging，
便于在测试中用 caplog 捕获、在部署环境中重定向。
"""

from __future__ import annotations

import logging
import sys

from fund_ledger.core.config import get_log_level

_LOGGER_NAME = "fund_ledger"
_configured = False


def get_logger() -> logging.Logger:
    """返回项目根 logger（首次调用时挂载 stdout handler）。"""
    global _configured
    logger = logging.getLogger(_LOGGER_NAME)
    if not _configured:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.setLevel(get_log_level())
        _configured = True
    return logger


def log(message: str, level: int = logging.INFO) -> None:
    """
    输出一行日志。

    Args:
        message: 日志内容（约定以 `[模块:动作]` 前缀开头）。
        level: 日志级别，默认 INFO。
    """
    get_logger().log(level, message)
