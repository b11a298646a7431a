"""交易同步流程：买入 / 卖出 / 定投 / 转换，以及持仓导入与查询。"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from pydantic import ValidationError

from fund_ledger.core.dependency import dependency
from fund_ledger.core.errors import TradeRejected
from fund_ledger.core.ledger.book import FundBook
from fund_ledger.core.log import log
from fund_ledger.core.models import ConvertResult, Position, SellResult, TradeRecord, parse_instruction
from fund_ledger.core.rules.precision import ZERO, quantize_amount, to_decimal
from fund_ledger.data.db.state_repo import LedgerStateRepo


def _execute(
    payload: dict[str, Any],
    kind: str,
    fund_book: FundBook,
    state_repo: LedgerStateRepo,
) -> TradeRecord | SellResult | ConvertResult | None:
    """
    解析载荷并执行一条交易指令，成功后落库。

    Returns:
        TradeService 的执行结果；载荷非法或指令被拒绝时返回 None（账本无任何变更）。
    """
    try:
        instruction = parse_instruction(payload, kind=kind)
    except ValidationError as err:
        log(f"[Trade:{kind}] 载荷非法：{err.error_count()} 处错误", logging.WARNING)
        return None

    with fund_book.lock:
        try:
            result = fund_book.trades.execute(instruction)
        except TradeRejected as err:
            log(f"[Trade:{kind}] 已拒绝（{err.reason.value}）：{err.detail}", logging.WARNING)
            return None
        state_repo.save(fund_book.snapshot())
    return result


@dependency
def sync_buy_trade(
    payload: dict[str, Any],
    *,
    fund_book: FundBook | None = None,
    state_repo: LedgerStateRepo | None = None,
) -> bool:
    """
    同步一笔买入。

    Args:
        payload: {code, amount, day_rate?, slot?, fund_name?, request_at?}（驼峰键亦可）。
        fund_book: 账本（可选，自动注入）。
        state_repo: 状态仓储（可选，自动注入）。

    Returns:
        是否成功。
    """
    record = _execute(payload, "buy", fund_book, state_repo)
    if record is None:
        return False
    log(f"[Trade:buy] {record.code} 买入 {record.amount} 元，成交日 {record.trade_date}，确认日 {record.confirm_date}")
    return True


@dependency
def sync_sell_trade(
    payload: dict[str, Any],
    *,
    fund_book: FundBook | None = None,
    state_repo: LedgerStateRepo | None = None,
) -> SellResult | None:
    """
    同步一笔卖出。

    Args:
        payload: {code, share, nav, day_rate?, slot?, fund_name?, request_at?}。

    Returns:
        SellResult（实际卖出份额/金额、最大可卖份额）；失败返回 None。
    """
    result = _execute(payload, "sell", fund_book, state_repo)
    if result is None:
        return None
    log(
        f"[Trade:sell] {result.record.code} 卖出 {result.sold_share} 份（{result.sold_amount} 元），"
        f"预计到账 {result.record.cash_arrival_start} ~ {result.record.cash_arrival_end}"
    )
    return result


@dependency
def sync_sip_trade(
    payload: dict[str, Any],
    *,
    fund_book: FundBook | None = None,
    state_repo: LedgerStateRepo | None = None,
) -> bool:
    """同步一笔定投扣款：{code, amount, day_rate?, fund_name?, request_at?}。"""
    record = _execute(payload, "sip", fund_book, state_repo)
    if record is None:
        return False
    log(f"[Trade:sip] {record.code} 定投 {record.amount} 元，成交日 {record.trade_date}")
    return True


@dependency
def sync_convert_trade(
    payload: dict[str, Any],
    *,
    fund_book: FundBook | None = None,
    state_repo: LedgerStateRepo | None = None,
) -> ConvertResult | None:
    """
    同步一笔基金转换。

    Args:
        payload: {source_code, target_code, out_amount, in_amount, source_day_rate?,
                  target_day_rate?, slot?, fund_name?, request_at?}。

    Returns:
        ConvertResult；失败返回 None。
    """
    result = _execute(payload, "convert", fund_book, state_repo)
    if result is None:
        return None
    log(
        f"[Trade:convert] {result.record.code} → {result.record.counterpart_code}："
        f"转出 {result.actual_out} 元，转入 {result.in_amount} 元"
    )
    return result


@dependency
def get_trade_records_by_code(
    code: str,
    *,
    fund_book: FundBook | None = None,
) -> list[TradeRecord]:
    """按基金代码查询交易记录（occurred_at 降序）。"""
    return fund_book.records.list_by_code((code or "").strip())


@dependency
def import_positions(
    rows: list[dict[str, Any]],
    *,
    fund_book: FundBook | None = None,
    state_repo: LedgerStateRepo | None = None,
) -> int:
    """
    手动导入持仓：逐行覆盖持有金额与持有收益，不产生交易记录。

    Args:
        rows: [{code, amount, profit?}]；code 为空或 amount <= 0 的行会被跳过。

    Returns:
        实际导入的行数。
    """
    count = 0
    with fund_book.lock:
        for row in rows:
            code = str(row.get("code") or "").strip()
            amount = quantize_amount(to_decimal(row.get("amount")))
            if not code or amount <= ZERO:
                log(f"[Trade:import] 跳过非法行：{row}", logging.WARNING)
                continue
            profit = to_decimal(row.get("profit"), Decimal("0"))
            fund_book.positions.import_position(code, amount, profit)
            count += 1
        if count:
            state_repo.save(fund_book.snapshot())
    return count


@dependency
def list_positions(*, fund_book: FundBook | None = None) -> list[Position]:
    """查询全部持仓（按基金代码升序）。"""
    return sorted(fund_book.positions.all(), key=lambda p: p.code)
