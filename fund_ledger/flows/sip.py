"""定投计划相关业务流程。"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Mapping

from fund_ledger.core.dependency import dependency
from fund_ledger.core.ledger.book import FundBook
from fund_ledger.core.log import log
from fund_ledger.core.models import SipPlan, SipRunResult
from fund_ledger.data.db.state_repo import LedgerStateRepo


@dependency
def add_sip_plan(
    code: str,
    fund_name: str | None,
    amount: Decimal,
    period_text: str,
    next_run_date: date | str | None = None,
    *,
    fund_book: FundBook | None = None,
    state_repo: LedgerStateRepo | None = None,
) -> SipPlan | None:
    """
    新建定投计划，并立即补跑一次（首次日期早于今天时会补出历史扣款）。

    Args:
        code: 基金代码。
        fund_name: 展示名称（可为空）。
        amount: 每期金额。
        period_text: 周期文本（每日 / 每周一 / 每两周周三 / 每月15日 / weekly:MON ...）。
        next_run_date: 首次执行日期（YYYY-MM-DD），为空时取不早于今天的第一个周期日。

    Returns:
        新建的计划（补跑后的最新状态）；参数非法返回 None。
    """
    with fund_book.lock:
        plan = fund_book.sip.add_plan(code, fund_name, amount, period_text, next_run_date)
        if plan is None:
            log(f"[SIP:add] 计划参数非法：code={code!r} amount={amount} period={period_text!r}", logging.WARNING)
            return None
        state_repo.save(fund_book.snapshot())

    log(f"[SIP:add] 已创建计划 #{plan.id}：{plan.code} {plan.cycle}({plan.cycle_value}) {plan.amount} 元，首次 {plan.next_run_date}")
    run_due_sip_plans(fund_book=fund_book, state_repo=state_repo)
    return plan


@dependency
def run_due_sip_plans(
    today: date | None = None,
    day_rates: Mapping[str, Decimal] | None = None,
    *,
    fund_book: FundBook | None = None,
    state_repo: LedgerStateRepo | None = None,
) -> SipRunResult:
    """
    补跑全部到期定投（启动时、定时轮询、新增计划后调用）。

    Args:
        today: 运行日，缺省为今天。
        day_rates: 基金代码 -> 当日涨跌幅（百分比）。

    Returns:
        补跑结果；有执行记录时落库。
    """
    with fund_book.lock:
        result = fund_book.sip.run_due(today, day_rates)
        if result.records:
            state_repo.save(fund_book.snapshot())

    if result.records:
        log(f"[SIP:run] 补跑完成：共执行 {result.executed_count} 笔定投")
    if result.stalled:
        log(f"[SIP:run] 以下计划执行失败，未推进：{result.stalled}", logging.WARNING)
    if result.guard_exhausted:
        log(f"[SIP:run] 以下计划达到单次补跑上限，下次继续：{result.guard_exhausted}", logging.WARNING)
    return result


@dependency
def get_sip_plans_by_code(
    code: str,
    *,
    fund_book: FundBook | None = None,
) -> list[SipPlan]:
    """按基金代码查询定投计划（按 id 升序）。"""
    return fund_book.sip.list_by_code((code or "").strip())


@dependency
def list_sip_plans(*, fund_book: FundBook | None = None) -> list[SipPlan]:
    """查询全部定投计划（按 id 升序）。"""
    return fund_book.sip.all_plans()


@dependency
def remove_sip_plan(
    plan_id: int,
    *,
    fund_book: FundBook | None = None,
    state_repo: LedgerStateRepo | None = None,
) -> bool:
    """删除定投计划（已生成的交易记录保留）。"""
    with fund_book.lock:
        removed = fund_book.sip.remove_plan(plan_id)
        if removed:
            state_repo.save(fund_book.snapshot())
    return removed
