"""定投计划与补跑逻辑。"""

from __future__ import annotations

import logging
import re
from calendar import monthrange
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Mapping

from fund_ledger.core.errors import TradeRejected
from fund_ledger.core.ledger.operations import TradeService
from fund_ledger.core.models.sip_plan import SipCycle, SipPlan, SipRunResult
from fund_ledger.core.rules.precision import ZERO, quantize_amount, to_decimal
from fund_ledger.core.trading.calendar import WEEKDAY_TOKENS, normalize_date, parse_ymd

logger = logging.getLogger(__name__)

# 单个计划单次补跑的最大执行次数，防止 next_run_date 异常导致死循环
MAX_CATCH_UP_ITERATIONS = 366

_CN_WEEKDAYS = {"一": "MON", "二": "TUE", "三": "WED", "四": "THU", "五": "FRI", "六": "SAT", "日": "SUN", "天": "SUN"}
_CN_WEEKLY_RE = re.compile(r"^每(两|双|隔)?周\s*(?:周|星期)?([一二三四五六日天])$")
_CN_MONTHLY_RE = re.compile(r"^每月\s*(\d{1,2})\s*[日号]?$")
_EN_RE = re.compile(r"^(DAILY|WEEKLY|BIWEEKLY|MONTHLY)(?:[\s:：]+(\w+))?$")


def parse_period_text(text: str | None) -> tuple[SipCycle, str] | None:
    """
    解析定投周期文本。

    支持：
    - 每日 / 每天 / 每个交易日 / daily
    - 每周一 / 每周 星期三 / weekly:MON
    - 每两周周三 / 每双周五 / biweekly:WED
    - 每月15日 / 每月 8 号 / monthly:15

    Returns:
        (cycle, cycle_value)；无法识别时返回 None。
    """
    raw = re.sub(r"\s+", " ", str(text or "").strip())
    if not raw:
        return None

    if raw in {"每日", "每天", "每个交易日", "每交易日"}:
        return "daily", ""

    m = _CN_WEEKLY_RE.match(raw)
    if m:
        cycle: SipCycle = "biweekly" if m.group(1) else "weekly"
        return cycle, _CN_WEEKDAYS[m.group(2)]

    m = _CN_MONTHLY_RE.match(raw)
    if m:
        return _monthly(m.group(1))

    m = _EN_RE.match(raw.upper())
    if not m:
        return None
    keyword, value = m.group(1), m.group(2) or ""
    if keyword == "DAILY":
        return "daily", ""
    if keyword == "MONTHLY":
        return _monthly(value)
    token = value[:3]
    if token not in WEEKDAY_TOKENS:
        return None
    return ("weekly" if keyword == "WEEKLY" else "biweekly"), token


def _monthly(value: str) -> tuple[SipCycle, str] | None:
    if not value.isdigit() or not 1 <= int(value) <= 31:
        return None
    return "monthly", str(int(value))


def _month_day(year: int, month: int, target_day: int) -> date:
    """取 year-month 的第 target_day 天；当月无该日时落到月末最后一天。"""
    _, last_day = monthrange(year, month)
    return date(year, month, min(target_day, last_day))


def advance_run_date(current: date, cycle: SipCycle, cycle_value: str) -> date:
    """
    按周期推进下一次执行日期。

    - daily: +1 天；weekly: +7 天；biweekly: +14 天；
    - monthly: 下个月的 cycle_value 日（短月顺延到月末最后一天）。
    """
    if cycle == "daily":
        return current + timedelta(days=1)
    if cycle == "weekly":
        return current + timedelta(days=7)
    if cycle == "biweekly":
        return current + timedelta(days=14)

    target_day = int(cycle_value) if cycle_value.isdigit() else current.day
    year, month = (current.year + 1, 1) if current.month == 12 else (current.year, current.month + 1)
    return _month_day(year, month, target_day)


def first_run_date(today: date, cycle: SipCycle, cycle_value: str) -> date:
    """计算不早于 today 的第一次执行日期（新建计划未指定日期时使用）。"""
    if cycle == "daily":
        return today
    if cycle in ("weekly", "biweekly"):
        offset = (WEEKDAY_TOKENS.index(cycle_value) - today.weekday()) % 7
        return today + timedelta(days=offset)

    candidate = _month_day(today.year, today.month, int(cycle_value))
    if candidate >= today:
        return candidate
    return advance_run_date(candidate, cycle, cycle_value)


class SipScheduler:
    """
    定投计划调度：按基金维护计划列表，并补跑所有已到期的定投。

    说明：
    - 同一基金可同时存在多个计划（id 区分）；
    - next_run_date 与累计字段只在补跑成功后推进；
    - 某次定投被拒绝时停止该计划的补跑且不推进日期，下次轮询会再次到期。
    """

    def __init__(self, trades: TradeService, *, clock: Callable[[], datetime] | None = None) -> None:
        self.trades = trades
        self.clock = clock or trades.clock
        self._plans: dict[str, list[SipPlan]] = {}
        self._seed = 0
        self.revision = 0

    def add_plan(
        self,
        code: str,
        fund_name: str | None,
        amount: Decimal,
        period_text: str,
        next_run_date: date | datetime | str | None = None,
    ) -> SipPlan | None:
        """
        新建定投计划。

        Args:
            code: 基金代码。
            fund_name: 展示名称（为空时按代码解析）。
            amount: 每期金额（> 0）。
            period_text: 周期文本，见 parse_period_text。
            next_run_date: 首次执行日期（date/datetime 或 "YYYY-MM-DD"，时分秒会被去除）；为空时取不早于今天的第一个周期日。

        Returns:
            新计划；参数非法时返回 None。
        """
        code = (code or "").strip()
        amount = quantize_amount(to_decimal(amount))
        period = parse_period_text(period_text)
        if not code or amount <= ZERO or period is None:
            logger.info("定投计划参数非法：code=%r amount=%s period=%r", code, amount, period_text)
            return None

        cycle, cycle_value = period
        if next_run_date is None or next_run_date == "":
            run_date = first_run_date(self.clock().date(), cycle, cycle_value)
        elif isinstance(next_run_date, date):
            run_date = normalize_date(next_run_date)
        else:
            run_date = parse_ymd(next_run_date)
            if run_date is None:
                logger.info("定投计划首次日期非法：%r", next_run_date)
                return None

        self._seed += 1
        plan = SipPlan(
            id=self._seed,
            code=code,
            fund_name=(fund_name or "").strip() or self.trades.name_resolver(code),
            amount=amount,
            cycle=cycle,
            cycle_value=cycle_value,
            next_run_date=run_date,
            created_at=self.clock().strftime("%Y-%m-%d %H:%M:%S"),
        )
        self._plans.setdefault(code, []).append(plan)
        self.revision += 1
        return plan

    def remove_plan(self, plan_id: int) -> bool:
        for code, plans in list(self._plans.items()):
            kept = [p for p in plans if p.id != plan_id]
            if len(kept) == len(plans):
                continue
            if kept:
                self._plans[code] = kept
            else:
                del self._plans[code]
            self.revision += 1
            return True
        return False

    def list_by_code(self, code: str) -> list[SipPlan]:
        return sorted(self._plans.get(code, []), key=lambda p: p.id)

    def all_plans(self) -> list[SipPlan]:
        plans = [p for items in self._plans.values() for p in items]
        return sorted(plans, key=lambda p: p.id)

    def run_due(
        self,
        today: date | datetime | None = None,
        day_rates: Mapping[str, Decimal] | None = None,
    ) -> SipRunResult:
        """
        补跑所有到期定投（next_run_date <= today）。

        Args:
            today: 运行日，缺省为今天。
            day_rates: 基金代码 -> 当日涨跌幅（百分比），用于持仓当日收益口径。

        Returns:
            补跑结果（执行记录、停滞计划、达到迭代上限的计划）。
        """
        now = self.clock()
        run_day = normalize_date(today) if today is not None else now.date()
        rates = day_rates or {}
        result = SipRunResult()

        for plan in self.all_plans():
            iterations = 0
            while plan.next_run_date <= run_day:
                if iterations >= MAX_CATCH_UP_ITERATIONS:
                    logger.warning("定投补跑达到上限：plan=%s next=%s", plan.id, plan.next_run_date)
                    result.guard_exhausted.append(plan.id)
                    break
                try:
                    record = self.trades.sip(
                        plan.code,
                        plan.amount,
                        day_rate=rates.get(plan.code),
                        fund_name=plan.fund_name,
                        request_at=datetime.combine(plan.next_run_date, now.time()),
                    )
                except TradeRejected as err:
                    logger.warning("定投执行失败，计划停滞：plan=%s err=%s", plan.id, err)
                    result.stalled.append(plan.id)
                    break

                plan.invested_total = quantize_amount(plan.invested_total + plan.amount)
                plan.invested_count += 1
                plan.next_run_date = advance_run_date(plan.next_run_date, plan.cycle, plan.cycle_value)
                self.revision += 1
                iterations += 1
                result.records.append(record)

        return result

    # ========== 序列化 ==========

    @property
    def seed(self) -> int:
        return self._seed

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {
            code: [_plan_to_dict(p) for p in sorted(plans, key=lambda p: p.id)]
            for code, plans in sorted(self._plans.items())
        }

    def load_dict(self, data: dict[str, list[dict[str, Any]]], seed: int | None = None) -> None:
        self._plans = {}
        for code, rows in (data or {}).items():
            for row in rows:
                plan = _dict_to_plan(code, row)
                if plan is None:
                    logger.warning("跳过无法解析的定投计划：code=%s row=%r", code, row)
                    continue
                self._plans.setdefault(code, []).append(plan)
        max_id = max((p.id for p in self.all_plans()), default=0)
        self._seed = max(max_id, int(seed or 0))
        self.revision += 1


def _plan_to_dict(plan: SipPlan) -> dict[str, Any]:
    return {
        "id": plan.id,
        "code": plan.code,
        "fund_name": plan.fund_name,
        "amount": str(plan.amount),
        "cycle": plan.cycle,
        "cycle_value": plan.cycle_value,
        "next_run_date": plan.next_run_date.isoformat(),
        "invested_total": str(plan.invested_total),
        "invested_count": plan.invested_count,
        "status": plan.status,
        "created_at": plan.created_at,
    }


def _dict_to_plan(code: str, row: dict[str, Any]) -> SipPlan | None:
    next_run = parse_ymd(row.get("next_run_date"))
    if next_run is None:
        return None
    return SipPlan(
        id=int(row["id"]),
        code=row.get("code") or code,
        fund_name=row.get("fund_name") or "",
        amount=to_decimal(row.get("amount")),
        cycle=row["cycle"],
        cycle_value=str(row.get("cycle_value") or ""),
        next_run_date=next_run,
        invested_total=to_decimal(row.get("invested_total")),
        invested_count=int(row.get("invested_count") or 0),
        status=row.get("status") or "running",
        created_at=row.get("created_at") or "",
    )
