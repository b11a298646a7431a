from __future__ import annotations

import argparse
import sys
from decimal import Decimal

from rich.console import Console
from rich.table import Table

from fund_ledger.core.log import log
from fund_ledger.core.models import SipPlan
from fund_ledger.flows.fund import resolve_fund_name_by_code
from fund_ledger.flows.market import fetch_day_rates
from fund_ledger.flows.sip import (
    add_sip_plan,
    get_sip_plans_by_code,
    list_sip_plans,
    remove_sip_plan,
    run_due_sip_plans,
)

console = Console()

_CYCLE_LABELS = {"daily": "每日", "weekly": "每周", "biweekly": "每两周", "monthly": "每月"}


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m fund_ledger.cli.sip_plan",
        description="定投计划管理",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="子命令")

    # ========== add 子命令 ==========
    add_parser = subparsers.add_parser("add", help="新建定投计划（创建后立即补跑到期扣款）")
    add_parser.add_argument("--fund", required=True, help="基金代码")
    add_parser.add_argument("--amount", required=True, type=Decimal, help="每期金额")
    add_parser.add_argument(
        "--period",
        required=True,
        help="周期（每日 / 每周一 / 每两周周三 / 每月15日，或 daily / weekly:MON / biweekly:WED / monthly:15）",
    )
    add_parser.add_argument("--start", default=None, help="首次执行日期 YYYY-MM-DD（默认不早于今天的第一个周期日）")
    add_parser.add_argument("--name", default=None, help="基金名称（默认按代码解析）")

    # ========== list 子命令 ==========
    list_parser = subparsers.add_parser("list", help="列出定投计划")
    list_parser.add_argument("--fund", default=None, help="仅显示某只基金的计划")

    # ========== run 子命令 ==========
    run_parser = subparsers.add_parser("run", help="补跑全部到期定投")
    run_parser.add_argument("--fetch-rate", action="store_true", help="从行情接口获取当日涨跌幅")

    # ========== remove 子命令 ==========
    remove_parser = subparsers.add_parser("remove", help="删除定投计划")
    remove_parser.add_argument("--id", dest="plan_id", required=True, type=int, help="计划 ID")

    return parser.parse_args()


def _do_add(args: argparse.Namespace) -> int:
    """执行 add 命令。"""
    try:
        fund_name = args.name or resolve_fund_name_by_code(args.fund)
        log(f"[SIP:add] 新建定投计划：{args.fund}（{fund_name}）- {args.amount} 元 / {args.period}")
        plan = add_sip_plan(args.fund, fund_name, args.amount, args.period, args.start)
        if plan is None:
            log("❌ 新建失败：参数非法（检查周期文本、金额与首次日期）")
            return 4
        log(f"✅ 定投计划 #{plan.id} 已创建，下次执行 {plan.next_run_date}")
        return 0
    except Exception as err:  # noqa: BLE001
        log(f"❌ 新建定投计划失败：{err}")
        return 5


def _render_plans(plans: list[SipPlan]) -> None:
    table = Table(title="定投计划")
    for column in ("ID", "基金", "名称", "金额", "周期", "下次执行", "累计投入", "期数"):
        table.add_column(column)
    for p in plans:
        cycle = _CYCLE_LABELS.get(p.cycle, p.cycle)
        if p.cycle_value:
            cycle = f"{cycle} {p.cycle_value}"
        table.add_row(
            str(p.id),
            p.code,
            p.fund_name,
            str(p.amount),
            cycle,
            p.next_run_date.isoformat(),
            str(p.invested_total),
            str(p.invested_count),
        )
    console.print(table)


def _do_list(args: argparse.Namespace) -> int:
    """执行 list 命令。"""
    try:
        plans = get_sip_plans_by_code(args.fund) if args.fund else list_sip_plans()
        if not plans:
            log("（无定投计划）")
            return 0
        _render_plans(plans)
        return 0
    except Exception as err:  # noqa: BLE001
        log(f"❌ 查询定投计划失败：{err}")
        return 5


def _do_run(args: argparse.Namespace) -> int:
    """执行 run 命令。"""
    try:
        day_rates = None
        if args.fetch_rate:
            day_rates = fetch_day_rates(sorted({p.code for p in list_sip_plans()}))
        result = run_due_sip_plans(day_rates=day_rates)
        if not result.records:
            log("（无到期定投）")
        # 有计划停滞时按“部分失败”返回
        return 4 if result.stalled else 0
    except Exception as err:  # noqa: BLE001
        log(f"❌ 补跑定投失败：{err}")
        return 5


def _do_remove(args: argparse.Namespace) -> int:
    """执行 remove 命令。"""
    try:
        log(f"[SIP:remove] 删除定投计划 #{args.plan_id}")
        if not remove_sip_plan(args.plan_id):
            log(f"❌ 计划 #{args.plan_id} 不存在")
            return 4
        log(f"✅ 定投计划 #{args.plan_id} 已删除")
        return 0
    except Exception as err:  # noqa: BLE001
        log(f"❌ 删除定投计划失败：{err}")
        return 5


def main() -> int:
    """
    定投计划管理 CLI。

    Returns:
        退出码：0=成功；4=参数非法/计划不存在/存在停滞计划；5=其他失败。
    """
    args = _parse_args()

    if args.command == "add":
        return _do_add(args)
    elif args.command == "list":
        return _do_list(args)
    elif args.command == "run":
        return _do_run(args)
    elif args.command == "remove":
        return _do_remove(args)
    else:
        log(f"❌ 未知命令：{args.command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
