from __future__ import annotations

import argparse
import csv
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from fund_ledger.core.log import log
from fund_ledger.flows.trade import import_positions, list_positions

console = Console()


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m fund_ledger.cli.position",
        description="持仓查询与手动导入",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="子命令")

    # ========== list 子命令 ==========
    subparsers.add_parser("list", help="列出全部持仓")

    # ========== import 子命令 ==========
    import_parser = subparsers.add_parser("import", help="从 CSV 导入持仓（列：code,amount,profit）")
    import_parser.add_argument("--file", required=True, type=Path, help="CSV 文件路径（首行为表头）")

    return parser.parse_args()


def _do_list(_args: argparse.Namespace) -> int:
    """执行 list 命令。"""
    try:
        positions = list_positions()
        if not positions:
            log("（无持仓）")
            return 0

        table = Table(title="持仓")
        for column in ("基金", "持有金额", "本金", "持有收益", "收益率", "当日收益", "当日收益率", "持有天数"):
            table.add_column(column)
        for p in positions:
            table.add_row(
                p.code,
                str(p.amount),
                str(p.cost),
                str(p.profit),
                p.format_profit_rate(),
                str(p.day_profit),
                p.format_day_profit_rate(),
                str(p.holding_days),
            )
        console.print(table)
        return 0
    except Exception as err:  # noqa: BLE001
        log(f"❌ 查询持仓失败：{err}")
        return 5


def _do_import(args: argparse.Namespace) -> int:
    """执行 import 命令。"""
    try:
        if not args.file.exists():
            log(f"❌ 文件不存在：{args.file}")
            return 4

        with args.file.open(encoding="utf-8-sig", newline="") as f:
            rows = [{k.strip(): (v or "").strip() for k, v in row.items() if k} for row in csv.DictReader(f)]

        log(f"[Position:import] 读取 {len(rows)} 行：{args.file}")
        count = import_positions(rows)
        if count == 0:
            log("❌ 没有可导入的有效行")
            return 4
        log(f"✅ 已导入 {count} 条持仓")
        return 0
    except Exception as err:  # noqa: BLE001
        log(f"❌ 导入持仓失败：{err}")
        return 5


def main() -> int:
    """
    持仓 CLI。

    Returns:
        退出码：0=成功；4=文件不存在/无有效行；5=其他失败。
    """
    args = _parse_args()

    if args.command == "list":
        return _do_list(args)
    elif args.command == "import":
        return _do_import(args)
    else:
        log(f"❌ 未知命令：{args.command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
